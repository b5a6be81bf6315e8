import math

import pytest

from skyroute.cell import Cell, cell_at
from skyroute.node import Node
from skyroute.planner import (
    GlobalPlanner,
    OccupancyMap,
    PathInfo,
    Pose,
    next_yaw,
    posterior,
)

ALT_PRIOR = [0.1 + 0.01 * i for i in range(40)]


@pytest.fixture
def planner():
    return GlobalPlanner(ALT_PRIOR)


def test_next_yaw_vertical_keeps_last_yaw():
    assert next_yaw(Cell(1, 1, 1), Cell(1, 1, 3), 0.7) == 0.7


def test_next_yaw_horizontal():
    assert next_yaw(Cell(0, 0, 0), Cell(1, 1, 0), 0.0) == pytest.approx(math.pi / 4)


@pytest.mark.parametrize("p", [0.1, 0.3, 0.9])
def test_posterior_uniform_prior_is_identity(p):
    assert posterior(0.5, p) == pytest.approx(p)


@pytest.mark.parametrize("prior", [0.05, 0.2, 0.7])
def test_posterior_uninformative_measurement_keeps_prior(prior):
    assert posterior(prior, 0.5) == pytest.approx(prior)


def test_empty_alt_prior_rejected():
    with pytest.raises(ValueError):
        GlobalPlanner([])


def test_single_cell_risk_without_map(planner):
    assert planner.single_cell_risk(Cell(3, 3, 3)) == 1.0


def test_single_cell_risk_ground(planner):
    planner.update_map(OccupancyMap())
    assert planner.single_cell_risk(Cell(3, 3, 0)) == 1.0


def test_single_cell_risk_unexplored(planner):
    planner.update_map(OccupancyMap())
    cell = Cell(2, 2, 3)
    assert planner.single_cell_risk(cell) == pytest.approx(
        planner.explore_penalty * planner.alt_prior_of(cell)
    )


def test_single_cell_risk_known_occupied(planner):
    cell = Cell(2, 2, 3)
    planner.update_map(OccupancyMap({cell: 0.0}))
    free_risk = planner.single_cell_risk(cell)
    planner.occupied.add(cell)
    assert planner.single_cell_risk(cell) == pytest.approx(planner.alt_prior_of(cell))
    assert free_risk == pytest.approx(planner.explore_penalty * planner.alt_prior_of(cell))


def test_is_occupied_with_high_log_odds(planner):
    cell = Cell(1, 1, 2)
    planner.update_map(OccupancyMap({cell: 10.0}))
    assert planner.is_occupied(cell)
    assert not planner.is_occupied(Cell(5, 5, 2))


def test_is_near_wall(planner):
    wall = Cell(2, 2, 2)
    planner.update_map(OccupancyMap({wall: 10.0}))
    assert planner.is_near_wall(Cell(1, 1, 2))
    assert not planner.is_near_wall(Cell(5, 5, 2))


def test_alt_prior_out_of_range(planner):
    with pytest.raises(IndexError):
        planner.alt_prior_of(Cell(0, 0, 100))


def test_alt_prior_rounds_centre(planner):
    assert planner.alt_prior_of(Cell(0, 0, 1)) == ALT_PRIOR[2]


def test_update_map_sets_resolution_and_clears_cache(planner):
    cell = Cell(2, 2, 3)
    without_map = planner.cell_risk(cell)
    planner.update_map(OccupancyMap(resolution=0.5))
    assert planner.map_resolution == 0.5
    assert planner.cell_risk(cell) < without_map


def test_open_neighbors_2d(planner):
    neighbors = planner.open_neighbors(Cell(0, 0, 3), False)
    cells = [c for c, _ in neighbors]
    assert len(neighbors) == 8
    assert all(c.z == 3 for c in cells)
    assert len(set(cells)) == 8


def test_open_neighbors_3d(planner):
    neighbors = dict(planner.open_neighbors(Cell(0, 0, 3), True))
    assert len(neighbors) == 10
    assert neighbors[Cell(0, 0, 4)] == planner.up_cost
    assert neighbors[Cell(0, 0, 2)] == planner.down_cost


def test_open_neighbors_at_limits(planner):
    top = dict(planner.open_neighbors(Cell(0, 0, planner.max_altitude), True))
    bottom = dict(planner.open_neighbors(Cell(0, 0, planner.min_altitude), True))
    assert Cell(0, 0, planner.max_altitude + 1) not in top
    assert Cell(0, 0, planner.min_altitude - 1) not in bottom


def test_edge_dist(planner):
    u = Cell(0, 0, 2)
    assert planner.edge_dist(u, Cell(1, 1, 2)) == pytest.approx(u.distance_2d(Cell(1, 1, 2)))
    assert planner.edge_dist(u, Cell(0, 0, 3)) == pytest.approx(planner.up_cost)
    assert planner.edge_dist(u, Cell(0, 0, 1)) == pytest.approx(planner.down_cost)


def test_cell_risk_includes_neighbourhood(planner):
    planner.update_map(OccupancyMap())
    cell = Cell(3, 3, 4)
    assert planner.cell_risk(cell) > planner.single_cell_risk(cell)


def test_node_risk_scales_with_length(planner):
    planner.update_map(OccupancyMap())
    node = Node(Cell(1, 0, 4), Cell(0, 0, 4))
    cells = node.cells()
    mean = sum(planner.cell_risk(c) for c in cells) / len(cells)
    assert planner.node_risk(node) == pytest.approx(mean * node.length())


def test_is_legal(planner):
    planner.update_map(OccupancyMap())
    assert planner.is_legal(Node(Cell(1, 0, 3), Cell(0, 0, 3)))
    high = planner.max_altitude + 1
    assert not planner.is_legal(Node(Cell(1, 0, high), Cell(0, 0, high)))


def test_turn_smoothness_straight_is_zero(planner):
    u = Node(Cell(1, 0, 2), Cell(0, 0, 2))
    v = Node(Cell(2, 0, 2), Cell(1, 0, 2))
    assert planner.turn_smoothness(u, v) == 0.0


def test_edge_cost_components(planner):
    planner.update_map(OccupancyMap())
    u = Node(Cell(1, 0, 3), Cell(0, 0, 3))
    v = Node(Cell(2, 1, 3), Cell(1, 0, 3))
    expected = (
        planner.edge_dist(u.cell, v.cell)
        + planner.risk_factor * planner.node_risk(v)
        + planner.smooth_factor * planner.turn_smoothness(u, v)
    )
    assert planner.edge_cost(u, v) == pytest.approx(expected)


def test_edge_cost_penalises_turns_at_speed(planner):
    planner.update_map(OccupancyMap())
    u = Node(Cell(1, 0, 3), Cell(0, 0, 3))
    v = Node(Cell(2, 1, 3), Cell(1, 0, 3))
    planner.set_pose((1.5, 0.5, 3.5), 0.0)
    slow = planner.edge_cost(u, v)
    planner.curr_vel = (3.0, 0.0, 0.0)
    fast = planner.edge_cost(u, v)
    assert fast - slow == pytest.approx(planner.smooth_factor * planner.turn_smoothness(u, v))


def test_risk_heuristic_at_goal(planner):
    assert planner.risk_heuristic(Cell(2, 2, 2), Cell(2, 2, 2)) == 0.0


def test_risk_heuristic_reverse_at_goal(planner):
    assert planner.risk_heuristic_reverse(Cell(2, 2, 2), Cell(2, 2, 2)) == 0.0


def test_risk_heuristic_grows_with_distance(planner):
    planner.update_map(OccupancyMap())
    goal = Cell(10, 0, 3)
    assert planner.risk_heuristic(Cell(0, 0, 3), goal) > planner.risk_heuristic(Cell(5, 0, 3), goal)


def test_smoothness_heuristic_above_goal(planner):
    node = Node(Cell(2, 2, 5), Cell(1, 2, 5))
    assert planner.smoothness_heuristic(node, Cell(2, 2, 1)) == 0.0


def test_smoothness_heuristic_vertical_move(planner):
    node = Node(Cell(0, 0, 3), Cell(0, 0, 2))
    assert planner.smoothness_heuristic(node, Cell(5, 5, 3)) == pytest.approx(
        planner.smooth_factor * planner.vert_to_hor_cost
    )


def test_smoothness_heuristic_heading_at_goal(planner):
    node = Node(Cell(1, 0, 3), Cell(0, 0, 3))
    assert planner.smoothness_heuristic(node, Cell(6, 0, 3)) == pytest.approx(0.0)


def test_altitude_heuristic(planner):
    assert planner.altitude_heuristic(Cell(0, 0, 1), Cell(0, 0, 4)) == pytest.approx(3 * planner.up_cost)
    assert planner.altitude_heuristic(Cell(0, 0, 4), Cell(0, 0, 1)) == pytest.approx(3 * planner.down_cost)


def test_heuristic_at_least_distance(planner):
    planner.update_map(OccupancyMap())
    node = Node(Cell(1, 0, 3), Cell(0, 0, 3))
    goal = Cell(8, 4, 3)
    assert planner.heuristic(node, goal) >= planner.overestimate_factor * node.cell.diag_distance_2d(goal)


def test_heuristic_counts_seen_cells(planner):
    planner.use_risk_heuristics = False
    node = Node(Cell(1, 0, 3), Cell(0, 0, 3))
    goal = Cell(8, 4, 3)
    before = planner.heuristic(node, goal)
    planner.seen_count[node.cell] += 4
    assert planner.heuristic(node, goal) == pytest.approx(before + 4)


def test_path_poses_empty(planner):
    assert planner.path_poses([]) == []


def test_path_poses_follow_path(planner):
    path = [Cell(0, 0, 2), Cell(1, 0, 2), Cell(1, 1, 2), Cell(1, 1, 3)]
    poses = planner.path_poses(path)
    assert [p.position for p in poses] == [c.to_point() for c in path]
    assert poses[0].yaw == pytest.approx(0.0)
    assert poses[1].yaw == pytest.approx(math.pi / 2)
    assert poses[-1].yaw == poses[-2].yaw


def test_set_path_and_path_with_risk(planner):
    planner.update_map(OccupancyMap())
    path = [Cell(0, 0, 3), Cell(1, 0, 3), Cell(2, 0, 3), Cell(3, 0, 3)]
    planner.set_path(path)
    assert planner.curr_path == path
    assert Cell(3, 0, 3) in planner.path_cells
    pairs = planner.path_with_risk()
    assert [pose for pose, _ in pairs] == planner.path_poses()
    assert all(risk == pytest.approx(planner.cell_risk(cell_at(*pose.position))) for pose, risk in pairs)


def test_path_info_short_path(planner):
    assert planner.path_info([Cell(0, 0, 1), Cell(1, 0, 1)]) == PathInfo()


def test_path_info_straight_path(planner):
    planner.update_map(OccupancyMap())
    path = [Cell(i, 0, 3) for i in range(5)]
    info = planner.path_info(path)
    assert info.dist == pytest.approx(sum(planner.edge_dist(a, b) for a, b in zip(path[1:], path[2:])))
    assert info.smoothness == 0.0
    assert not info.is_blocked
    assert info.cost == pytest.approx(info.dist + info.risk)


def test_set_pose_records_distinct_cells(planner):
    planner.set_goal(Cell(5, 5, 3))
    planner.set_pose((0.2, 0.2, 2.2), 0.0)
    planner.set_pose((0.4, 0.3, 2.4), 0.0)
    planner.set_pose((1.4, 0.3, 2.4), 0.0)
    assert planner.path_back == [Cell(0, 0, 2), Cell(1, 0, 2)]


def test_set_pose_ignored_while_going_back(planner):
    planner.set_pose((0.2, 0.2, 2.2), 0.3)
    assert planner.path_back == []
    assert planner.curr_yaw == 0.3


def test_go_back_without_history(planner):
    with pytest.raises(ValueError):
        planner.go_back()


def test_go_back_truncates_at_safe_cell(planner):
    planner.update_map(OccupancyMap())
    planner.set_goal(Cell(20, 0, 2))
    for i in range(10):
        planner.set_pose((i + 0.5, 0.5, 2.5), 0.0)
    recorded = list(planner.path_back)
    planner.go_back()
    assert planner.going_back
    assert planner.curr_path == recorded[::-1][:7]
    assert planner.goal_pos == planner.curr_path[-1]
    assert planner.path_back == recorded[:2]


def test_stop(planner):
    planner.set_pose((3.2, 4.7, 2.1), 0.0)
    planner.stop()
    here = cell_at(3.2, 4.7, 2.1)
    assert planner.goal_pos == here
    assert planner.curr_path == [here]
    assert not planner.going_back


def test_single_cell_path_pose_uses_current_yaw(planner):
    planner.set_pose((0.5, 0.5, 2.5), 0.4)
    cell = Cell(0, 0, 2)
    poses = planner.path_poses([cell])
    assert poses == [Pose(cell.to_point(), 0.4)]
    assert poses[0].yaw == 0.4


def test_occupancy_lookup():
    cell = Cell(1, 2, 3)
    occupancy = OccupancyMap({cell: 2.0})
    assert occupancy.lookup(cell) == 2.0
    assert occupancy.lookup(Cell(0, 0, 0)) is None