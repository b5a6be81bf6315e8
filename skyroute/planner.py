"""Risk-aware global path planning on a grid of cells."""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from itertools import accumulate

from skyroute.cell import Cell, cell_at
from skyroute.node import Node


def next_yaw(u: Cell, v: Cell, last_yaw: float) -> float:
    """XY-angle from u to v, or ``last_yaw`` if v is directly above or below u."""
    dx = v.x - u.x
    dy = v.y - u.y
    if dx == 0 and dy == 0:
        return last_yaw
    return math.atan2(dy, dx)


def posterior(prior: float, probability: float) -> float:
    """Combine a prior with a measured probability by Bayes' rule."""
    occupied = prior * probability
    free = (1.0 - prior) * (1.0 - probability)
    return occupied / (occupied + free)


def _probability(log_odds: float) -> float:
    return 1.0 - 1.0 / (1.0 + math.exp(log_odds))


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


@dataclass(frozen=True)
class Pose:
    """A position and a heading in the XY-plane."""

    position: tuple[float, float, float]
    yaw: float


@dataclass
class PathInfo:
    """Breakdown of the cost of a path."""

    cost: float = 0.0
    dist: float = 0.0
    risk: float = 0.0
    smoothness: float = 0.0
    is_blocked: bool = False


@dataclass
class OccupancyMap:
    """Occupancy measurements as log-odds per cell."""

    cells: dict[Cell, float] = field(default_factory=dict)
    resolution: float = 1.0

    def lookup(self, cell: Cell) -> float | None:
        """Log-odds of the cell, or None if it has never been measured."""
        return self.cells.get(cell)


class GlobalPlanner:
    """Costs, risks and heuristics for planning paths through a cell grid."""

    def __init__(self, alt_prior) -> None:
        self.alt_prior = list(alt_prior)
        if not self.alt_prior:
            raise ValueError("alt_prior must not be empty")
        self.accumulated_alt_prior = list(accumulate(self.alt_prior))

        self.min_altitude = 1
        self.max_altitude = 10
        self.max_cell_risk = 0.5
        self.smooth_factor = 10.0
        self.vert_to_hor_cost = 1.0
        self.risk_factor = 500.0
        self.neighbor_risk_flow = 1.0
        self.explore_penalty = 0.005
        self.up_cost = 3.0
        self.down_cost = 1.0
        self.search_time = 0.5
        self.min_overestimate_factor = 1.03
        self.max_overestimate_factor = 2.0
        self.overestimate_factor = self.max_overestimate_factor
        self.max_iterations = 2000
        self.goal_must_be_free = True
        self.use_current_yaw = True
        self.use_risk_heuristics = True
        self.use_speedup_heuristics = True
        self.bubble_radius = 0.0
        self.bubble_cost = 0.0
        self.robot_radius = 0.5
        self.frame_id = "/local_origin"

        self.curr_pos: tuple[float, float, float] = (0.0, 0.0, 0.0)
        self.curr_yaw = 0.0
        self.curr_vel: tuple[float, float, float] = (0.0, 0.0, 0.0)
        self.goal_pos: Cell = Cell(0, 0, 0)
        self.going_back = True
        self.goal_is_blocked = False
        self.current_cell_blocked = False

        self.occupancy: OccupancyMap | None = None
        self.map_resolution = 1.0
        self.occupied: set[Cell] = set()
        self.seen_count: Counter = Counter()

        self.path_back: list[Cell] = []
        self.curr_path: list[Cell] = []
        self.curr_path_info = PathInfo()
        self.path_cells: set[Cell] = set()

        self._risk_cache: dict[Cell, float] = {}
        self._heuristic_cache: dict[Node, float] = {}
        self._bubble_risk_cache: dict[Cell, float] = {}

    # State updates

    def set_pose(self, position, yaw: float) -> None:
        """Update the current pose and remember the way back."""
        self.curr_pos = tuple(float(c) for c in position)
        self.curr_yaw = yaw
        curr_cell = cell_at(*self.curr_pos)
        if not self.going_back and (not self.path_back or curr_cell != self.path_back[-1]):
            self.path_back.append(curr_cell)

    def set_goal(self, goal: Cell) -> None:
        """Set a new mission goal."""
        self.goal_pos = goal
        self.going_back = False
        self.goal_is_blocked = False
        self._heuristic_cache.clear()
        self._bubble_risk_cache.clear()

    def set_path(self, path) -> None:
        """Make ``path`` the current path."""
        path = list(path)
        self.curr_path_info = self.path_info(path)
        self.curr_path = path
        self.path_cells = set()
        for parent, cell in zip(path[1:], path[2:]):
            self.path_cells.update(Node(cell, parent).cells())

    def update_map(self, occupancy: OccupancyMap) -> None:
        """Replace the occupancy map and forget cached risks."""
        self._risk_cache.clear()
        self.occupancy = occupancy
        self.map_resolution = occupancy.resolution

    # Neighbourhood and distances

    def open_neighbors(self, cell: Cell, is_3d: bool) -> list[tuple[Cell, float]]:
        """The 8 horizontal and, in 3D, up to 2 vertical neighbours with their move costs."""
        x, y, z = cell.x, cell.y, cell.z
        neighbors = [
            (Cell(x + 1, y, z), 1.0),
            (Cell(x + 1, y - 1, z), 1.41),
            (Cell(x + 1, y + 1, z), 1.41),
            (Cell(x - 1, y, z), 1.0),
            (Cell(x - 1, y - 1, z), 1.41),
            (Cell(x - 1, y + 1, z), 1.41),
            (Cell(x, y - 1, z), 1.0),
            (Cell(x, y + 1, z), 1.0),
        ]
        if is_3d and z < self.max_altitude:
            neighbors.append((Cell(x, y, z + 1), self.up_cost))
        if is_3d and z > self.min_altitude:
            neighbors.append((Cell(x, y, z - 1), self.down_cost))
        return neighbors

    def is_near_wall(self, cell: Cell) -> bool:
        """True if a diagonal neighbour of the cell is occupied."""
        return any(self.is_occupied(n) for n in cell.diagonal_neighbors())

    def edge_dist(self, u: Cell, v: Cell) -> float:
        """Distance between adjacent cells, weighting climbs and descents."""
        z_diff = v.z_pos - u.z_pos
        return (
            u.distance_2d(v)
            + self.up_cost * max(z_diff, 0.0)
            + self.down_cost * max(-z_diff, 0.0)
        )

    # Risk

    def single_cell_risk(self, cell: Cell) -> float:
        """Risk of the cell alone, without its neighbours."""
        if cell.z < 1 or self.occupancy is None:
            return 1.0
        log_odds = self.occupancy.lookup(cell)
        if log_odds is None:
            return self.explore_penalty * self.alt_prior_of(cell)
        post_prob = posterior(self.alt_prior_of(cell), _probability(log_odds))
        if cell in self.occupied or log_odds > 0:
            return post_prob
        return self.explore_penalty * post_prob

    def alt_prior_of(self, cell: Cell) -> float:
        """Prior probability of an obstacle at the cell's altitude."""
        index = _round_half_away(cell.z_pos)
        if not 0 <= index < len(self.alt_prior):
            raise IndexError(f"no altitude prior for cell {cell}")
        return self.alt_prior[index]

    def is_occupied(self, cell: Cell) -> bool:
        return self.single_cell_risk(cell) > 0.5

    def is_legal(self, node: Node) -> bool:
        """True if the node is below the altitude limit and risk limit."""
        return node.cell.z_pos < self.max_altitude and self.node_risk(node) < self.max_cell_risk

    def cell_risk(self, cell: Cell) -> float:
        """Risk of the cell including the risk flowing in from its neighbourhood."""
        cached = self._risk_cache.get(cell)
        if cached is not None:
            return cached
        risk = self.single_cell_risk(cell)
        radius = math.ceil(self.robot_radius / self.map_resolution)
        risk += sum(
            self.neighbor_risk_flow * self.single_cell_risk(n)
            for n in cell.flow_neighbors(radius)
        )
        self._risk_cache[cell] = risk
        return risk

    def node_risk(self, node: Node) -> float:
        """Mean risk of the cells swept by the move, times its length."""
        cells = node.cells()
        if not cells:
            return 0.0
        total = sum(self.cell_risk(c) for c in cells)
        return total / len(cells) * node.length()

    # Costs and heuristics

    def turn_smoothness(self, u: Node, v: Node) -> float:
        """Squared amount of turning needed to go from u to v."""
        return u.rotation(v) ** 2

    def edge_cost(self, u: Node, v: Node) -> float:
        """Total cost of the edge from u to v."""
        dist_cost = self.edge_dist(u.cell, v.cell)
        risk_cost = self.risk_factor * self.node_risk(v)
        smooth_cost = self.smooth_factor * self.turn_smoothness(u, v)
        speed = math.sqrt(sum(c * c for c in self.curr_vel))
        if u.cell.distance_3d(cell_at(*self.curr_pos)) < 3 and speed > 1:
            smooth_cost *= 2
        return dist_cost + risk_cost + smooth_cost

    def risk_heuristic(self, u: Cell, goal: Cell) -> float:
        """Risk of a straight path through unexplored space from u to goal."""
        if u == goal:
            return 0.0
        unexplored_risk = (
            (1.0 + 6.0 * self.neighbor_risk_flow) * self.explore_penalty * self.risk_factor
        )
        xy_dist = u.diag_distance_2d(goal) - 1.0
        xy_risk = xy_dist * unexplored_risk * self.alt_prior_of(u)
        z_risk = unexplored_risk * abs(
            self.accumulated_alt_prior[u.z] - self.accumulated_alt_prior[goal.z]
        )
        goal_risk = self.cell_risk(goal) * self.risk_factor
        return xy_risk + z_risk + goal_risk

    def risk_heuristic_reverse(self, u: Cell, goal: Cell) -> float:
        """Risk heuristic towards a bubble around the goal."""
        cached = self._bubble_risk_cache.get(u)
        if cached is not None:
            return cached
        if u == goal:
            return 0.0
        dist_to_bubble = max(0.0, u.diag_distance_3d(goal) - self.bubble_radius)
        unexplored_risk = (
            (1.0 + 6.0 * self.neighbor_risk_flow) * self.explore_penalty * self.risk_factor
        )
        return self.bubble_cost + dist_to_bubble * unexplored_risk * self.alt_prior_of(u)

    def smoothness_heuristic(self, u: Node, goal: Cell) -> float:
        """Lower bound on the cost of turning on the way to goal."""
        if u.cell.x == goal.x and u.cell.y == goal.y:
            return 0.0
        if u.cell.x == u.parent.x and u.cell.y == u.parent.y:
            return self.smooth_factor * self.vert_to_hor_cost
        u_ang = (u.cell - u.parent).angle()
        goal_ang = (goal - u.cell).angle()
        from skyroute.cell import angle_to_range

        ang_diff = abs(angle_to_range(goal_ang - u_ang))
        num_45_deg_turns = ang_diff / (math.pi / 4)
        altitude_change = 0 if u.cell.z == goal.z else 1
        return self.smooth_factor * (num_45_deg_turns + altitude_change)

    def altitude_heuristic(self, u: Cell, goal: Cell) -> float:
        """Lower bound on the cost of reaching the goal's altitude."""
        diff = goal.z - u.z
        return self.up_cost * abs(diff) if diff > 0 else self.down_cost * abs(diff)

    def heuristic(self, u: Node, goal: Cell) -> float:
        """Estimated cost of going from u to goal."""
        value = self.overestimate_factor * u.cell.diag_distance_2d(goal)
        value += self.altitude_heuristic(u.cell, goal)
        value += self.smoothness_heuristic(u, goal)
        if self.use_risk_heuristics:
            value += self.risk_heuristic(u.cell, goal)
        if self.use_speedup_heuristics:
            value += self.seen_count[u.cell]
        self._heuristic_cache[u] = value
        return value

    # Paths

    def path_poses(self, path=None) -> list[Pose]:
        """Poses along ``path`` (the current path by default), facing the next cell."""
        path = self.curr_path if path is None else list(path)
        if not path:
            return []
        poses = []
        last_yaw = self.curr_yaw
        for cell, following in zip(path, path[1:]):
            last_yaw = next_yaw(cell, following, last_yaw)
            poses.append(Pose(cell.to_point(), last_yaw))
        poses.append(Pose(path[-1].to_point(), last_yaw))
        return poses

    def path_with_risk(self) -> list[tuple[Pose, float]]:
        """Poses of the current path, each with the risk of its cell."""
        return [(pose, self.cell_risk(cell_at(*pose.position))) for pose in self.path_poses()]

    def path_info(self, path) -> PathInfo:
        """Cost breakdown of ``path``."""
        path = list(path)
        info = PathInfo()
        for grandparent, parent, cell in zip(path, path[1:], path[2:]):
            curr_node = Node(cell, parent)
            last_node = Node(parent, grandparent)
            risk = self.node_risk(curr_node)
            info.dist += self.edge_dist(last_node.cell, curr_node.cell)
            info.risk += self.risk_factor * risk
            info.cost += self.edge_cost(last_node, curr_node)
            info.is_blocked |= risk > self.max_cell_risk
            info.smoothness += self.smooth_factor * self.turn_smoothness(last_node, curr_node)
        return info

    def go_back(self) -> None:
        """Follow the recorded path back until a low-risk cell is reached."""
        if not self.path_back:
            raise ValueError("no path back has been recorded")
        self.going_back = True
        new_path = self.path_back[::-1]
        for i in range(1, len(new_path) - 1):
            if i > 5 and self.cell_risk(new_path[i]) < 0.5:
                new_path = new_path[: i + 1]
                del self.path_back[len(self.path_back) - i - 2 :]
                break
        self.curr_path = new_path
        self.goal_pos = new_path[-1]

    def stop(self) -> None:
        """Make the current position both the goal and the path."""
        here = cell_at(*self.curr_pos)
        self.set_goal(here)
        self.set_path([here])