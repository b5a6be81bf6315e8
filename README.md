# skyroute

Building blocks for risk-aware path planning on a 3D cell grid for aerial
vehicles. The package covers cell geometry, search nodes, risk, cost and
heuristic functions, following a path pose by pose, a mission goal queue,
speed limits and a grid for landing-site statistics.

## Installation

```
pip install .
```

To run the tests, install the test extra and run pytest:

```
pip install ".[test]"
pytest
```

## Modules

- `skyroute.cell`
  - `Cell` is a frozen, ordered grid coordinate with integer indices `x`, `y`, `z`.
  - `cell_at(x, y, z)` returns the cell that contains a world position. Cells are 1 m on a side.
  - A cell gives its centre (`x_pos`, `y_pos`, `z_pos`, `to_point()`), its distances
    (`manhattan_dist`, `distance_2d`, `distance_3d`, `diag_distance_2d`,
    `diag_distance_3d`) and its XY `angle()`.
  - It also gives its neighbours: `neighbors()` returns six face neighbours and four XY
    diagonals, and `diagonal_neighbors()` returns the diagonals alone.
    `neighbor_from_yaw(yaw)` gives the neighbour in a heading, and
    `flow_neighbors(radius)` returns the cells within a ball.
  - Subtracting two cells gives their index difference.
  - `angle_to_range` wraps an angle in radians to [-π, π).
- `skyroute.node`
  - `Node(cell, parent)` is a move from `parent` into `cell`.
  - `cells()` returns the cells the move sweeps through, and `length()` the distance it covers.
  - `rotation(other)` and `xy_rotation(other)` count the 45° turns to continue with another
    move. A switch between horizontal and vertical movement adds half a turn.
  - `next_node` and `neighbors()` give the moves that follow.
- `skyroute.grid`
  - `Grid(grid_size, cell_size)` holds NumPy matrices `mean`, `variance`, `counter` and
    `land` for a square grid.
  - `reset()` and `resize()` clear and rebuild the grid, and `increase_counter(idx)`
    counts a point in a cell.
  - `set_filter_limits(pos)` centres the XY limits on a position, and `limits` returns
    them.
  - `combine(previous, alpha)` blends in the mean and variance of an earlier grid of the
    same shape. It raises `ValueError` if the shapes differ.
- `skyroute.planner`
  - `GlobalPlanner(alt_prior)` takes a list of obstacle prior probabilities, one per
    metre of altitude, and does the risk and cost bookkeeping.
  - Occupancy comes from an `OccupancyMap`, which maps cells to log-odds. Load it with
    `update_map`.
  - Single-cell risk combines the altitude prior with the measurement through
    `posterior`. Cells that were never measured are discounted by `explore_penalty`.
    `cell_risk` adds the risk flowing in from the cells within the robot radius, and
    `node_risk` averages risk along a move.
  - `edge_dist`, `edge_cost`, `turn_smoothness`, `open_neighbors`, `is_occupied`,
    `is_near_wall` and `is_legal` support a search.
  - The heuristics are `heuristic`, `altitude_heuristic`, `smoothness_heuristic`,
    `risk_heuristic` and `risk_heuristic_reverse`.
  - `set_pose` records the way back, `go_back` follows it until risk is low, and `stop`
    holds position.
  - `set_path` makes a list of cells the current path. `path_info` returns a `PathInfo`
    with cost, distance, risk, smoothness and whether the path is blocked.
  - `path_poses` turns a path into `Pose` objects that face the next cell, and
    `path_with_risk` pairs each pose with its risk. `next_yaw` gives the heading from
    one cell to the next.
- `skyroute.mission`
  - `PathFollower` takes the poses of a path with `set_current_path`. Each
    `update_position` call advances the current goal once the vehicle is within 1.5 m of
    it.
  - `setpoint()` returns the next setpoint, computed by `setpoint_towards`.
  - `GoalQueue` queues goals with `add`. `pop_next` hands the next goal to a planner,
    or stops the planner if its goal is blocked. `set_intermediate_goal` sets a goal
    half-way along a path longer than 10 cells.
- `skyroute.speed`
  - `limited_cruise_speed` returns the fastest speed at which the vehicle can still stop
    within sensor range. It uses the flight-controller limits in `Px4Params`.
  - `closest_point_on_line` projects the vehicle onto the line from the previous goal to
    the current one.
- `skyroute.mock`
  - `create_wall` builds the points of a synthetic wall, and `DEFAULT_POINTS` holds a
    small wall.
  - `format_path` renders a path as `(x, y, z) -> ` segments.

## Example

```python
from skyroute.cell import cell_at
from skyroute.node import Node
from skyroute.planner import GlobalPlanner

alt_prior = [0.1, 0.2, 0.15, 0.1, 0.05, 0.03, 0.02, 0.01, 0.01, 0.01, 0.01, 0.01]
planner = GlobalPlanner(alt_prior)

start = cell_at(0.5, 0.5, 3.5)
goal = cell_at(8.5, 4.5, 3.5)

print(start, goal)                # (0,0,3) (8,4,3)
print(start.distance_3d(goal))
print(planner.risk_heuristic(start, goal))
print(planner.heuristic(Node(start, cell_at(-0.5, 0.5, 3.5)), goal))
```

## What the package does not do

- It has no path search. It provides the costs, heuristics and neighbourhoods a search
  needs, but nothing that finds a path from start to goal. Paths come from outside,
  through `set_path`.
- It does not build occupancy maps from sensor data. `OccupancyMap` must be filled with
  log-odds by the caller.
- It does not fill `Grid` from point clouds and does not decide where to land. `Grid` only
  holds and blends the statistics.
- It has no command-line program, no messaging with a flight controller and no
  visualisation.