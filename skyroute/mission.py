"""Following a planned path and managing the queue of mission goals."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from skyroute.cell import Cell
from skyroute.planner import GlobalPlanner, Pose

_CLOSE_TO_GOAL = 1.5
_MAX_YAW_DIFF = math.pi
_TRACK_EVERY = 10


def _as_point(values) -> tuple[float, float, float]:
    x, y, z = (float(v) for v in values)
    return (x, y, z)


def setpoint_towards(goal, position, speed: float) -> tuple[float, float, float]:
    """Return a point on the way from ``position`` to ``goal``.

    The point lies ``speed`` metres away from ``position``, unless the goal is
    closer than one metre, in which case the goal itself is returned.
    """
    goal = _as_point(goal)
    position = _as_point(position)
    vec = tuple(g - p for g, p in zip(goal, position))
    length = math.sqrt(sum(c * c for c in vec))
    if length == 0.0:
        return position
    new_len = length if length < 1.0 else speed
    scale = new_len / length
    x, y, z = (p + c * scale for p, c in zip(position, vec))
    return (x, y, z)


@dataclass
class PathFollower:
    """Tracks the vehicle along a sequence of poses, one goal at a time."""

    start: Pose = field(default_factory=lambda: Pose((0.5, 0.5, 3.5), 0.0))
    speed: float = 5.0
    position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    yaw: float = 0.0
    path: list[Pose] = field(default_factory=list)
    actual_path: list[Pose] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.current_goal: Pose = self.start
        self.last_goal: Pose = self.start
        self._num_positions = 0

    def set_current_path(self, poses) -> None:
        """Start following ``poses``; fewer than two poses leave nothing to follow."""
        poses = list(poses)
        self.path = []
        if len(poses) < 2:
            return
        self.last_goal = poses[0]
        self.current_goal = poses[1]
        self.path = poses[2:]

    def update_position(self, position, yaw: float) -> bool:
        """Record a new pose; return True if the next pose of the path became the goal."""
        self.position = _as_point(position)
        self.yaw = yaw
        if self._num_positions % _TRACK_EVERY == 0:
            self.actual_path.append(Pose(self.position, yaw))
        self._num_positions += 1

        if not self.path or not self.is_close_to_goal():
            return False
        yaw_diff = abs(yaw - self.current_goal.yaw)
        yaw_diff -= math.floor(yaw_diff / (2 * math.pi)) * (2 * math.pi)
        if yaw_diff < _MAX_YAW_DIFF or yaw_diff > 2 * math.pi - _MAX_YAW_DIFF:
            self.last_goal = self.current_goal
            self.current_goal = self.path.pop(0)
            return True
        return False

    def is_close_to_goal(self) -> bool:
        """True if the vehicle is within 1.5 m of the current goal."""
        return math.dist(self.current_goal.position, self.position) < _CLOSE_TO_GOAL

    def setpoint(self) -> Pose:
        """The intermediate pose to send to the flight controller."""
        point = setpoint_towards(self.current_goal.position, self.position, self.speed)
        return Pose(point, self.current_goal.yaw)


@dataclass
class GoalQueue:
    """Mission goals waiting to be handed to the planner."""

    waypoints: list[Cell] = field(default_factory=list)
    global_goal: Cell | None = None
    temporary_goal: Cell | None = None

    def add(self, goal: Cell) -> None:
        """Append a goal to the end of the queue."""
        self.waypoints.append(goal)

    def _set_new_goal(self, planner: GlobalPlanner, goal: Cell, temporary: bool = False) -> None:
        planner.set_goal(goal)
        self.temporary_goal = goal
        if not temporary:
            self.global_goal = goal

    def pop_next(self, planner: GlobalPlanner) -> Cell | None:
        """Give the planner the next queued goal, or stop it if its goal is blocked.

        Returns the goal that was set, or None if none was.
        """
        if self.waypoints:
            goal = self.waypoints.pop(0)
            self._set_new_goal(planner, goal)
            return goal
        if planner.goal_is_blocked:
            planner.stop()
        return None

    def set_intermediate_goal(self, planner: GlobalPlanner) -> bool:
        """Set a temporary goal half-way along a long current path.

        The previous goal is put back at the front of the queue. Returns True
        if an intermediate goal was set.
        """
        path = planner.curr_path
        if len(path) <= 10:
            return False
        self.waypoints.insert(0, planner.goal_pos)
        self._set_new_goal(planner, path[len(path) // 2], temporary=True)
        return True