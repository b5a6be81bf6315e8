"""Speed limits and line-tracking targets for the local planner."""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass
class Px4Params:
    """Flight-controller parameters that bound the vehicle's motion."""

    mpc_auto_mode: int = 1
    mpc_jerk_min: float = 8.0
    mpc_jerk_max: float = 20.0
    acc_up_max: float = 10.0
    mpc_z_vel_max_up: float = 3.0
    mpc_acc_down_max: float = 10.0
    mpc_vel_max_dn: float = 1.0
    mpc_acc_hor: float = 5.0
    mpc_xy_cruise: float = 3.0
    mpc_tko_speed: float = 1.0
    mpc_land_speed: float = 0.7
    cp_dist: float = 4.0


def limited_cruise_speed(
    params: Px4Params, max_sensor_range: float, mission_speed: float = math.nan
) -> float:
    """Highest speed at which the vehicle can still stop within the sensor range.

    Solves ``0 = u^2 + 2 a s`` with ``s = u |a / j| + r`` for the initial
    velocity ``u``. The mission speed is used when finite, otherwise the
    cruise speed; the smaller of that and the limit is returned.
    """
    accel_ramp_time = params.mpc_acc_hor / params.mpc_jerk_max
    a = 1.0
    b = 2.0 * params.mpc_acc_hor * accel_ramp_time
    c = 2.0 * -params.mpc_acc_hor * max_sensor_range
    limited_speed = (-b + math.sqrt(b * b - 4.0 * a * c)) / (2.0 * a)

    speed = mission_speed if math.isfinite(mission_speed) else params.mpc_xy_cruise
    return min(speed, limited_speed)


def closest_point_on_line(goal, prev_goal, position, cruise_speed: float) -> tuple[float, float, float]:
    """Projection of ``position`` on the line from ``prev_goal`` to ``goal``.

    The projection is taken in the XY-plane and given the goal's altitude. If
    the vehicle is closer to the line than ``cruise_speed``, the goal itself
    is returned so that nothing pulls the vehicle towards the line.
    """
    gx, gy, gz = (float(v) for v in goal)
    px, py, _ = (float(v) for v in prev_goal)
    x, y, _ = (float(v) for v in position)

    dx, dy = gx - px, gy - py
    norm = math.hypot(dx, dy)
    ux, uy = (dx / norm, dy / norm) if norm > 0.0 else (0.0, 0.0)

    along = ux * (x - px) + uy * (y - py)
    closest = (px + ux * along, py + uy * along, gz)

    if math.hypot(x - closest[0], y - closest[1]) < cruise_speed:
        return (gx, gy, gz)
    return closest