"""Cubic cells of the planning grid and the geometry between them."""

from __future__ import annotations

import math
from dataclasses import dataclass

CELL_SCALE = 1.0
"""Edge length of a cell in metres."""

_DIAG_COST = 1.41421356237


def angle_to_range(angle: float) -> float:
    """Wrap an angle in radians to the range [-pi, pi)."""
    angle += math.pi
    angle -= 2 * math.pi * math.floor(angle / (2 * math.pi))
    return angle - math.pi


def cell_at(x: float, y: float, z: float = 0.0) -> Cell:
    """Return the cell that contains the point (x, y, z)."""
    return Cell(
        math.floor(x / CELL_SCALE),
        math.floor(y / CELL_SCALE),
        math.floor(z / CELL_SCALE),
    )


@dataclass(frozen=True, order=True)
class Cell:
    """A grid cell, addressed by its integer indices."""

    x: int
    y: int
    z: int = 0

    @property
    def x_pos(self) -> float:
        return CELL_SCALE * (self.x + 0.5)

    @property
    def y_pos(self) -> float:
        return CELL_SCALE * (self.y + 0.5)

    @property
    def z_pos(self) -> float:
        return CELL_SCALE * (self.z + 0.5)

    def to_point(self) -> tuple[float, float, float]:
        """Return the centre of the cell."""
        return (self.x_pos, self.y_pos, self.z_pos)

    def manhattan_dist(self, x: float, y: float, z: float) -> float:
        """Manhattan distance from the centre of the cell to a point."""
        return abs(self.x_pos - x) + abs(self.y_pos - y) + abs(self.z_pos - z)

    def distance_2d(self, other: Cell) -> float:
        """Straight-line distance between centres, ignoring altitude."""
        return math.hypot(self.x_pos - other.x_pos, self.y_pos - other.y_pos)

    def distance_3d(self, other: Cell) -> float:
        """Straight-line distance between centres."""
        return math.sqrt(
            (self.x_pos - other.x_pos) ** 2
            + (self.y_pos - other.y_pos) ** 2
            + (self.z_pos - other.z_pos) ** 2
        )

    def diag_distance_2d(self, other: Cell) -> float:
        """Shortest XY distance when diagonal moves are allowed."""
        dx = abs(self.x_pos - other.x_pos)
        dy = abs(self.y_pos - other.y_pos)
        return (dx + dy) + (_DIAG_COST - 2) * min(dx, dy)

    def diag_distance_3d(self, other: Cell) -> float:
        """Diagonal XY distance plus the vertical distance."""
        return self.diag_distance_2d(other) + abs(self.z_pos - other.z_pos)

    def angle(self) -> float:
        """Angle in the XY-plane between the cell indices and the X-axis."""
        return math.atan2(self.y, self.x)

    def neighbor_from_yaw(self, yaw: float) -> Cell:
        """Return the neighbouring cell in the direction of yaw."""
        dx = int(2 * CELL_SCALE * math.cos(yaw))
        dy = int(2 * CELL_SCALE * math.sin(yaw))
        return cell_at(self.x_pos + dx, self.y_pos + dy, self.z_pos)

    def flow_neighbors(self, radius: int) -> list[Cell]:
        """Return the cells within a ball of the given radius whose risk flows here."""

        def ceil_distance(x: int, y: int) -> int:
            return math.ceil(math.sqrt(max(0.0, float(radius * radius - x * x - y * y))))

        cells = []
        for dx in range(-radius, radius + 1):
            y_radius = ceil_distance(dx, 0)
            for dy in range(-y_radius, y_radius + 1):
                z_radius = ceil_distance(dx, dy)
                for dz in range(-z_radius, z_radius + 1):
                    cells.append(Cell(self.x + dx, self.y + dy, self.z + dz))
        return cells

    def diagonal_neighbors(self) -> list[Cell]:
        """Return the four diagonal neighbours in the XY-plane."""
        x, y, z = self.x, self.y, self.z
        return [
            Cell(x + 1, y + 1, z),
            Cell(x - 1, y + 1, z),
            Cell(x + 1, y - 1, z),
            Cell(x - 1, y - 1, z),
        ]

    def neighbors(self) -> list[Cell]:
        """Return the six face neighbours followed by the four XY diagonals."""
        x, y, z = self.x, self.y, self.z
        return [
            Cell(x + 1, y, z),
            Cell(x - 1, y, z),
            Cell(x, y + 1, z),
            Cell(x, y - 1, z),
            Cell(x, y, z + 1),
            Cell(x, y, z - 1),
            *self.diagonal_neighbors(),
        ]

    def __sub__(self, other: Cell) -> Cell:
        return Cell(self.x - other.x, self.y - other.y, self.z - other.z)

    def __str__(self) -> str:
        return f"({self.x},{self.y},{self.z})"