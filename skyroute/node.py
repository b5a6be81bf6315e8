"""Search nodes: a cell together with the cell it was reached from."""

from __future__ import annotations

import math
from dataclasses import dataclass

from skyroute.cell import Cell, angle_to_range, cell_at


@dataclass(frozen=True, order=True)
class Node:
    """A move from ``parent`` into ``cell``."""

    cell: Cell
    parent: Cell

    def next_node(self, cell: Cell) -> Node:
        """Return the node that moves from this node's cell into ``cell``."""
        return Node(cell, self.cell)

    def neighbors(self) -> list[Node]:
        """Return the nodes reachable from this one in a single step."""
        return [self.next_node(c) for c in self.cell.neighbors()]

    def cells(self) -> set[Cell]:
        """Return the cells swept by the move from parent to cell."""
        cell, parent = self.cell, self.parent
        dx, dy, dz = cell.x - parent.x, cell.y - parent.y, cell.z - parent.z
        steps = 2 * max(abs(dx), abs(dy), abs(dz))
        if steps == 0:
            return set()
        x_step = (cell.x_pos - parent.x_pos) / steps
        y_step = (cell.y_pos - parent.y_pos) / steps
        z_step = (cell.z_pos - parent.z_pos) / steps
        swept = set()
        for i in range(1, steps + 1):
            x = parent.x_pos + x_step * i
            y = parent.y_pos + y_step * i
            z = parent.z_pos + z_step * i
            for ox, oy in ((0.1, 0.1), (0.1, -0.1), (-0.1, 0.1), (-0.1, -0.1)):
                swept.add(cell_at(x + ox, y + oy, z))
        return swept

    def length(self) -> float:
        """Distance between the centres of parent and cell."""
        return self.parent.distance_3d(self.cell)

    def rotation(self, other: Node) -> float:
        """Number of 45 degree turns needed to continue as ``other``.

        A change between horizontal and vertical movement adds half a turn.
        """
        this_vertical_change = self.cell.z - self.parent.z
        other_vertical_change = other.cell.z - other.parent.z
        alt_diff = 0.5 if (this_vertical_change == 0) != (other_vertical_change == 0) else 0.0
        return alt_diff + self.xy_rotation(other)

    def xy_rotation(self, other: Node) -> float:
        """Number of 45 degree turns in the XY-plane to continue as ``other``."""
        this_diff = self.cell - self.parent
        other_diff = other.cell - other.parent
        if (this_diff.x == 0 and this_diff.y == 0) or (other_diff.x == 0 and this_diff.y == 0):
            return 0.0
        ang_diff = abs(angle_to_range(other_diff.angle() - this_diff.angle()))
        return ang_diff / (math.pi / 4)

    def __str__(self) -> str:
        return f"({self.cell} , {self.parent})"