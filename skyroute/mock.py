"""Synthetic obstacle data and path printing for exercising the planner."""

from __future__ import annotations

DEFAULT_POINTS: list[tuple[float, float, float]] = [
    (5.5, -0.5, 0.5),
    (5.5, 0.5, 0.5),
    (5.5, 1.5, 0.5),
    (5.5, -0.5, 1.5),
    (5.5, 0.5, 1.5),
    (5.5, 1.5, 1.5),
    (5.5, -0.5, 2.5),
    (5.5, 0.5, 2.5),
    (5.5, 1.5, 2.5),
]
"""A small wall in front of the start position."""

CLICKED_POINT = (8.5, 4.5, 1.5)
"""Goal sent by the mock source after a few rounds."""

MOCK_POSITION = (0.5, 2.5, 1.5)
"""Vehicle position reported by the mock source."""

MOCK_FRAME = "/world"


def create_wall(dist: int, width: int, height: int) -> list[tuple[float, float, float]]:
    """Points at the centres of a wall of cells ``dist`` metres ahead along X.

    The wall spans ``-width..width`` in Y and ``0..height`` in Z.
    """
    return [
        (dist + 0.5, i + 0.5, j + 0.5)
        for i in range(-width, width + 1)
        for j in range(height + 1)
    ]


def format_path(points) -> str:
    """Render a path as ``(x, y, z) -> `` segments followed by a blank line."""
    segments = "".join(f"({x:2.2f}, {y:2.2f}, {z:2.2f}) -> " for x, y, z in points)
    return segments + "\n\n"