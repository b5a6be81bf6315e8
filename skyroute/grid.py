"""Square grid of height statistics used to find landing sites."""

from __future__ import annotations

import math

import numpy as np


class Grid:
    """Per-cell mean and variance of height, point counters and land flags."""

    def __init__(self, grid_size: float, cell_size: float) -> None:
        self.corner_min = np.full(2, np.nan)
        self.corner_max = np.full(2, np.nan)
        self.resize(grid_size, cell_size)

    def reset(self) -> None:
        """Clear every cell."""
        self.mean.fill(0.0)
        self.variance.fill(0.0)
        self.counter.fill(0)
        self.land.fill(0)

    def resize(self, grid_size: float, cell_size: float) -> None:
        """Change the grid and cell sizes and clear every cell."""
        self.grid_size = grid_size
        self.cell_size = cell_size
        self.row_col_size = math.ceil(grid_size / cell_size)
        shape = (self.row_col_size, self.row_col_size)
        self.mean = np.zeros(shape, dtype=float)
        self.variance = np.zeros(shape, dtype=float)
        self.counter = np.zeros(shape, dtype=int)
        self.land = np.zeros(shape, dtype=int)

    def increase_counter(self, idx: tuple[int, int]) -> None:
        """Count one more point in the cell at ``idx``."""
        self.counter[idx[0], idx[1]] += 1

    def set_filter_limits(self, pos) -> None:
        """Centre the grid's XY limits on ``pos``."""
        half = self.grid_size / 2.0
        self.corner_min = np.array([pos[0] - half, pos[1] - half], dtype=float)
        self.corner_max = np.array([pos[0] + half, pos[1] + half], dtype=float)

    @property
    def limits(self) -> tuple[np.ndarray, np.ndarray]:
        """The XY corners of the grid as (min, max)."""
        return self.corner_min.copy(), self.corner_max.copy()

    def combine(self, previous: Grid, alpha: float) -> None:
        """Blend the mean and variance with those of ``previous``, weighted by alpha."""
        if previous.mean.shape != self.mean.shape:
            raise ValueError(
                f"grid shapes differ: {previous.mean.shape} and {self.mean.shape}"
            )
        self.mean = alpha * previous.mean + (1.0 - alpha) * self.mean
        self.variance = alpha * previous.variance + (1.0 - alpha) * self.variance