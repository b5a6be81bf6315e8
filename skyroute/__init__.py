"""Cell geometry, risk and cost bookkeeping for grid path planning, path following, mission goals, speed limits and landing-grid statistics."""

__version__ = "0.1.0"
__all__ = ["cell", "node", "grid", "planner", "mission", "speed", "mock"]