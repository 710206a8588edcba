"""HTN planner and replanning loop for a block-stacking agent."""

__version__ = "0.1.0"
