# block_stacker/models/exceptions.py

class BlockStackerError(Exception):
    """Base exception for block stacker errors."""
    pass

class ConfigurationError(BlockStackerError):
    """Raised when a run configuration or config file value is malformed."""
    pass

class WorldInvariantError(BlockStackerError):
    """Raised when a world mutation would break block conservation (negative height, double pick, place with empty hands)."""
    pass

class PlanningError(BlockStackerError):
    """Raised when the task tree itself is malformed."""
    pass
