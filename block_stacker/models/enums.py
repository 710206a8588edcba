# --- START OF FILE enums.py ---

from enum import Enum

class ActionType(Enum):
    NAVIGATE = "navigate"
    PICK = "pick"
    PLACE = "place"

class TaskStatus(Enum):
    SUCCESS = "success"
    FAILURE = "failure"

class Combinator(Enum):
    SEQUENCE = "sequence"   # every child must succeed, in order
    SELECT = "select"       # first child that succeeds wins

class RunOutcome(Enum):
    GOAL_REACHED = "goal_reached"
    STUCK = "stuck"
    ITERATIONS_EXHAUSTED = "iterations_exhausted"
    ABORTED = "aborted"
# --- END OF FILE enums.py ---
