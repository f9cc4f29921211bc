"""Action planning for archive replication."""

from .errors import InvalidActionOperands, PlanningError
from .models import Action, ActionPlan, ActionType
from .planner import ActionPlanner

__all__ = [
    "Action",
    "ActionPlan",
    "ActionPlanner",
    "ActionType",
    "InvalidActionOperands",
    "PlanningError",
]
