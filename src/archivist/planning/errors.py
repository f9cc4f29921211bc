"""Planning errors."""


class PlanningError(Exception):
    """Base exception for action planning."""


class InvalidActionOperands(PlanningError):
    """Raised when an action is built with operands that do not suit its type."""
