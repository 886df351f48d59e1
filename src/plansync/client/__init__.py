from .session import PlanningSession

__all__ = ["PlanningSession"]
