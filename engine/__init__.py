"""
Projection engine — change-driven recalculation of the deterministic projection.
"""

from .projection import ProjectionController, fetch_simple_projection
from .scheduler import DeferredTimer, RecalculationScheduler, SchedulerState, default_timer

__all__ = [
    "ProjectionController",
    "fetch_simple_projection",
    "DeferredTimer",
    "RecalculationScheduler",
    "SchedulerState",
    "default_timer",
]
