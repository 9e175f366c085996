"""
Projection service boundary — HTTP client and wire models.
"""

from .client import ProjectionClient, ProjectionServiceError
from .models import (
    FiMetrics,
    MonteCarloRequest,
    MonteCarloResult,
    ProjectionRequest,
    RetirementProjection,
    SimpleProjectionRequest,
    YearlyProjection,
)

__all__ = [
    "ProjectionClient",
    "ProjectionServiceError",
    "FiMetrics",
    "MonteCarloRequest",
    "MonteCarloResult",
    "ProjectionRequest",
    "RetirementProjection",
    "SimpleProjectionRequest",
    "YearlyProjection",
]
