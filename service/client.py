"""
HTTP client for the remote projection service.

The service owns the yearly cash-flow simulation and the Monte Carlo path
generator; this client only posts composed requests and validates the
``{"data": ...}`` envelopes that come back.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Type, TypeVar

import requests
from pydantic import BaseModel, ValidationError

from .models import (
    MonteCarloRequest,
    MonteCarloResult,
    ProjectionRequest,
    RetirementProjection,
    SimpleProjectionRequest,
)

logger = logging.getLogger(__name__)

_M = TypeVar("_M", bound=BaseModel)


class ProjectionServiceError(RuntimeError):
    """Non-2xx response, transport failure, or an unreadable payload."""

    def __init__(self, message: str, *, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class ProjectionClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config, *, session: Optional[requests.Session] = None) -> "ProjectionClient":
        return cls(config.api_base_url, timeout=config.request_timeout, session=session)

    def fetch_projection(
        self, plan_id: str, request: ProjectionRequest | SimpleProjectionRequest
    ) -> RetirementProjection:
        return self._post(
            f"/projection/{plan_id}",
            request.to_payload(),
            RetirementProjection,
            failure="Failed to fetch projection",
        )

    def run_monte_carlo(self, plan_id: str, request: MonteCarloRequest) -> MonteCarloResult:
        return self._post(
            f"/projection/{plan_id}/monte-carlo",
            request.to_payload(),
            MonteCarloResult,
            failure="Failed to run Monte Carlo simulation",
        )

    def _post(self, path: str, payload: Dict[str, Any], model: Type[_M], *, failure: str) -> _M:
        url = f"{self.base_url}{path}"
        logger.debug("POST %s", url)
        try:
            resp = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ProjectionServiceError(f"{failure}: {exc}") from exc

        if not resp.ok:
            raise ProjectionServiceError(
                f"{failure}: HTTP {resp.status_code}", status_code=resp.status_code
            )

        try:
            body = resp.json()
        except ValueError as exc:
            raise ProjectionServiceError(
                f"{failure}: response is not JSON", status_code=resp.status_code
            ) from exc

        data = body.get("data") if isinstance(body, dict) else None
        if data is None:
            raise ProjectionServiceError(
                f"{failure}: response has no data", status_code=resp.status_code
            )
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ProjectionServiceError(
                f"{failure}: unexpected payload ({exc.error_count()} errors)",
                status_code=resp.status_code,
            ) from exc
