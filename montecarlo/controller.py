"""
Monte Carlo controller — explicit, user-triggered simulation runs.

Never fires on its own. It reads the same inputs as the deterministic
projection controller and composes with the same rules, so both views agree
on effective values. Results are last-write-wins; the page disables the run
button while ``is_running``.
"""

from __future__ import annotations

import logging
from typing import Optional

from composer.adjustments import compose_monte_carlo
from core.config import EngineConfig
from engine.projection import ProjectionController
from service.client import ProjectionClient, ProjectionServiceError
from service.models import MonteCarloResult

logger = logging.getLogger(__name__)

ITERATION_OPTIONS = (500, 1000, 2000, 5000)


class MonteCarloController:
    def __init__(
        self,
        client: ProjectionClient,
        inputs: ProjectionController,
        config: Optional[EngineConfig] = None,
    ):
        self.client = client
        self.inputs = inputs
        self.config = config or inputs.config
        self.result: Optional[MonteCarloResult] = None
        self.error: Optional[str] = None
        self.is_running = False

    @property
    def iteration_options(self):
        return self.config.iteration_options or ITERATION_OPTIONS

    def run(self, iterations: int = 1000) -> Optional[MonteCarloResult]:
        """
        Run one simulation with the current inputs.

        Returns None when inputs are not ready or the service fails; on
        failure the previous result is kept and ``error`` is set.
        """
        if iterations not in self.iteration_options:
            raise ValueError(
                f"iterations must be one of {self.iteration_options}, got {iterations}"
            )

        src = self.inputs
        if not src.is_ready:
            logger.debug("Monte Carlo not ready: plan or assets missing")
            return None

        if self.is_running:
            logger.warning("Monte Carlo run started while another is in flight; last result wins")

        request = compose_monte_carlo(
            src.plan, src.overrides, src.adjustments, src.assets, src.context,
            iterations=iterations,
        )

        self.is_running = True
        self.error = None
        try:
            result = self.client.run_monte_carlo(src.plan.id, request)
        except ProjectionServiceError as exc:
            logger.exception("Monte Carlo simulation failed (%d iterations)", iterations)
            self.error = str(exc)
            return None
        finally:
            self.is_running = False

        logger.info(
            "Monte Carlo: %d iterations, success rate %.1f%%",
            result.iterations, result.success_rate,
        )
        self.result = result
        return result

    def clear(self) -> None:
        self.result = None
        self.error = None
