"""
Projection controller — the single object a page talks to.

Holds the plan, its persisted overrides, the transient What-If adjustments,
the asset breakdown and the horizon context. Every ``set_state`` call
re-fingerprints that state and hands the checksum to the scheduler, which
decides whether a request goes out now, later, or not at all.

A calculation always composes a fresh request from the current state; the
checksum is only a change signal and is never decoded back into inputs.

Responses are tagged with a monotonic sequence number. A response that is
older than the last one applied is dropped, so a slow early request cannot
overwrite a newer projection.

Inside a running event loop, scheduler-driven fetches run on the loop's
default executor and are applied from a done-callback on the loop thread.
Outside a loop they run inline.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import functools
import itertools
import logging
from typing import Optional

from composer.adjustments import compose, compose_simple, effective_values
from composer.checksum import projection_checksum
from composer.validators import validate_plan
from core.config import EngineConfig
from core.schema import (
    AssetBreakdown,
    Plan,
    ProjectionContext,
    ScenarioOverrides,
    WhatIfAdjustments,
)
from service.client import ProjectionClient, ProjectionServiceError
from service.models import RetirementProjection
from solver.metrics import FiSnapshot, compute_fi_snapshot

from .scheduler import RecalculationScheduler, TimerFactory

logger = logging.getLogger(__name__)

_UNSET = object()


class ProjectionController:
    """
    Parameters
    ----------
    client : ProjectionClient
        Anything with ``fetch_projection(plan_id, request)``.
    config : EngineConfig, optional
        Debounce window and defaults; ``EngineConfig()`` when omitted.
    timer_factory : callable, optional
        Passed through to the scheduler (tests use a manual timer).
    """

    def __init__(
        self,
        client: ProjectionClient,
        config: Optional[EngineConfig] = None,
        *,
        timer_factory: Optional[TimerFactory] = None,
    ):
        self.client = client
        self.config = config or EngineConfig()
        self.scheduler = RecalculationScheduler(
            self._dispatch,
            debounce_seconds=self.config.debounce_seconds,
            timer_factory=timer_factory,
        )

        self.plan: Optional[Plan] = None
        self.overrides = ScenarioOverrides()
        self.adjustments = WhatIfAdjustments()
        self.assets: Optional[AssetBreakdown] = None
        self.context = ProjectionContext()

        self._projection: Optional[RetirementProjection] = None
        self._error: Optional[str] = None
        self._in_flight = 0
        self._sequence = itertools.count(1)
        self._applied_sequence = 0
        self._dispatched = set()
        self._checksum = 0

    # ---- read-only state ---------------------------------------------------
    @property
    def projection(self) -> Optional[RetirementProjection]:
        return self._projection

    @property
    def is_calculating(self) -> bool:
        return self._in_flight > 0

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def checksum(self) -> int:
        return self._checksum

    @property
    def is_ready(self) -> bool:
        return self.plan is not None and self.assets is not None

    # ---- inputs ------------------------------------------------------------
    def set_state(
        self,
        *,
        plan=_UNSET,
        overrides=_UNSET,
        adjustments=_UNSET,
        assets=_UNSET,
        context=_UNSET,
    ) -> int:
        """
        Replace any subset of the inputs, then let the scheduler decide.

        A new plan or new overrides rebuild the context (ages, monthly
        investment) unless a context is passed alongside. Returns the new
        checksum.
        """
        if plan is not _UNSET:
            if plan is not None and plan != self.plan:
                for msg in validate_plan(plan).warnings:
                    logger.warning("Plan %s: %s", plan.id, msg)
            self.plan = plan
        if overrides is not _UNSET:
            self.overrides = overrides or ScenarioOverrides()
        if adjustments is not _UNSET:
            self.adjustments = adjustments or WhatIfAdjustments()
        if assets is not _UNSET:
            self.assets = assets
        if context is not _UNSET:
            self.context = context or ProjectionContext()
        elif self.plan is not None and (plan is not _UNSET or overrides is not _UNSET):
            self.context = self._context_for(self.plan)

        self._checksum = projection_checksum(
            self.plan,
            self.overrides,
            self.adjustments,
            self.assets or AssetBreakdown(),
            self.context,
        )
        self.scheduler.update(self._checksum, self.is_ready)
        return self._checksum

    def _context_for(self, plan: Plan, today: Optional[dt.date] = None) -> ProjectionContext:
        ctx = ProjectionContext.from_plan(
            plan,
            self.overrides,
            display_currency=self.context.display_currency,
            portfolio_ids=self.context.portfolio_ids,
            rental_income_monthly=self.context.rental_income_monthly,
            today=today,
        )
        if ctx.current_age is None:
            logger.debug("Plan %s has no year of birth; current age unknown", plan.id)
        return ctx

    # ---- actions -----------------------------------------------------------
    def calculate(self) -> Optional[RetirementProjection]:
        """Compose a request from the current state and fetch a projection.

        Blocks on the HTTP round trip. Scheduler-driven calculations inside a
        running event loop go through ``_dispatch`` instead.
        """
        if not self.is_ready:
            logger.debug("Not ready (plan=%s, assets=%s)", self.plan is not None, self.assets is not None)
            return None

        seq, request = self._next_request()
        self._in_flight += 1
        try:
            result = self.client.fetch_projection(self.plan.id, request)
        except ProjectionServiceError as exc:
            self._record_failure(seq, exc)
            return None
        finally:
            self._in_flight -= 1
        return self._apply(seq, result)

    async def wait_idle(self) -> None:
        """Wait until every request dispatched to the executor has been applied."""
        while self._dispatched:
            await asyncio.gather(*list(self._dispatched), return_exceptions=True)

    def _dispatch(self) -> None:
        """Scheduler callback: keep the fetch off the event loop when one is running."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.calculate()
            return
        if not self.is_ready:
            return

        seq, request = self._next_request()
        self._in_flight += 1
        future = loop.run_in_executor(None, self.client.fetch_projection, self.plan.id, request)
        self._dispatched.add(future)
        future.add_done_callback(functools.partial(self._on_fetched, seq))

    def _on_fetched(self, seq: int, future: asyncio.Future) -> None:
        self._in_flight -= 1
        self._dispatched.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            self._apply(seq, future.result())
        elif isinstance(exc, ProjectionServiceError):
            self._record_failure(seq, exc)
        else:
            raise exc

    def _next_request(self):
        seq = next(self._sequence)
        request = compose(self.plan, self.overrides, self.adjustments, self.assets, self.context)
        return seq, request

    def _apply(self, seq: int, result: RetirementProjection) -> Optional[RetirementProjection]:
        if seq < self._applied_sequence:
            logger.warning(
                "Discarding stale projection #%d (already applied #%d)",
                seq, self._applied_sequence,
            )
            return None
        self._applied_sequence = seq
        self._projection = result
        self._error = None
        return result

    def _record_failure(self, seq: int, exc: ProjectionServiceError) -> None:
        if seq < self._applied_sequence:
            logger.warning("Discarding failure of stale request #%d: %s", seq, exc)
            return
        logger.error("Projection request #%d failed", seq, exc_info=exc)
        self._error = str(exc)

    def recalculate(self) -> Optional[RetirementProjection]:
        """Calculate now, bypassing the debounce."""
        return self.calculate()

    def flush(self) -> bool:
        return self.scheduler.flush()

    def reset(self) -> None:
        """Forget the baseline; the next ready ``set_state`` calculates at once."""
        self.scheduler.reset()
        self._error = None

    # ---- derived -----------------------------------------------------------
    def fi_snapshot(self) -> Optional[FiSnapshot]:
        """FI metrics for the current state, preferring the service's numbers."""
        if self.plan is None:
            return None
        values = effective_values(
            self.plan, self.overrides, self.adjustments, self.assets, self.context
        )
        income = (
            values.pension_monthly
            + values.social_security_monthly
            + values.other_income_monthly
            + values.rental_income_monthly
        )
        working_income = self.overrides.resolve("working_income_monthly", self.plan)
        service_metrics = self._projection.fi_metrics if self._projection else None
        return compute_fi_snapshot(
            liquid_assets=values.liquid_assets,
            monthly_expenses=max(0.0, values.monthly_expenses - income),
            monthly_investment=values.monthly_contribution,
            working_income_monthly=working_income,
            current_age=values.current_age,
            retirement_age=values.retirement_age,
            expected_return_rate=values.blended_return_rate,
            inflation_rate=values.inflation_rate,
            service_metrics=service_metrics,
            swr=self.config.safe_withdrawal_rate,
        )


def fetch_simple_projection(
    client: ProjectionClient,
    plan: Plan,
    assets: Optional[AssetBreakdown],
    display_currency: Optional[str] = None,
) -> Optional[RetirementProjection]:
    """
    Widget mode: the service applies the stored plan; only currency and asset
    totals are sent. Returns None until assets are available.
    """
    if assets is None:
        return None
    request = compose_simple(plan, assets, display_currency)
    try:
        return client.fetch_projection(plan.id, request)
    except ProjectionServiceError:
        logger.exception("Simple projection for plan %s failed", plan.id)
        return None
