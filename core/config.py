"""
Engine configuration.
Debounce and timeout values are tunables, not protocol constants.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Tuple

from .schema import DEFAULT_LIFE_EXPECTANCY, DEFAULT_RETIREMENT_AGE
from .utils import safe_float


@dataclass(frozen=True)
class EngineConfig:
    api_base_url: str = "http://localhost:8080/api/independence"
    request_timeout: float = 30.0

    # slider drags emit one event per tick; batch them
    debounce_ms: int = 300

    default_retirement_age: int = DEFAULT_RETIREMENT_AGE
    default_life_expectancy: int = DEFAULT_LIFE_EXPECTANCY

    # 4% SWR -> 25x multiplier
    safe_withdrawal_rate: float = 0.04

    iteration_options: Tuple[int, ...] = (500, 1000, 2000, 5000)
    default_iterations: int = 1000

    def __post_init__(self):
        if self.debounce_ms < 0:
            raise ValueError("debounce_ms must be >= 0")
        if self.safe_withdrawal_rate <= 0:
            raise ValueError("safe_withdrawal_rate must be > 0")
        if self.default_iterations not in self.iteration_options:
            raise ValueError(
                f"default_iterations {self.default_iterations} not in {self.iteration_options}"
            )

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000.0

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Read overrides from PROJECTION_API_URL, PROJECTION_TIMEOUT_SECONDS, RECALC_DEBOUNCE_MS."""
        base = cls()
        return cls(
            api_base_url=os.getenv("PROJECTION_API_URL", base.api_base_url).rstrip("/"),
            request_timeout=safe_float(
                os.getenv("PROJECTION_TIMEOUT_SECONDS"), default=base.request_timeout
            ),
            debounce_ms=int(
                safe_float(os.getenv("RECALC_DEBOUNCE_MS"), default=base.debounce_ms)
            ),
        )
