"""
Checksum engine — cheap uint32 fingerprints for change detection.

djb2 variant: seed 5381, then ``h = (h * 33) ^ unit`` per UTF-16 code unit,
kept to unsigned 32 bits. The fingerprint is advisory only: a false match
skips one recompute, a false mismatch costs one extra request. The request
itself is always rebuilt from current state, never from a checksum.

Inputs are serialized with sorted keys so equal structures always hash
equally regardless of dict insertion order.
"""

from __future__ import annotations

import json
import math
from dataclasses import asdict, is_dataclass
from typing import Any, Optional

from core.schema import (
    AssetBreakdown,
    Plan,
    ProjectionContext,
    ScenarioOverrides,
    WhatIfAdjustments,
)
from core.utils import round_money

_MASK32 = 0xFFFFFFFF
_SEED = 5381


def hash_string(text: str) -> int:
    h = _SEED
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = ((h * 33) ^ unit) & _MASK32
    return h


def _normalize(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        value = asdict(value)
    if isinstance(value, dict):
        return {str(k): _normalize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize(v) for v in value]
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        if value.is_integer():
            return int(value)
    return value


def canonical_json(obj: Any) -> str:
    return json.dumps(_normalize(obj), sort_keys=True, separators=(",", ":"))


def checksum(obj: Any) -> int:
    return hash_string(canonical_json(obj))


def plan_checksum(plan: Optional[Plan]) -> int:
    if plan is None:
        return 0
    return checksum(plan.projection_fields())


def what_if_checksum(
    overrides: ScenarioOverrides,
    adjustments: WhatIfAdjustments,
    context: ProjectionContext,
) -> int:
    return checksum(
        {
            "scenarioOverrides": overrides.to_dict(),
            "whatIfAdjustments": adjustments.to_dict(),
            "context": context.to_dict(),
        }
    )


def asset_checksum(assets: AssetBreakdown) -> int:
    return checksum([round_money(assets.liquid_assets), round_money(assets.non_spendable_assets)])


def _rotl16(x: int) -> int:
    return ((x << 16) | (x >> 16)) & _MASK32


def projection_checksum(
    plan: Optional[Plan],
    overrides: ScenarioOverrides,
    adjustments: WhatIfAdjustments,
    assets: AssetBreakdown,
    context: ProjectionContext,
) -> int:
    """Combined fingerprint of everything that changes the projection request."""
    currency = hash_string(context.display_currency) if context.display_currency else 0
    combined = (
        _rotl16(plan_checksum(plan))
        ^ what_if_checksum(overrides, adjustments, context)
        ^ asset_checksum(assets)
        ^ currency
    )
    return combined & _MASK32
