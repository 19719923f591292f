"""Core domain models.

Every engine component and storage function operates on these types.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

import math
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Denomination(str, Enum):
    """The seven narrative dice, identified by their canonical short code."""

    BOOST = "b"
    ABILITY = "a"
    PROFICIENCY = "p"
    SETBACK = "s"
    DIFFICULTY = "d"
    CHALLENGE = "c"
    FORCE = "f"


class Affinity(str, Enum):
    """Which side of the force die counts as good. Ignored by the other dice."""

    LIGHT = "light"
    DARK = "dark"


DenominationClass = Literal["positive", "negative", "force"]


class SymbolCounts(BaseModel):
    """Symbol totals printed on a single die face. A blank face is all zeros."""

    model_config = ConfigDict(frozen=True)

    success: int = Field(default=0, ge=0)
    advantage: int = Field(default=0, ge=0)
    triumph: int = Field(default=0, ge=0)
    failure: int = Field(default=0, ge=0)
    threat: int = Field(default=0, ge=0)
    despair: int = Field(default=0, ge=0)
    light: int = Field(default=0, ge=0)
    dark: int = Field(default=0, ge=0)


class Ranking(BaseModel):
    """Worst-to-best ordering of one die's faces for one affinity.

    `utility` maps each face to its tier index; faces whose ordering keys
    compare equal share a tier, and tier 0 is the worst tier present.
    """

    model_config = ConfigDict(frozen=True)

    denomination: Denomination
    affinity: Affinity
    faces: tuple[int, ...]
    worst_to_best: tuple[int, ...]
    rank_index: dict[int, int]
    utility: dict[int, int]
    max_tier: int


class FaceResult(BaseModel):
    """Outcome of passing one rolled face through the engine."""

    denomination: Denomination
    original: int
    final: int
    bias: float = 0.0

    @property
    def adjusted(self) -> bool:
        return self.final != self.original


class KarmicChange(BaseModel):
    """A face the engine replaced, as shown in the chat summary."""

    die_type: str
    original_result: int
    adjusted_result: int


# ---------------------------------------------------------------------------
# Averages report
# ---------------------------------------------------------------------------


class DieAverage(BaseModel):
    n: int = 0
    avg: float | None = None


class ForceAverage(BaseModel):
    n: int = 0
    light: float | None = None
    dark: float | None = None


class AveragesReport(BaseModel):
    """Per-user read view of history: sample count and average quality per die."""

    b: DieAverage = Field(default_factory=DieAverage)
    a: DieAverage = Field(default_factory=DieAverage)
    p: DieAverage = Field(default_factory=DieAverage)
    s: DieAverage = Field(default_factory=DieAverage)
    d: DieAverage = Field(default_factory=DieAverage)
    c: DieAverage = Field(default_factory=DieAverage)
    f: ForceAverage = Field(default_factory=ForceAverage)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def _finite(value: Any) -> float | None:
    """Coerce to a finite float, or None. Booleans are not numbers here."""
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _flag(value: Any) -> bool | None:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0", "yes", "no", "on", "off"):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return None


def _affinity(value: Any) -> str | None:
    if isinstance(value, Affinity):
        return value.value
    if value in ("light", "dark"):
        return value
    return None


# (field, minimum) for non-negative numeric settings
_FLOAT_FIELDS: dict[str, float] = {
    "base_bias": 0.0,
    "streak_ramp": 0.0,
    "max_bias": 0.0,
}
# (field, minimum) for integer settings
_INT_FIELDS: dict[str, int] = {
    "window_size": 1,
    "min_samples": 0,
    "max_delta_ranks": 0,
}
_BOOL_FIELDS = (
    "enabled",
    "debug",
    "force_karma_enabled",
    "persist_history",
    "show_averages_table",
)


class KarmicSettings(BaseModel):
    """Validated engine settings.

    Built from the flat config mapping. Values that are non-finite, of the
    wrong type, or out of range are dropped so the field default applies;
    constructing settings never raises for a bad value.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    enabled: bool = True
    debug: bool = False
    force_karma_enabled: bool = True

    window_size: int = 50
    min_samples: int = 10

    low_threshold: float = 0.35

    base_bias: float = 1.2
    streak_ramp: float = 0.6
    max_bias: float = 6.0
    max_delta_ranks: int = 2

    persist_history: bool = True

    default_affinity: Affinity = Affinity.LIGHT
    affinity_map: dict[str, Affinity] = Field(default_factory=dict)

    show_averages_table: bool = False

    @model_validator(mode="before")
    @classmethod
    def _sanitize(cls, data: Any) -> dict[str, Any]:
        if not isinstance(data, dict):
            return {}
        clean: dict[str, Any] = {}

        for name in _BOOL_FIELDS:
            if name in data:
                flag = _flag(data[name])
                if flag is not None:
                    clean[name] = flag

        for name, minimum in _INT_FIELDS.items():
            number = _finite(data.get(name))
            if number is not None and number >= minimum:
                clean[name] = math.floor(number)

        for name, minimum in _FLOAT_FIELDS.items():
            number = _finite(data.get(name))
            if number is not None and number >= minimum:
                clean[name] = number

        threshold = _finite(data.get("low_threshold"))
        if threshold is not None:
            clean["low_threshold"] = min(1.0, max(0.0, threshold))

        default_affinity = _affinity(data.get("default_affinity"))
        if default_affinity is not None:
            clean["default_affinity"] = default_affinity

        raw_map = data.get("affinity_map")
        if isinstance(raw_map, dict):
            clean["affinity_map"] = {
                str(key): value
                for key, value in raw_map.items()
                if _affinity(value) is not None
            }

        return clean
