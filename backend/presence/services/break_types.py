"""Static break-type table shared by the break ledger and the API layer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional

from presence.models.enums import BreakType

# A break off its expected length by more than this is called out in summaries.
VARIANCE_THRESHOLD_MINUTES = 5


@dataclass(frozen=True)
class BreakTypeConfig:
    display_name: str
    emoji: str
    expected_minutes: Optional[int]


BREAK_TYPES: Mapping[BreakType, BreakTypeConfig] = {
    BreakType.SHORT: BreakTypeConfig("Short Break", "☕", 15),
    BreakType.LUNCH: BreakTypeConfig("Lunch Break", "🍽️", 45),
    BreakType.PERSONAL: BreakTypeConfig("Personal Break", "🚶", 20),
    BreakType.MEETING: BreakTypeConfig("Meeting Break", "📅", None),
}

_missing = set(BreakType) - set(BREAK_TYPES)
if _missing:
    raise RuntimeError(f"Break types without configuration: {sorted(m.value for m in _missing)}")


def get_break_config(break_type: BreakType | str) -> BreakTypeConfig:
    return BREAK_TYPES[BreakType(break_type)]


def expected_duration(break_type: BreakType | str) -> Optional[int]:
    return get_break_config(break_type).expected_minutes


def describe_variance(break_type: BreakType | str, duration: Optional[int]) -> dict:
    """Compare an ended break with its expected length.

    Returns ``expected_minutes``, the signed ``difference_minutes`` and a
    ``flag`` of ``"longer"``/``"shorter"`` when the difference is beyond the
    threshold. Purely informational.
    """
    expected = expected_duration(break_type)
    if expected is None or duration is None:
        return {"expected_minutes": expected, "difference_minutes": None, "flag": None}
    difference = duration - expected
    flag = None
    if difference > VARIANCE_THRESHOLD_MINUTES:
        flag = "longer"
    elif difference < -VARIANCE_THRESHOLD_MINUTES:
        flag = "shorter"
    return {"expected_minutes": expected, "difference_minutes": difference, "flag": flag}
