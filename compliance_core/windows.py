"""
Trailing timeframe windows.

A window is either a day count or a calendar-month count, anchored at an
explicit ``now``. Records without a date never fall inside any window, even a
very large one; unwindowed totals still count them.
"""
from __future__ import annotations
import logging
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from compliance_core.records import NormalizedRecord
from compliance_core.utils import ensure_utc, subtract_months, utc_now

logger = logging.getLogger(__name__)

WINDOW_PATTERN = re.compile(r"^\s*(\d+)\s*([dm])\s*$", re.IGNORECASE)
EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


class WindowSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    unit: Literal["days", "months"]
    count: int = Field(ge=0)

    def cutoff(self, now: datetime) -> datetime:
        now = ensure_utc(now)
        try:
            if self.unit == "days":
                return now - timedelta(days=self.count)
            return subtract_months(now, self.count)
        except (OverflowError, ValueError):
            # window reaches past year 1
            return EARLIEST

    @property
    def key(self) -> str:
        return f"{self.count}{'d' if self.unit == 'days' else 'm'}"

    @property
    def label(self) -> str:
        noun = "day" if self.unit == "days" else "month"
        return f"Last {self.count} {noun}{'' if self.count == 1 else 's'}"


def Days(n: int) -> WindowSpec:
    """Build a trailing window of ``n`` days."""
    return WindowSpec(unit="days", count=n)


def Months(n: int) -> WindowSpec:
    """Build a trailing window of ``n`` calendar months."""
    return WindowSpec(unit="months", count=n)


PRESET_WINDOWS: Dict[str, WindowSpec] = {
    "7d": Days(7),
    "30d": Days(30),
    "6m": Months(6),
}


def parse_window(value: Union[WindowSpec, str]) -> WindowSpec:
    """Accept a WindowSpec, a preset key, or a string such as ``"14d"`` or ``"3m"``."""
    if isinstance(value, WindowSpec):
        return value
    if isinstance(value, str):
        if value in PRESET_WINDOWS:
            return PRESET_WINDOWS[value]
        match = WINDOW_PATTERN.match(value)
        if match:
            count, unit = match.groups()
            return Days(int(count)) if unit.lower() == "d" else Months(int(count))
    raise ValueError(
        f"Unsupported window: '{value}'. Use a count followed by 'd' or 'm', e.g. {list(PRESET_WINDOWS)}"
    )


def windowed(
    records: Iterable[NormalizedRecord],
    window: WindowSpec,
    now: Optional[datetime] = None,
) -> List[NormalizedRecord]:
    """Keep records dated on or after the window's cutoff."""
    cutoff = window.cutoff(now if now is not None else utc_now())
    records = list(records)
    kept = [r for r in records if r.date is not None and ensure_utc(r.date) >= cutoff]
    logger.debug("Window %s kept %d of %d records", window.key, len(kept), len(records))
    return kept
