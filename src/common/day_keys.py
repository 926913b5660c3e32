# ABOUTME: Buckets epoch-millisecond timestamps into calendar days.
# ABOUTME: Uses one fixed reference timezone so every caller agrees near midnight.

from __future__ import annotations

import math
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import List, Optional

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def finite_epoch_ms(value) -> int:
    """Timestamp as int milliseconds; missing, non-finite or unrepresentable values become 0."""

    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    try:
        _EPOCH + timedelta(milliseconds=number)
    except OverflowError:
        return 0
    return int(number)


def day_key(epoch_ms: float, tz: Optional[tzinfo] = None) -> date:
    """Calendar date of ``epoch_ms`` in ``tz`` (UTC when omitted)."""

    moment = _EPOCH + timedelta(milliseconds=finite_epoch_ms(epoch_ms))
    try:
        return moment.astimezone(tz or timezone.utc).date()
    except OverflowError:
        return moment.date()


def day_range(period_days: int, reference_date: date) -> List[date]:
    """Consecutive days ending at ``reference_date``, oldest first."""

    if period_days <= 0:
        return []
    start = reference_date - timedelta(days=period_days - 1)
    return [start + timedelta(days=offset) for offset in range(period_days)]


def today(tz: Optional[tzinfo] = None) -> date:
    return datetime.now(tz or timezone.utc).date()
