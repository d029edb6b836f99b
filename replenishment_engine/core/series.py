# replenishment_engine/core/series.py
"""Weekly demand series built from raw sale events.

A weekly series is a plain list of floats, oldest week first, with exactly
one bucket per Monday-Sunday week in the window. Weeks without sales are 0.
"""
from datetime import date, datetime
from typing import Dict, Hashable, Iterable, List, Optional, Tuple, Union

from replenishment_engine.exceptions import ValidationError
from replenishment_engine.utils.date_utils import completed_weeks, week_start

SaleEvent = Tuple[float, datetime]
TargetSaleRow = Tuple[Hashable, Hashable, float, datetime]


def _week_index(as_of: Union[date, datetime], weeks: int) -> Dict[date, int]:
    if weeks < 1:
        raise ValidationError(f"Series window must be at least one week, got {weeks}")
    return {start: i for i, start in enumerate(completed_weeks(as_of, weeks))}


def aggregate_weekly_series(
    events: Iterable[SaleEvent],
    weeks: int,
    as_of: Optional[Union[date, datetime]] = None
) -> List[float]:
    """Bucket (quantity, timestamp) sale events into a fixed-length weekly series.

    Args:
        events: Sale events for one variant at one location
        weeks: Window length in weeks
        as_of: Reference day; the window ends with the last completed week
            before it (defaults to today)

    Returns:
        List of `weeks` weekly totals, oldest first
    """
    index = _week_index(as_of or date.today(), weeks)
    series = [0.0] * weeks

    for quantity, occurred_at in events:
        idx = index.get(week_start(occurred_at))
        if idx is not None:
            series[idx] += quantity

    return series


def aggregate_weekly_series_by_target(
    rows: Iterable[TargetSaleRow],
    weeks: int,
    as_of: Optional[Union[date, datetime]] = None
) -> Dict[Tuple[Hashable, Hashable], List[float]]:
    """Batch form of aggregate_weekly_series.

    Args:
        rows: (variant_id, location_id, quantity, timestamp) rows
        weeks: Window length in weeks
        as_of: Reference day (defaults to today)

    Returns:
        Dictionary keyed by (variant_id, location_id). Targets without any
        sale in the window are absent.
    """
    index = _week_index(as_of or date.today(), weeks)
    series_by_target: Dict[Tuple[Hashable, Hashable], List[float]] = {}

    for variant_id, location_id, quantity, occurred_at in rows:
        idx = index.get(week_start(occurred_at))
        if idx is None:
            continue
        key = (variant_id, location_id)
        if key not in series_by_target:
            series_by_target[key] = [0.0] * weeks
        series_by_target[key][idx] += quantity

    return series_by_target
