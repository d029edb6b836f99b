# replenishment_engine/services/sales_history.py
import logging
from datetime import date, datetime
from typing import Dict, Hashable, Iterable, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from replenishment_engine.core.series import aggregate_weekly_series_by_target
from replenishment_engine.models import MovementType, StockMovement
from replenishment_engine.utils.date_utils import completed_weeks, window_bounds

logger = logging.getLogger(__name__)

Target = Tuple[Hashable, Hashable]

class SalesHistoryService:
    """Read-only access to the sales ledger as weekly demand series."""

    def __init__(self, session: Session):
        """Initialize the sales history service.

        Args:
            session: Database session
        """
        self.session = session

    def load_sale_rows(
        self,
        variant_ids: Iterable[Hashable],
        location_ids: Iterable[Hashable],
        weeks: int,
        as_of: Union[date, datetime]
    ) -> List[Tuple]:
        """Load all SALE movements for the given variants and locations in one query.

        Args:
            variant_ids: Product variant IDs
            location_ids: Selling location IDs
            weeks: Window length in weeks
            as_of: Reference day

        Returns:
            List of (variant_id, location_id, quantity, occurred_at) rows
        """
        variant_ids = list(set(variant_ids))
        location_ids = list(set(location_ids))
        if not variant_ids or not location_ids:
            return []

        start, end = window_bounds(as_of, weeks)

        rows = self.session.query(
            StockMovement.product_variant_id,
            StockMovement.from_location_id,
            StockMovement.quantity,
            StockMovement.occurred_at
        ).filter(
            StockMovement.movement_type == MovementType.SALE,
            StockMovement.product_variant_id.in_(variant_ids),
            StockMovement.from_location_id.in_(location_ids),
            StockMovement.occurred_at >= start,
            StockMovement.occurred_at < end
        ).all()

        logger.debug(f"Loaded {len(rows)} sale movements for {len(variant_ids)} variants "
                     f"across {len(location_ids)} locations")
        return [tuple(row) for row in rows]

    def load_weekly_series(
        self,
        targets: List[Target],
        weeks: int,
        as_of: Optional[Union[date, datetime]] = None
    ) -> Dict[Target, List[float]]:
        """Weekly demand series for every target, zero-filled where nothing sold.

        Args:
            targets: (variant_id, location_id) pairs
            weeks: Window length in weeks
            as_of: Reference day (defaults to today)

        Returns:
            Dictionary keyed by target
        """
        as_of = as_of or date.today()
        rows = self.load_sale_rows(
            (t[0] for t in targets), (t[1] for t in targets), weeks, as_of
        )
        series_by_target = aggregate_weekly_series_by_target(rows, weeks, as_of)

        return {
            target: series_by_target.get(target, [0.0] * weeks)
            for target in targets
        }

    def get_weekly_sales_history(
        self,
        variant_id: Hashable,
        location_id: Hashable,
        weeks: int = 26,
        as_of: Optional[Union[date, datetime]] = None
    ) -> List[Tuple[date, float]]:
        """Weekly sales for one variant at one location.

        Args:
            variant_id: Product variant ID
            location_id: Location ID
            weeks: Number of completed weeks
            as_of: Reference day (defaults to today)

        Returns:
            List of (week_start, units), oldest first
        """
        as_of = as_of or date.today()
        target = (variant_id, location_id)
        series = self.load_weekly_series([target], weeks, as_of)[target]
        return list(zip(completed_weeks(as_of, weeks), series))
