# replenishment_engine/services/forecast_service.py
"""Batch demand forecasting for variant x location targets.

Sales history for the whole batch is loaded in one query, each target is
forecast independently (optionally on a thread pool) and every result is
upserted and committed on its own, so one failing target never aborts the
rest of the run and a rerun converges to the same rows.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Hashable, List, Optional, Sequence, Tuple, Union

from sqlalchemy.orm import Session

from replenishment_engine.config import config
from replenishment_engine.core.demand_forecast import confidence_band, forecast_series
from replenishment_engine.core.parameters import ForecastParameters
from replenishment_engine.exceptions import ForecastError
from replenishment_engine.models import DemandForecast, ForecastMethod, InventoryLevel
from replenishment_engine.services.sales_history import SalesHistoryService
from replenishment_engine.utils.date_utils import next_period
from replenishment_engine.utils.validation import require_valid, validate_forecast_parameters

logger = logging.getLogger(__name__)

Target = Tuple[Hashable, Hashable]


@dataclass(frozen=True)
class ForecastResult:
    variant_id: Hashable
    location_id: Hashable
    period_start: date
    period_end: date
    predicted_demand: float
    method_used: ForecastMethod
    requested_method: ForecastMethod
    confidence_low: float
    confidence_high: float
    mape_score: Optional[float]


@dataclass(frozen=True)
class ForecastRunReport:
    period_start: date
    period_end: date
    written: int
    skipped_manual: List[Target]
    failed: List[Tuple[Target, str]]


def compute_forecast(
    target: Target,
    series: Sequence[float],
    period: Tuple[date, date],
    forced_method: Optional[ForecastMethod],
    params: ForecastParameters
) -> ForecastResult:
    """Forecast one target from its weekly series. Pure; safe to run on any thread."""
    outcome = forecast_series(series, forced_method, params)
    low, high = confidence_band(outcome.predicted_demand, series)

    return ForecastResult(
        variant_id=target[0],
        location_id=target[1],
        period_start=period[0],
        period_end=period[1],
        predicted_demand=outcome.predicted_demand,
        method_used=outcome.method_used,
        requested_method=outcome.requested_method,
        confidence_low=low,
        confidence_high=high,
        mape_score=outcome.mape_score
    )


class ForecastService:
    """Service for generating and reading demand forecasts."""

    def __init__(
        self,
        session: Session,
        params: Optional[ForecastParameters] = None,
        max_workers: Optional[int] = None
    ):
        """Initialize the forecast service.

        Args:
            session: Database session
            params: Forecast parameters (defaults to the FORECAST config section)
            max_workers: Worker threads for per-target computation; 1 runs inline
        """
        self.session = session
        self.params = params or config.forecast_parameters
        require_valid(validate_forecast_parameters(self.params), 'forecast parameters')

        if max_workers is None:
            max_workers = config.batch_config['max_workers']
        self.max_workers = max(1, max_workers or 1)

        self.history = SalesHistoryService(session)

    def get_all_targets(self) -> List[Target]:
        """All distinct (variant, location) pairs that carry inventory."""
        rows = self.session.query(
            InventoryLevel.product_variant_id, InventoryLevel.location_id
        ).distinct().order_by(
            InventoryLevel.product_variant_id, InventoryLevel.location_id
        ).all()
        return [(row[0], row[1]) for row in rows]

    def get_manual_targets(self, targets: List[Target], period_start: date) -> set:
        """Targets that already have a MANUAL forecast for the period."""
        if not targets:
            return set()

        rows = self.session.query(
            DemandForecast.product_variant_id, DemandForecast.location_id
        ).filter(
            DemandForecast.product_variant_id.in_(list({t[0] for t in targets})),
            DemandForecast.location_id.in_(list({t[1] for t in targets})),
            DemandForecast.period_start == period_start,
            DemandForecast.forecast_method == ForecastMethod.MANUAL
        ).all()
        return {(row[0], row[1]) for row in rows}

    def run_demand_forecasting(
        self,
        targets: Optional[List[Target]] = None,
        forced_method: Optional[ForecastMethod] = None,
        as_of: Optional[Union[date, datetime]] = None
    ) -> int:
        """Forecast next week's demand and upsert one row per target.

        Args:
            targets: (variant_id, location_id) pairs; defaults to every pair
                with an inventory level
            forced_method: Use this method for every target instead of
                automatic selection
            as_of: Reference day (defaults to today)

        Returns:
            Number of forecast rows written
        """
        return self.run_demand_forecasting_detailed(targets, forced_method, as_of).written

    def run_demand_forecasting_detailed(
        self,
        targets: Optional[List[Target]] = None,
        forced_method: Optional[ForecastMethod] = None,
        as_of: Optional[Union[date, datetime]] = None
    ) -> ForecastRunReport:
        """Same as run_demand_forecasting but reports skipped and failed targets."""
        if forced_method == ForecastMethod.MANUAL:
            raise ForecastError("MANUAL forecasts cannot be generated", code='UNSUPPORTED_METHOD')

        as_of = as_of or date.today()
        period = next_period(as_of)

        if targets is None:
            targets = self.get_all_targets()
        # Preserve order, drop duplicates
        targets = list(dict.fromkeys((t[0], t[1]) for t in targets))

        if not targets:
            return ForecastRunReport(period[0], period[1], 0, [], [])

        manual = self.get_manual_targets(targets, period[0])
        skipped = [t for t in targets if t in manual]
        pending = [t for t in targets if t not in manual]

        logger.info(f"Forecasting {len(pending)} targets for period starting {period[0]} "
                    f"({len(skipped)} under manual override)")

        series_by_target = self.history.load_weekly_series(
            pending, self.params.history_weeks, as_of
        )

        results, failed = self._compute_all(pending, series_by_target, period, forced_method)

        written = 0
        for result in results:
            target = (result.variant_id, result.location_id)
            try:
                if self._upsert_forecast(result):
                    self.session.commit()
                    written += 1
                else:
                    skipped.append(target)
            except Exception as e:
                self.session.rollback()
                logger.error(f"Error saving forecast for target {target}: {str(e)}")
                failed.append((target, str(e)))

        if failed:
            logger.warning(f"{len(failed)} forecast targets failed")
        logger.info(f"Upserted {written} forecast rows")

        return ForecastRunReport(period[0], period[1], written, skipped, failed)

    def _compute_all(
        self,
        targets: List[Target],
        series_by_target: Dict[Target, List[float]],
        period: Tuple[date, date],
        forced_method: Optional[ForecastMethod]
    ) -> Tuple[List[ForecastResult], List[Tuple[Target, str]]]:
        results = []
        failed = []

        def run(target):
            return compute_forecast(
                target, series_by_target[target], period, forced_method, self.params
            )

        if self.max_workers == 1 or len(targets) == 1:
            for target in targets:
                try:
                    results.append(run(target))
                except Exception as e:
                    logger.error(f"Error forecasting target {target}: {str(e)}")
                    failed.append((target, str(e)))
            return results, failed

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [(target, executor.submit(run, target)) for target in targets]
            for target, future in futures:
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.error(f"Error forecasting target {target}: {str(e)}")
                    failed.append((target, str(e)))

        return results, failed

    def _upsert_forecast(self, result: ForecastResult) -> bool:
        """Insert or update the forecast row for a target and period.

        Returns:
            False if a MANUAL row appeared for the period in the meantime
        """
        row = self.session.query(DemandForecast).filter(
            DemandForecast.product_variant_id == result.variant_id,
            DemandForecast.location_id == result.location_id,
            DemandForecast.period_start == result.period_start
        ).one_or_none()

        if row is not None and row.forecast_method == ForecastMethod.MANUAL:
            return False

        if row is None:
            row = DemandForecast(
                product_variant_id=result.variant_id,
                location_id=result.location_id,
                period_start=result.period_start
            )
            self.session.add(row)

        row.period_end = result.period_end
        row.forecasted_demand = result.predicted_demand
        row.forecast_method = result.method_used
        row.requested_method = result.requested_method
        row.confidence_low = result.confidence_low
        row.confidence_high = result.confidence_high
        row.mape_score = result.mape_score
        row.generated_at = datetime.now()

        self.session.flush()
        return True

    def get_latest_forecast(
        self,
        variant_id: Hashable,
        location_id: Hashable
    ) -> Optional[DemandForecast]:
        """Most recent forecast for a variant at a location, or None."""
        return self.session.query(DemandForecast).filter(
            DemandForecast.product_variant_id == variant_id,
            DemandForecast.location_id == location_id
        ).order_by(DemandForecast.period_start.desc()).first()

    def get_latest_forecasts(
        self,
        variant_id: Hashable,
        location_ids: List[Hashable]
    ) -> Dict[Hashable, DemandForecast]:
        """Most recent forecast per location for a variant, in one query."""
        if not location_ids:
            return {}

        rows = self.session.query(DemandForecast).filter(
            DemandForecast.product_variant_id == variant_id,
            DemandForecast.location_id.in_(location_ids)
        ).order_by(
            DemandForecast.location_id, DemandForecast.period_start.desc()
        ).all()

        latest = {}
        for row in rows:
            latest.setdefault(row.location_id, row)
        return latest

    def get_weekly_sales_history(
        self,
        variant_id: Hashable,
        location_id: Hashable,
        weeks: Optional[int] = None,
        as_of: Optional[Union[date, datetime]] = None
    ) -> List[Tuple[date, float]]:
        """Weekly sales for one variant at one location, oldest first."""
        return self.history.get_weekly_sales_history(
            variant_id, location_id, weeks or self.params.history_weeks, as_of
        )
