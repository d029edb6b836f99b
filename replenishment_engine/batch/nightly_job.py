# replenishment_engine/batch/nightly_job.py
import argparse
import logging
import sys
from datetime import date, datetime
from typing import Callable, Dict, Optional

from replenishment_engine.db import session_scope
from replenishment_engine.exceptions import BatchProcessError, ReplenishmentError
from replenishment_engine.logging_setup import get_logger, log_exception, logger as log_manager
from replenishment_engine.models import ForecastMethod
from replenishment_engine.services.forecast_service import ForecastService
from replenishment_engine.services.safety_stock_service import SafetyStockService

# Initialize logger
logger = get_logger('batch')

def run_demand_forecasting(
    as_of: Optional[date] = None,
    forced_method: Optional[ForecastMethod] = None
) -> Dict:
    """Forecast next week's demand for every variant x location with inventory.

    Args:
        as_of: Reference day (defaults to today)
        forced_method: Optional method to use instead of automatic selection

    Returns:
        Dictionary with forecast run results
    """
    logger.info(f"Running demand forecasting as of {as_of or date.today()}")

    with session_scope() as session:
        forecast_service = ForecastService(session)
        report = forecast_service.run_demand_forecasting_detailed(
            forced_method=forced_method, as_of=as_of
        )

    return {
        'success': not report.failed,
        'period_start': report.period_start,
        'period_end': report.period_end,
        'written': report.written,
        'skipped_manual': len(report.skipped_manual),
        'errors': len(report.failed),
        'error_targets': [
            {'target': target, 'error': error} for target, error in report.failed
        ]
    }

def refresh_safety_stock(as_of: Optional[date] = None) -> Dict:
    """Refresh safety stock and reorder points for all active products.

    Args:
        as_of: Reference day (defaults to today)

    Returns:
        Dictionary with refresh results
    """
    logger.info("Refreshing safety stock levels")

    with session_scope() as session:
        safety_stock_service = SafetyStockService(session)
        results = safety_stock_service.refresh_all_safety_stocks(as_of)

    results['success'] = results['errors'] == 0
    return results

def _run_step(name: str, step: Callable[[], Dict]) -> Dict:
    try:
        return step()
    except Exception as e:
        log_exception('batch', e, f"Error during step '{name}'")
        result = {'success': False, 'error': str(e)}
        if isinstance(e, ReplenishmentError):
            result['details'] = e.to_dict()
        return result

def run_nightly_job(
    as_of: Optional[date] = None,
    forced_method: Optional[ForecastMethod] = None,
    raise_on_error: bool = False
) -> Dict:
    """Run the nightly job.

    Forecasting runs before the safety stock refresh. A failing step is
    recorded and the following steps still run.

    Args:
        as_of: Reference day (defaults to today)
        forced_method: Optional forecast method for every target
        raise_on_error: Raise BatchProcessError once all steps have run
            if any of them failed

    Returns:
        Dictionary with job results
    """
    log_info = log_manager.batch_start_log('nightly_job', {'as_of': as_of})

    start_time = log_info['start_time']
    results = {
        'start_time': start_time,
        'end_time': None,
        'duration': None,
        'processes': {}
    }

    # Step 1: Demand forecasting
    logger.info("# Step 1: Demand forecasting")
    results['processes']['demand_forecasting'] = _run_step(
        'demand_forecasting', lambda: run_demand_forecasting(as_of, forced_method)
    )

    # Step 2: Safety stock and reorder points
    logger.info("# Step 2: Refresh safety stock")
    results['processes']['safety_stock'] = _run_step(
        'safety_stock', lambda: refresh_safety_stock(as_of)
    )

    results['end_time'] = datetime.now()
    results['duration'] = results['end_time'] - start_time

    failed_steps = [
        name for name, result in results['processes'].items()
        if not result.get('success', False)
    ]
    results['success'] = not failed_steps
    if failed_steps:
        results['failed_steps'] = failed_steps

    log_manager.batch_end_log(
        log_info,
        success=results['success'],
        result_info={name: result.get('success') for name, result in results['processes'].items()}
    )

    if failed_steps and raise_on_error:
        raise BatchProcessError(
            f"Nightly job failed in steps: {', '.join(failed_steps)}",
            code='NIGHTLY_JOB',
            details=results['processes']
        )

    return results

def main(argv=None) -> int:
    """Command line entry point for the nightly job."""
    parser = argparse.ArgumentParser(description='Run the replenishment nightly job')
    parser.add_argument('--as-of', type=date.fromisoformat,
                        help='Reference day in YYYY-MM-DD format (defaults to today)')
    parser.add_argument('--method', '-m', type=ForecastMethod.from_string,
                        help='Force a forecast method for every target')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')

    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)

    results = run_nightly_job(as_of=args.as_of, forced_method=args.method)

    for process_name, process_result in results['processes'].items():
        logger.info(f"Process '{process_name}': {process_result.get('success', False)}")

        if process_result.get('written') is not None:
            logger.info(f"  Forecast rows written: {process_result['written']}")

        if process_result.get('updated_products') is not None:
            logger.info(f"  Updated products: {process_result['updated_products']}")

    if results['success']:
        logger.info(f"Nightly job completed successfully in {results['duration']}")
        return 0

    logger.error(f"Nightly job failed in steps: {', '.join(results['failed_steps'])}")
    return 1

if __name__ == "__main__":
    sys.exit(main())
