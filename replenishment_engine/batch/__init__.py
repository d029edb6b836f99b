# replenishment_engine/batch/__init__.py

from .nightly_job import run_nightly_job, run_demand_forecasting, refresh_safety_stock

__all__ = [
    'run_nightly_job',
    'run_demand_forecasting',
    'refresh_safety_stock'
]
