from .sales_history import SalesHistoryService
from .forecast_service import ForecastService, ForecastResult, ForecastRunReport
from .safety_stock_service import SafetyStockService
from .allocation_service import AllocationService

__all__ = [
    'SalesHistoryService',
    'ForecastService',
    'ForecastResult',
    'ForecastRunReport',
    'SafetyStockService',
    'AllocationService'
]
