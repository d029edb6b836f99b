from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    ReplenishmentError, ConfigError, DatabaseError, ValidationError,
    ForecastError, SafetyStockError, AllocationError, NotFoundError,
    BatchProcessError
)

__version__ = '1.0.0'

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'ReplenishmentError',
    'ConfigError',
    'DatabaseError',
    'ValidationError',
    'ForecastError',
    'SafetyStockError',
    'AllocationError',
    'NotFoundError',
    'BatchProcessError'
]
