import os
import configparser
from pathlib import Path
from types import MappingProxyType

class Config:
    """Configuration manager for the Replenishment Engine."""

    _instance = None

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        """Initialize the configuration if not already initialized."""
        if self._initialized:
            return

        self._config_path = Path(
            os.environ.get('REPLENISHMENT_CONFIG', os.path.join('config', 'settings.ini'))
        )
        self._config = configparser.ConfigParser(interpolation=None)

        self._load_defaults()

        # Values from the settings file override the defaults
        if self._config_path.exists():
            self._config.read(self._config_path)

        self._initialized = True

    def _load_defaults(self):
        """Load default configuration values."""
        self._config['DATABASE'] = {
            'url': 'sqlite:///replenishment.db',
            'echo': 'False',
            'pool_size': '10',
            'max_overflow': '20',
            'pool_timeout': '30',
            'pool_recycle': '1800'
        }

        self._config['LOGGING'] = {
            'level': 'INFO',
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'directory': 'logs',
            'file_output': 'False',
            'max_size_mb': '10',
            'backup_count': '5',
            'console_output': 'True'
        }

        self._config['BATCH_PROCESS'] = {
            'max_workers': '4'
        }

        self._config['FORECAST'] = {
            'history_weeks': '26',
            'wma_window': '12',
            'season_length': '13',
            'hw_alpha': '0.2',
            'hw_beta': '0.1',
            'hw_gamma': '0.3',
            'croston_alpha': '0.1',
            'ensemble_holdout': '4',
            'ensemble_epsilon': '0.01',
            'intermittent_zero_rate': '0.5'
        }

        self._config['SAFETY_STOCK'] = {
            'history_weeks': '12',
            'z_score': '1.65'
        }

        self._config['ALLOCATION'] = {
            'below_safety_bonus': '1000',
            'urgency_factor': '100',
            'urgency_offset': '0.1',
            'tier_multiplier': '10',
            'tier_weight_a': '30',
            'tier_weight_b': '20',
            'tier_weight_c': '10',
            'days_of_stock_threshold': '14',
            'no_demand_days_of_stock': '999',
            'target_multiple': '2'
        }

    def get(self, section, key, default=None):
        """Get configuration value."""
        try:
            return self._config.get(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError):
            return default

    def get_int(self, section, key, default=None):
        """Get configuration value as integer."""
        try:
            return self._config.getint(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_float(self, section, key, default=None):
        """Get configuration value as float."""
        try:
            return self._config.getfloat(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_boolean(self, section, key, default=None):
        """Get configuration value as boolean."""
        try:
            return self._config.getboolean(section, key)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def set(self, section, key, value):
        """Set configuration value in memory."""
        if not self._config.has_section(section):
            self._config.add_section(section)

        self._config.set(section, key, str(value))

    def get_db_url(self):
        """Get SQLAlchemy database URL."""
        return self.get('DATABASE', 'url', 'sqlite:///replenishment.db')

    @property
    def log_config(self):
        """Get logging configuration."""
        return {
            'level': self.get('LOGGING', 'level', 'INFO'),
            'format': self.get('LOGGING', 'format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s'),
            'directory': self.get('LOGGING', 'directory', 'logs'),
            'file_output': self.get_boolean('LOGGING', 'file_output', False),
            'max_size_mb': self.get_int('LOGGING', 'max_size_mb', 10),
            'backup_count': self.get_int('LOGGING', 'backup_count', 5),
            'console_output': self.get_boolean('LOGGING', 'console_output', True)
        }

    @property
    def batch_config(self):
        """Get batch processing configuration."""
        return {
            'max_workers': self.get_int('BATCH_PROCESS', 'max_workers', 4)
        }

    @property
    def forecast_parameters(self):
        """Build forecasting parameters from the FORECAST section."""
        from replenishment_engine.core.parameters import ForecastParameters

        return ForecastParameters(
            history_weeks=self.get_int('FORECAST', 'history_weeks', 26),
            wma_window=self.get_int('FORECAST', 'wma_window', 12),
            season_length=self.get_int('FORECAST', 'season_length', 13),
            hw_alpha=self.get_float('FORECAST', 'hw_alpha', 0.2),
            hw_beta=self.get_float('FORECAST', 'hw_beta', 0.1),
            hw_gamma=self.get_float('FORECAST', 'hw_gamma', 0.3),
            croston_alpha=self.get_float('FORECAST', 'croston_alpha', 0.1),
            ensemble_holdout=self.get_int('FORECAST', 'ensemble_holdout', 4),
            ensemble_epsilon=self.get_float('FORECAST', 'ensemble_epsilon', 0.01),
            intermittent_zero_rate=self.get_float('FORECAST', 'intermittent_zero_rate', 0.5)
        )

    @property
    def safety_stock_parameters(self):
        """Build safety stock parameters from the SAFETY_STOCK section."""
        from replenishment_engine.core.parameters import SafetyStockParameters

        return SafetyStockParameters(
            history_weeks=self.get_int('SAFETY_STOCK', 'history_weeks', 12),
            z_score=self.get_float('SAFETY_STOCK', 'z_score', 1.65)
        )

    @property
    def allocation_parameters(self):
        """Build allocation parameters from the ALLOCATION section."""
        from replenishment_engine.core.parameters import AllocationParameters

        return AllocationParameters(
            below_safety_bonus=self.get_float('ALLOCATION', 'below_safety_bonus', 1000.0),
            urgency_factor=self.get_float('ALLOCATION', 'urgency_factor', 100.0),
            urgency_offset=self.get_float('ALLOCATION', 'urgency_offset', 0.1),
            tier_multiplier=self.get_float('ALLOCATION', 'tier_multiplier', 10.0),
            tier_weights=MappingProxyType({
                'A': self.get_float('ALLOCATION', 'tier_weight_a', 30.0),
                'B': self.get_float('ALLOCATION', 'tier_weight_b', 20.0),
                'C': self.get_float('ALLOCATION', 'tier_weight_c', 10.0)
            }),
            days_of_stock_threshold=self.get_float('ALLOCATION', 'days_of_stock_threshold', 14.0),
            no_demand_days_of_stock=self.get_float('ALLOCATION', 'no_demand_days_of_stock', 999.0),
            target_multiple=self.get_int('ALLOCATION', 'target_multiple', 2)
        )

# Global config instance
config = Config()
