"""
Unit tests for the logging manager.
"""
import logging
import logging.handlers
import os
import tempfile
import unittest
from unittest.mock import PropertyMock, patch

from replenishment_engine.config import Config
from replenishment_engine.logging_setup import Logger, get_logger


def make_log_config(directory, file_output=False, console_output=True):
    return {
        'level': 'INFO',
        'format': '%(name)s - %(levelname)s - %(message)s',
        'directory': directory,
        'file_output': file_output,
        'max_size_mb': 1,
        'backup_count': 1,
        'console_output': console_output
    }


class TestLoggerSetup(unittest.TestCase):
    """Test cases for root and named logger configuration."""

    def setUp(self):
        self._saved_instance = Logger._instance
        self._saved_loggers = dict(Logger._loggers)
        self._tmp = tempfile.TemporaryDirectory()
        self.log_dir = os.path.join(self._tmp.name, 'logs')

    def tearDown(self):
        Logger._instance = self._saved_instance
        Logger._loggers.clear()
        Logger._loggers.update(self._saved_loggers)
        # Put the root logger back the way the shared instance configured it
        self._saved_instance._configure_root_logger()
        self._tmp.cleanup()

    def _fresh_logger(self, **kwargs):
        Logger._instance = None
        with patch.object(Config, 'log_config', new_callable=PropertyMock,
                          return_value=make_log_config(self.log_dir, **kwargs)):
            return Logger()

    def test_service_loggers_emit_info(self):
        """Module loggers inherit INFO from the root logger under the default settings."""
        service_logger = logging.getLogger('replenishment_engine.services.forecast_service')

        self.assertTrue(service_logger.isEnabledFor(logging.INFO))
        self.assertFalse(service_logger.isEnabledFor(logging.DEBUG))

    def test_root_gets_console_handler(self):
        self._fresh_logger()
        root_logger = logging.getLogger()

        self.assertEqual(root_logger.level, logging.INFO)
        stream_handlers = [
            handler for handler in root_logger.handlers
            if type(handler) is logging.StreamHandler
        ]
        self.assertEqual(len(stream_handlers), 1)

    def test_no_console_handler_when_disabled(self):
        self._fresh_logger(console_output=False)

        self.assertEqual(logging.getLogger().handlers, [])
        self.assertTrue(
            logging.getLogger('replenishment_engine.services.sales_history').isEnabledFor(logging.INFO)
        )

    def test_log_directory_only_created_for_file_output(self):
        """Console-only logging never creates the log directory."""
        self._fresh_logger()
        self.assertFalse(os.path.exists(self.log_dir))

        manager = self._fresh_logger(file_output=True)
        self.assertTrue(os.path.isdir(self.log_dir))

        Logger._loggers.pop('file_check', None)
        file_logger = manager.get_logger('file_check')
        self.assertTrue(any(
            isinstance(handler, logging.handlers.RotatingFileHandler)
            for handler in file_logger.handlers
        ))
        for handler in file_logger.handlers[:]:
            handler.close()
            file_logger.removeHandler(handler)
        Logger._loggers.pop('file_check', None)

    def test_named_logger_is_cached(self):
        self.assertIs(get_logger('batch'), get_logger('batch'))


if __name__ == '__main__':
    unittest.main()
