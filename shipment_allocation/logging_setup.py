import logging
import logging.handlers
from pathlib import Path
from datetime import datetime

from shipment_allocation.config import config
from shipment_allocation.utils.math_utils import allocation_summary

PACKAGE_LOGGER = 'shipment_allocation'

class Logger:
    """Owns the handlers of the engine's loggers.

    Every module logs through ``logging.getLogger(__name__)``, which lands
    under the ``shipment_allocation`` logger configured here. Named loggers
    from ``get_logger`` additionally write their own rotating file.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._log_config = config.log_config
        self._log_dir = Path(self._log_config['directory'])
        self._log_dir.mkdir(parents=True, exist_ok=True)
        self._level = getattr(logging, self._log_config['level'].upper(), logging.INFO)
        self._formatter = logging.Formatter(self._log_config['format'])

        self._package_logger = self._configure_package_logger()
        self._app_logger = self.get_logger('app')

        self._initialized = True

    def _file_handler(self, name):
        handler = logging.handlers.RotatingFileHandler(
            self._log_dir / f"{name}.log",
            maxBytes=self._log_config['max_size_mb'] * 1024 * 1024,
            backupCount=self._log_config['backup_count']
        )
        handler.setFormatter(self._formatter)
        return handler

    def _configure_package_logger(self):
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        package_logger.setLevel(self._level)
        for handler in package_logger.handlers[:]:
            package_logger.removeHandler(handler)

        package_logger.addHandler(self._file_handler(PACKAGE_LOGGER))
        if self._log_config['console_output']:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(self._formatter)
            package_logger.addHandler(console_handler)

        package_logger.propagate = False
        return package_logger

    def get_logger(self, name):
        """Get a named logger of the engine.

        Args:
            name: Short name, e.g. 'allocation'; also names the log file

        Returns:
            Logger under the package logger with its own file handler
        """
        if name in self._loggers:
            return self._loggers[name]

        named_logger = self._package_logger.getChild(name)
        named_logger.setLevel(self._level)
        named_logger.addHandler(self._file_handler(name))

        self._loggers[name] = named_logger
        return named_logger

    @property
    def app_logger(self):
        return self._app_logger

    def allocation_start_log(self, order_number, mode):
        """Log the start of an allocation run.

        Args:
            order_number: Number of the order being allocated
            mode: What the run is for, e.g. 'quote' or 'create_shipments'

        Returns:
            Dictionary to hand back to allocation_end_log
        """
        self.get_logger('allocation').info(f"Allocating order {order_number} ({mode})")
        return {'order_number': order_number, 'mode': mode, 'start_time': datetime.now()}

    def allocation_end_log(self, log_info, result=None, error=None):
        """Log how an allocation run ended.

        A successful run logs the summary of its AllocationResult; a failed
        run logs the error and, for unfulfillable orders, the shortfall.

        Args:
            log_info: Dictionary returned by allocation_start_log
            result: AllocationResult of a successful run
            error: Exception that ended a failed run

        Returns:
            Allocation summary, or None for a failed run
        """
        allocation_logger = self.get_logger('allocation')
        order_number = log_info['order_number']
        seconds = (datetime.now() - log_info['start_time']).total_seconds()

        if error is not None:
            allocation_logger.error(f"Allocation of order {order_number} failed after {seconds:.3f}s: {error}")
            unfulfillable = getattr(error, 'unfulfillable', None)
            if unfulfillable:
                allocation_logger.error(f"Unfulfillable units by variant: {unfulfillable}")
            return None

        summary = allocation_summary(result)
        allocation_logger.info(
            f"Allocated order {order_number} ({log_info['mode']}) in {seconds:.3f}s: "
            f"{summary['packages']} packages from {summary['stock_locations']} locations, "
            f"{summary['units_on_hand']} on hand, {summary['units_backordered']} backordered, "
            f"{summary['units_unfulfillable']} unfulfillable"
        )
        return summary

# Global logger instance
logger = Logger()

def get_logger(name):
    """Get a named logger of the engine."""
    return logger.get_logger(name)
