from .config import config
from .db import db, session_scope
from .logging_setup import logger, get_logger
from .exceptions import (
    AllocationError, InsufficientStockError, ShipmentError, NotFoundError, ConfigError
)

__all__ = [
    'config',
    'db',
    'session_scope',
    'logger',
    'get_logger',
    'AllocationError',
    'InsufficientStockError',
    'ShipmentError',
    'NotFoundError',
    'ConfigError'
]
