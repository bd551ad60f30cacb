"""
Core module initialization.
Exports configuration, logging utilities and the error hierarchy.
"""

from dinein.core.config import get_settings, setup_logging, Settings, EnvironmentMode
from dinein.core.exceptions import (
    DineInError,
    OrderValidationError,
    EmptyCartError,
    OrderNotFoundError,
    InvalidTransitionError,
    OrderPersistenceError,
    StoreError,
)

__all__ = [
    "get_settings",
    "setup_logging",
    "Settings",
    "EnvironmentMode",
    "DineInError",
    "OrderValidationError",
    "EmptyCartError",
    "OrderNotFoundError",
    "InvalidTransitionError",
    "OrderPersistenceError",
    "StoreError",
]
