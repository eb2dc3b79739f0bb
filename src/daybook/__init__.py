"""Daybook: day-bucketed working set with rollover into a dated archive."""

from .core.config import Settings, load_settings
from .service import DaybookService, create_service

__version__ = "0.1.0"

__all__ = [
    "DaybookService",
    "Settings",
    "__version__",
    "create_service",
    "load_settings",
]
