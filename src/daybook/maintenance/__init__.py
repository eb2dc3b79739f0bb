"""Background maintenance: retention sweeps and periodic rollover checks."""

from .jobs import MaintenanceScheduler
from .retention import PruneStats, RetentionSweeper

__all__ = [
    "MaintenanceScheduler",
    "PruneStats",
    "RetentionSweeper",
]
