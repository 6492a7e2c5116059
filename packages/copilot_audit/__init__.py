"""Move Microsoft 365 Copilot audit records into a Log Analytics table."""

from .config import Settings, get_settings, load_settings
from .errors import (
    ConfigurationError,
    CopilotAuditError,
    DeliveryError,
    StageFailedError,
    TokenAcquisitionError,
)
from .pipeline import AuditIngestionWorker, IngestionReport
from .relevance import is_relevant

__version__ = "0.1.0"

__all__ = [
    "AuditIngestionWorker",
    "ConfigurationError",
    "CopilotAuditError",
    "DeliveryError",
    "get_settings",
    "IngestionReport",
    "is_relevant",
    "load_settings",
    "Settings",
    "StageFailedError",
    "TokenAcquisitionError",
]
