"""Ingestion pipeline orchestration."""

from .policy import Stage, StagePolicy, resolve_policies
from .report import IngestionReport
from .worker import AuditIngestionWorker

__all__ = [
    "AuditIngestionWorker",
    "IngestionReport",
    "resolve_policies",
    "Stage",
    "StagePolicy",
]
