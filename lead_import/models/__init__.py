"""Domain models for the bulk lead importer.

This package contains the domain model classes used throughout the application:
configuration, canonical records, results and error records.
"""

from .config_models import (
    ActorConfig,
    AssignmentConfig,
    AssignmentMode,
    DatabaseConfig,
    ImportConfig,
    TargetConfig,
    TeamMember,
)
from .error_record import ErrorRecord
from .processing_result import ImportResult, ImportStats
from .record import CanonicalRecord, ImportBatch, ImportMethod

__all__ = [
    # Configuration models
    "ActorConfig",
    "AssignmentConfig",
    "AssignmentMode",
    "DatabaseConfig",
    "ImportConfig",
    "TargetConfig",
    "TeamMember",
    # Processing models
    "CanonicalRecord",
    "ImportBatch",
    "ImportMethod",
    "ImportResult",
    "ImportStats",
    "ErrorRecord",
]
