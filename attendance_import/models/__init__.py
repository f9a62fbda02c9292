"""Domain models for the attendance batch importer.

This package contains the reference catalogs, the guest directory snapshot,
row-level records and the run/chunk result models.
"""

from .catalogs import (
    Program,
    ProgramCatalog,
    ServiceCategory,
    SpecialIdentifierCatalog,
    SpecialMapping,
)
from .config_models import DatabaseConfig, ImportConfig
from .error_record import ErrorRecord
from .guest import Guest, GuestDirectory
from .processing_result import BatchResult, ChunkProgress, ImportResult, RunState
from .records import ParsedRecord, RowFiltered, RowRejection, SkipReason, SkipRecord

__all__ = [
    # Catalogs
    "Program",
    "ProgramCatalog",
    "ServiceCategory",
    "SpecialIdentifierCatalog",
    "SpecialMapping",
    "Guest",
    "GuestDirectory",
    # Configuration models
    "DatabaseConfig",
    "ImportConfig",
    # Processing models
    "BatchResult",
    "ChunkProgress",
    "ErrorRecord",
    "ImportResult",
    "ParsedRecord",
    "RowFiltered",
    "RowRejection",
    "RunState",
    "SkipReason",
    "SkipRecord",
]
