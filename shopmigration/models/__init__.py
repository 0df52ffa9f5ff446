"""Data models for the migration application."""

from .config import (
    NumberValidationMode,
    StepConfig,
)
from .mapping import (
    CATEGORY_LANGUAGE_SEPARATOR,
    MappingEntry,
    MappingType,
)
from .migration import (
    DEFAULT_STEPS,
    MigrationRun,
    MigrationStatus,
    MigrationStep,
    StepName,
)
from .progress import (
    Progress,
    ProgressState,
)

__all__ = [
    "NumberValidationMode",
    "StepConfig",
    "CATEGORY_LANGUAGE_SEPARATOR",
    "MappingEntry",
    "MappingType",
    "DEFAULT_STEPS",
    "MigrationRun",
    "MigrationStatus",
    "MigrationStep",
    "StepName",
    "Progress",
    "ProgressState",
]
