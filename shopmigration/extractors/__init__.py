"""Source profiles: positioned, ordered row cursors over source data."""

from .base import MemoryProfile, RowCursor, SourceProfile
from .database_profile import DatabaseProfile
from .file_profile import FileProfile

__all__ = [
    "MemoryProfile",
    "RowCursor",
    "SourceProfile",
    "DatabaseProfile",
    "FileProfile",
]
