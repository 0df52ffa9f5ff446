"""Service layer for the migration engine."""

from .numbers import is_valid_number, make_valid_number
from .scheduler import ContinuationScheduler

__all__ = [
    "ContinuationScheduler",
    "is_valid_number",
    "make_valid_number",
]
