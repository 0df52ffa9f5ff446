"""Target profiles writing to the target shop."""

from .base import ImportKind, TargetError, TargetProfile
from .memory_loader import MemoryTarget
from .api_loader import APITarget

__all__ = [
    "ImportKind",
    "TargetError",
    "TargetProfile",
    "MemoryTarget",
    "APITarget",
]
