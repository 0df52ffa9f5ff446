"""Persistence for cross-system identity links."""

from .mapping_store import MappingStore, MappingStoreError

__all__ = [
    "MappingStore",
    "MappingStoreError",
]
