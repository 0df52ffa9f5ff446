"""App-scoped services for the HTTP driver.

The mapping store and the target profile live as long as the app; they are
built on first use from environment variables:

- SHOPMIGRATION_DATABASE_URL: mapping store database (default sqlite file)
- SHOPMIGRATION_TARGET_URL: import API of the target shop; unset means an
  in-memory target
- SHOPMIGRATION_TARGET_API_KEY: API key of the target shop

Tests replace them through `app.dependency_overrides`.
"""

import logging
import os
from typing import Callable, Optional

from ..extractors.base import SourceProfile
from ..loaders.api_loader import APITarget
from ..loaders.base import TargetProfile
from ..loaders.memory_loader import MemoryTarget
from ..models.config import StepConfig
from ..orchestrator import create_source
from ..storage.mapping_store import MappingStore

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "sqlite:///shopmigration.db"


class _Services:
    """Singleton container for the app's mapping store and target."""

    mappings: Optional[MappingStore] = None
    target: Optional[TargetProfile] = None

    @classmethod
    def get_mappings(cls) -> MappingStore:
        if cls.mappings is None:
            database_url = os.environ.get("SHOPMIGRATION_DATABASE_URL", DEFAULT_DATABASE)
            cls.mappings = MappingStore(database_url)
            logger.info("Created mapping store")
        return cls.mappings

    @classmethod
    def get_target(cls) -> TargetProfile:
        if cls.target is None:
            target_url = os.environ.get("SHOPMIGRATION_TARGET_URL")
            if target_url:
                cls.target = APITarget(target_url, api_key=os.environ.get("SHOPMIGRATION_TARGET_API_KEY"))
            else:
                logger.warning("SHOPMIGRATION_TARGET_URL not set, writing to an in-memory target")
                cls.target = MemoryTarget()
        return cls.target

    @classmethod
    def reset(cls) -> None:
        if cls.mappings is not None:
            cls.mappings.close()
        cls.mappings = None
        cls.target = None


def get_mapping_store() -> MappingStore:
    return _Services.get_mappings()


def get_target() -> TargetProfile:
    return _Services.get_target()


def get_source_factory() -> Callable[[StepConfig], SourceProfile]:
    """Source profiles are built per request from the submitted config."""
    return create_source


def reset_services() -> None:
    """Drop the app-scoped services (closes the mapping store)."""
    _Services.reset()
