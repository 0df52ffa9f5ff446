"""Shared fixtures for the shopmigration tests."""

import pytest

from shopmigration.extractors.base import MemoryProfile
from shopmigration.loaders.memory_loader import MemoryTarget
from shopmigration.models.config import StepConfig
from shopmigration.models.progress import Progress
from shopmigration.resources import create_resource
from shopmigration.services.scheduler import ContinuationScheduler
from shopmigration.storage.mapping_store import MappingStore


class RowBudgetScheduler(ContinuationScheduler):
    """Scheduler that yields after a fixed number of rows instead of a time budget."""

    def __init__(self, rows: int):
        super().__init__(max_execution=None)
        self.rows = rows
        self._seen = 0

    def start(self) -> None:
        super().start()
        self._seen = 0

    def should_yield(self) -> bool:
        self._seen += 1
        return self._seen >= self.rows


@pytest.fixture
def mappings():
    """In-memory mapping store."""
    store = MappingStore()
    yield store
    store.close()


@pytest.fixture
def target():
    """In-memory target shop with one shop (locale 2, root category 100)."""
    return MemoryTarget(shops={"1": {"locale_id": 2, "category_id": "100"}})


@pytest.fixture
def config():
    """Config without an execution budget."""
    return StepConfig(max_execution=None)


@pytest.fixture
def yield_every():
    """Factory for schedulers yielding after every n rows."""
    return RowBudgetScheduler


@pytest.fixture
def run_resource(mappings, target, config):
    """Run one invocation of a step against a MemoryProfile built from rows."""
    def _run(step, rows, progress=None, step_config=None, scheduler=None, source=None):
        resource = create_resource(
            step,
            progress or Progress(),
            source or MemoryProfile(rows),
            target,
            mappings,
            step_config or config,
            scheduler,
        )
        return resource.execute(), resource
    return _run
