"""Tests for the migration orchestrator."""

import pytest

from shopmigration.extractors.base import MemoryProfile
from shopmigration.extractors.file_profile import FileProfile
from shopmigration.loaders.api_loader import APITarget
from shopmigration.loaders.memory_loader import MemoryTarget
from shopmigration.models.config import StepConfig
from shopmigration.models.mapping import MappingType
from shopmigration.models.migration import MigrationStatus, MigrationStep, StepName
from shopmigration.models.progress import Progress, ProgressState
from shopmigration.orchestrator import MigrationOrchestrator, create_source, create_target
from shopmigration.storage.mapping_store import MappingStore

JOB_ROWS = {
    "products": [
        {"product_id": "P1", "order_number": "SW1", "name": "Shirt", "tax_id": "1"},
        {"product_id": "P2", "order_number": "SW2", "name": "Pants", "tax_id": "1"},
        {"product_id": "P3", "order_number": "SW2.1", "parent_id": "P2", "configurator_options": ["S"]},
    ],
    "categories": [
        {"category_id": "1", "description": "Clothing"},
        {"category_id": "2", "parent_id": "1", "description": "Shirts"},
    ],
    "product_categories": [
        {"product_id": "P1", "category_id": "2"},
        {"product_id": "P2", "category_id": "1"},
    ],
    "product_prices": [
        {"product_id": "P1", "price_group": "EK", "net_price": 10},
        {"product_id": "P3", "price_group": "EK", "net_price": 20},
    ],
    "customers": [
        {"customer_id": "C1", "email": "jane@example.com"},
        {"customer_id": "C2", "email": "john@example.com"},
    ],
}


class StuckResource:
    """Resource whose invocations never move the offset."""

    warnings = []

    def __init__(self, progress):
        self.progress = progress

    def execute(self):
        return self.progress.with_count(5)

    def progress_message(self, progress):
        return "stuck"


@pytest.fixture
def orchestrator_factory():
    """Build orchestrators over the job rows with their own store and target."""
    stores = []

    def _build(rows=None, scheduler_factory=None):
        store = MappingStore()
        stores.append(store)
        return MigrationOrchestrator(
            MemoryProfile(JOB_ROWS if rows is None else rows),
            MemoryTarget(shops={"1": {"locale_id": 2, "category_id": "100"}}),
            store,
            scheduler_factory=scheduler_factory,
        )

    yield _build
    for store in stores:
        store.close()


def mapping_snapshot(store):
    return {
        mapping_type: {(e.source_id, e.target_id) for e in store.entries(mapping_type)}
        for mapping_type in MappingType
    }


class TestRunJob:
    """Tests for running complete jobs."""

    def test_all_steps_complete(self, orchestrator_factory, config):
        orchestrator = orchestrator_factory()

        run = orchestrator.run_job(config)

        assert run.status == MigrationStatus.COMPLETED
        assert [s.name for s in run.steps] == [
            "import_products",
            "import_categories",
            "import_article_categories",
            "import_prices",
            "import_customers",
        ]
        assert all(s.status == MigrationStatus.COMPLETED for s in run.steps)
        assert run.total_rows_processed == 11
        assert len(orchestrator.target.article_categories) == 2
        assert len(orchestrator.target.prices) == 2
        assert orchestrator.mappings.count(MappingType.CUSTOMER) == 2

    def test_resumed_job_matches_single_pass(self, orchestrator_factory, config, yield_every):
        """Test yielding after every row leaves the same mappings as one long invocation."""
        single = orchestrator_factory()
        chunked = orchestrator_factory(scheduler_factory=lambda c: yield_every(1))

        single.run_job(config)
        run = chunked.run_job(config)

        assert run.status == MigrationStatus.COMPLETED
        assert run.get_step("import_products").invocations == 4
        assert mapping_snapshot(chunked.mappings) == mapping_snapshot(single.mappings)
        assert chunked.target.details == single.target.details
        assert chunked.target.prices == single.target.prices

    def test_job_halts_on_failed_step(self, orchestrator_factory, config):
        rows = dict(JOB_ROWS, products=[{"product_id": "P1", "order_number": "SW/1"}])
        orchestrator = orchestrator_factory(rows)

        run = orchestrator.run_job(config)

        assert run.status == MigrationStatus.FAILED
        assert [s.name for s in run.steps] == ["import_products"]
        assert run.steps[0].errors[0]["offset"] == 0
        assert run.errors[0]["step"] == "import_products"
        assert "SW/1" in run.errors[0]["error"]
        assert orchestrator.mappings.count() == 0

    def test_carried_flag_enables_article_categories(self, orchestrator_factory):
        config = StepConfig(max_execution=None, enabled_steps=("import_products", "import_categories"))
        orchestrator = orchestrator_factory()

        run = orchestrator.run_job(config)

        statuses = {s.name: s.status for s in run.steps}
        assert statuses["import_article_categories"] == MigrationStatus.COMPLETED
        assert statuses["import_prices"] == MigrationStatus.SKIPPED
        assert statuses["import_customers"] == MigrationStatus.SKIPPED
        assert run.params == {"import_article_categories": True}

    def test_explicit_steps(self, orchestrator_factory, config):
        orchestrator = orchestrator_factory()

        run = orchestrator.run_job(config, steps=[StepName.CUSTOMERS])

        assert [s.name for s in run.steps] == ["import_customers"]
        assert orchestrator.mappings.count(MappingType.ARTICLE) == 0


class TestInvoke:
    """Tests for single invocations."""

    def test_fresh_invocation(self, orchestrator_factory, config, yield_every):
        orchestrator = orchestrator_factory(scheduler_factory=lambda c: yield_every(2))
        report = MigrationStep(name="import_customers")

        progress = orchestrator.invoke(StepName.CUSTOMERS, config, report=report)

        assert progress.state == ProgressState.RUNNING
        assert progress.step == "import_customers"
        assert progress.offset == 2
        assert report.invocations == 1
        assert report.message == "2 out of 2 customers imported"

    def test_done_token_returned_unchanged(self, orchestrator_factory, config):
        orchestrator = orchestrator_factory()
        done = Progress(step="import_customers", offset=2, count=2).done()

        assert orchestrator.invoke(StepName.CUSTOMERS, config, done) is done
        assert orchestrator.mappings.count() == 0

    def test_error_token_resumed_at_offset(self, orchestrator_factory, config):
        rows = {"products": [
            {"product_id": "P1", "order_number": "SW1"},
            {"product_id": "P2", "order_number": "SW/2"},
        ]}
        orchestrator = orchestrator_factory(rows)

        failed = orchestrator.invoke(StepName.PRODUCTS, config)
        assert failed.is_error
        assert failed.offset == 1

        orchestrator.source.rows["products"][1]["order_number"] = "SW2"
        report = MigrationStep(name="import_products")
        progress = orchestrator.invoke(StepName.PRODUCTS, config, failed, report)

        assert progress.is_done
        assert progress.offset == 2
        assert report.message == "Products successfully imported!"
        assert orchestrator.mappings.count(MappingType.ARTICLE) == 2

    @pytest.mark.parametrize("token", [
        Progress(step="import_products", offset=2, count=3),
        Progress(step="import_products", offset=3, count=3).done(),
    ])
    def test_token_of_another_step_rejected(self, orchestrator_factory, config, token):
        orchestrator = orchestrator_factory()

        with pytest.raises(ValueError, match="belongs to step import_products"):
            orchestrator.invoke(StepName.PRICES, config, token)

        assert orchestrator.target.prices == {}

    def test_resource_rejects_token_of_another_step(self, orchestrator_factory, config):
        orchestrator = orchestrator_factory()

        with pytest.raises(ValueError, match="not import_prices"):
            orchestrator.create_resource(StepName.PRICES, Progress(step="import_products", offset=2), config)

    def test_warnings_recorded(self, orchestrator_factory, config):
        rows = {"product_prices": [{"product_id": "unknown", "net_price": 1}]}
        orchestrator = orchestrator_factory(rows)
        report = MigrationStep(name="import_prices")

        orchestrator.invoke(StepName.PRICES, config, report=report)

        assert len(report.warnings) == 1


class TestRunStep:
    """Tests for driving a step to completion."""

    def test_step_without_progress_fails(self, orchestrator_factory, config, monkeypatch):
        orchestrator = orchestrator_factory()
        monkeypatch.setattr(
            orchestrator, "create_resource", lambda step, progress, config: StuckResource(progress)
        )

        report = orchestrator.run_step(StepName.PRODUCTS, config)

        assert report.status == MigrationStatus.FAILED
        assert report.invocations == 1
        assert report.errors == [{"offset": 0, "error": "No progress in import_products at offset 0"}]

    def test_report_counts(self, orchestrator_factory, config, yield_every):
        orchestrator = orchestrator_factory(scheduler_factory=lambda c: yield_every(1))

        report = orchestrator.run_step(StepName.CATEGORIES, config)

        assert report.status == MigrationStatus.COMPLETED
        assert report.invocations == 3
        assert report.offset == 2
        assert report.count == 2
        assert report.carried_params == {"import_article_categories": True}
        assert report.duration_seconds is not None


class TestConnectors:
    """Tests for building connectors from a config."""

    def test_file_source(self, tmp_path):
        source = create_source(StepConfig(source_dir=str(tmp_path)))

        assert isinstance(source, FileProfile)

    def test_no_source(self):
        with pytest.raises(ValueError, match="No source configured"):
            create_source(StepConfig())

    def test_dry_run_target(self):
        config = StepConfig(target_url="http://shop.example.com/api")

        assert isinstance(create_target(config, dry_run=True), MemoryTarget)
        assert isinstance(create_target(StepConfig()), MemoryTarget)

    def test_api_target(self):
        target = create_target(StepConfig(target_url="http://shop.example.com/api", target_api_key="key"))

        assert isinstance(target, APITarget)
        assert target.base_url == "http://shop.example.com/api"
