"""Migration orchestrator - sequences steps and drives their continuations."""

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from .extractors.base import SourceProfile
from .extractors.database_profile import DatabaseProfile
from .extractors.file_profile import FileProfile
from .loaders.api_loader import APITarget
from .loaders.base import TargetProfile
from .loaders.memory_loader import MemoryTarget
from .models.config import StepConfig
from .models.migration import (
    DEFAULT_STEPS,
    MigrationRun,
    MigrationStatus,
    MigrationStep,
    StepName,
)
from .models.progress import Progress
from .resources import AbstractResource, create_resource
from .services.scheduler import ContinuationScheduler
from .storage.mapping_store import MappingStore

logger = logging.getLogger(__name__)


def create_source(config: StepConfig) -> SourceProfile:
    """
    Create the source profile described by a config.

    Raises:
        ValueError: If no source is configured
    """
    if config.source_dir:
        return FileProfile(config.source_dir)
    if config.source_queries:
        return DatabaseProfile(config.source_queries, credentials=config.credentials)
    raise ValueError("No source configured: set source_dir or source_queries")


def create_target(config: StepConfig, dry_run: bool = False) -> TargetProfile:
    """Create the target profile described by a config."""
    if dry_run:
        return MemoryTarget()
    if not config.target_url:
        logger.warning("No target_url configured, writing to an in-memory target")
        return MemoryTarget()
    return APITarget(config.target_url, api_key=config.target_api_key)


class MigrationOrchestrator:
    """
    Orchestrates a migration job.

    Handles:
    - Building the adapter of a step with explicit connectors
    - Single bounded invocations (one continuation of a step)
    - Re-invoking a step until it is done or failed
    - Sequencing steps, honoring enable flags carried between steps
    """

    def __init__(
        self,
        source: SourceProfile,
        target: TargetProfile,
        mappings: MappingStore,
        scheduler_factory: Optional[Callable[[StepConfig], ContinuationScheduler]] = None
    ):
        """
        Initialize the orchestrator.

        Args:
            source: Source profile all steps read from
            target: Target profile all steps write to
            mappings: Identity mapping store shared by the steps
            scheduler_factory: Builds the execution budget of an invocation
        """
        self.source = source
        self.target = target
        self.mappings = mappings
        self.scheduler_factory = scheduler_factory or (
            lambda config: ContinuationScheduler(config.max_execution)
        )

    def create_resource(self, step: StepName, progress: Progress, config: StepConfig) -> AbstractResource:
        """Build the adapter handling `step`."""
        return create_resource(
            step,
            progress,
            self.source,
            self.target,
            self.mappings,
            config,
            self.scheduler_factory(config),
        )

    def invoke(
        self,
        step: StepName,
        config: StepConfig,
        progress: Optional[Progress] = None,
        report: Optional[MigrationStep] = None
    ) -> Progress:
        """
        Run one bounded invocation of a step.

        Args:
            step: Step to run
            config: Job configuration
            progress: Token returned by the previous invocation; None starts
                the step at offset 0. A done token is returned unchanged, an
                error token is resumed at its offset.
            report: Step report to record message and warnings in

        Returns:
            The next continuation token

        Raises:
            ValueError: If the token belongs to another step
        """
        step = StepName(step)
        if progress is not None and progress.step and progress.step != step.value:
            raise ValueError(f"Progress token belongs to step {progress.step}, not {step.value}")

        if progress is None:
            progress = Progress(step=step.value)
        elif progress.is_done:
            return progress
        elif progress.is_error:
            logger.info(f"Resuming {step.value} at offset {progress.offset} after error: {progress.error_message}")
            progress = progress.resume()

        resource = self.create_resource(step, progress, config)
        progress = resource.execute()

        if report is not None:
            report.invocations += 1
            report.warnings.extend(resource.warnings)
            if progress.is_done:
                report.message = resource.done_message
            elif progress.is_error:
                report.message = progress.error_message
            else:
                report.message = resource.progress_message(progress)

        return progress

    def run_step(
        self,
        step: StepName,
        config: StepConfig,
        progress: Optional[Progress] = None
    ) -> MigrationStep:
        """
        Invoke a step until it is done or failed.

        Returns:
            Step report
        """
        step = StepName(step)
        report = MigrationStep(name=step.value, status=MigrationStatus.RUNNING)
        report.started_at = datetime.utcnow()

        while True:
            start_offset = progress.offset if progress is not None else 0
            progress = self.invoke(step, config, progress, report)
            if progress.is_terminal:
                break
            if progress.offset <= start_offset:
                progress = progress.error(f"No progress in {step.value} at offset {progress.offset}")
                report.message = progress.error_message
                break

        report.offset = progress.offset
        report.count = progress.count
        report.carried_params = dict(progress.carried_params)
        report.completed_at = datetime.utcnow()

        if progress.is_error:
            report.status = MigrationStatus.FAILED
            report.errors.append({"offset": progress.offset, "error": progress.error_message})
            logger.error(f"Step {step.value} failed: {progress.error_message}")
        else:
            report.status = MigrationStatus.COMPLETED
            logger.info(f"Step {step.value} completed: {progress.offset} rows in {report.invocations} invocations")

        return report

    def run_job(
        self,
        config: StepConfig,
        steps: Optional[Sequence[StepName]] = None
    ) -> MigrationRun:
        """
        Run steps in order; the job halts on the first failed step.

        A step runs if the config enables it (an empty enable list enables
        every step) or an earlier step carried its enable flag forward.

        Returns:
            MigrationRun with the report of every step
        """
        run = MigrationRun()
        run.started_at = datetime.utcnow()
        run.status = MigrationStatus.RUNNING

        step_names: List[StepName] = [StepName(s) for s in (steps or DEFAULT_STEPS)]
        params = {}

        try:
            for step in step_names:
                if not (config.is_step_enabled(step.value) or params.get(step.value)):
                    logger.info(f"Skipping disabled step {step.value}")
                    run.steps.append(MigrationStep(name=step.value, status=MigrationStatus.SKIPPED))
                    continue

                logger.info(f"=== STEP: {step.value} ===")
                run.current_step = step.value
                report = self.run_step(step, config, Progress(step=step.value, carried_params=dict(params)))
                run.steps.append(report)
                params.update(report.carried_params)

                if report.status == MigrationStatus.FAILED:
                    run.status = MigrationStatus.FAILED
                    run.errors.append({"step": step.value, "error": report.message})
                    break
            else:
                run.status = MigrationStatus.COMPLETED
                logger.info("=== MIGRATION COMPLETED ===")

        finally:
            run.completed_at = datetime.utcnow()
            run.params = params
            run.update_totals()

        return run
