"""Command line driver for migration jobs."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .models.config import StepConfig
from .models.migration import DEFAULT_STEPS, MigrationStatus, MigrationStep, StepName
from .models.progress import Progress
from .orchestrator import MigrationOrchestrator, create_source, create_target
from .storage.mapping_store import MappingStore

logger = logging.getLogger(__name__)

DEFAULT_DATABASE = "sqlite:///shopmigration.db"


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Shop Migration Tool - Resumable migration of shop data"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")
    step_names = [s.value for s in StepName]

    # Run a complete job
    run_parser = subparsers.add_parser("run", help="Run all enabled steps to completion")
    run_parser.add_argument("--config", required=True, help="Path to job config file")
    run_parser.add_argument("--steps", nargs="+", choices=step_names, help="Steps to run, in order")
    run_parser.add_argument("--database", help="Mapping store database URL")
    run_parser.add_argument("--report", help="Write the job report to this JSON file")
    run_parser.add_argument("--dry-run", action="store_true", help="Write to an in-memory target")
    run_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Run one bounded invocation of a step
    step_parser = subparsers.add_parser("step", help="Run one invocation of a step")
    step_parser.add_argument("--config", required=True, help="Path to job config file")
    step_parser.add_argument("--step", required=True, choices=step_names, help="Step to run")
    step_parser.add_argument("--progress", help="Continuation token file, read and rewritten")
    step_parser.add_argument("--database", help="Mapping store database URL")
    step_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    # Validate connectors
    validate_parser = subparsers.add_parser("validate", help="Validate source and target configuration")
    validate_parser.add_argument("--config", required=True, help="Path to job config file")
    validate_parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")

    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if args.command == "run":
        return run_job(args)
    elif args.command == "step":
        return run_step(args)
    elif args.command == "validate":
        return run_validation(args)

    parser.print_help()
    return 2


def _build_orchestrator(args, config: StepConfig) -> MigrationOrchestrator:
    dry_run = getattr(args, "dry_run", False)
    database = args.database or config.mapping_database

    # Ids of an in-memory target are gone after this process, so its
    # mappings must not reach a persistent store
    if dry_run or not config.target_url:
        if database:
            logger.warning(f"In-memory target: keeping mappings in memory instead of {database}")
        mappings = MappingStore()
    else:
        mappings = MappingStore(database or DEFAULT_DATABASE)

    return MigrationOrchestrator(
        source=create_source(config),
        target=create_target(config, dry_run=dry_run),
        mappings=mappings,
    )


def run_job(args) -> int:
    """Run a migration job from a config file."""
    config = StepConfig.from_file(args.config)
    orchestrator = _build_orchestrator(args, config)

    steps = [StepName(s) for s in args.steps] if args.steps else DEFAULT_STEPS
    try:
        result = orchestrator.run_job(config, steps)
    finally:
        orchestrator.mappings.close()

    print("\n" + "=" * 60)
    print("MIGRATION COMPLETE" if result.status == MigrationStatus.COMPLETED else "MIGRATION FAILED")
    print("=" * 60)
    print(f"Status: {result.status.value}")
    for step in result.steps:
        print(f"  {step.name}: {step.status.value} ({step.offset}/{step.count} rows, {step.invocations} invocations)")
        if step.warnings:
            print(f"    {len(step.warnings)} warnings")
    print(f"Rows Processed: {result.total_rows_processed}")
    for error in result.errors:
        print(f"Error in {error['step']}: {error['error']}")
    if result.duration_seconds:
        print(f"Duration: {result.duration_seconds:.2f} seconds")

    if args.report:
        with open(args.report, "w") as f:
            json.dump(result.to_dict(), f, indent=2, default=str)
        logger.info(f"Saved migration report to {args.report}")

    return 0 if result.status == MigrationStatus.COMPLETED else 1


def run_step(args) -> int:
    """Run one invocation of a step and store the continuation token."""
    config = StepConfig.from_file(args.config)

    # Continuations resolve ids created by earlier invocations
    if not config.target_url:
        print("The step command needs a persistent target: set target_url in the config")
        return 2

    progress = None
    if args.progress and Path(args.progress).exists():
        progress = Progress.from_json(Path(args.progress).read_text())

    orchestrator = _build_orchestrator(args, config)
    report = MigrationStep(name=args.step)
    try:
        progress = orchestrator.invoke(StepName(args.step), config, progress, report)
    except ValueError as e:
        print(f"{args.step}: {e}")
        return 2
    finally:
        orchestrator.mappings.close()

    if args.progress:
        Path(args.progress).write_text(progress.to_json())

    print(f"{args.step}: {progress.state.value} - {report.message}")
    for warning in report.warnings:
        print(f"  warning: {warning}")

    return 1 if progress.is_error else 0


def run_validation(args) -> int:
    """Validate the source profile and the target connection."""
    config = StepConfig.from_file(args.config)

    print("\n=== Validating Configuration ===")

    try:
        source = create_source(config)
    except ValueError as e:
        print(f"Source: {e}")
        return 1

    errors = source.validate_source()
    for error in errors:
        print(f"  - {error}")

    target = create_target(config)
    if not target.validate_connection():
        errors.append("Target connection failed")
        print(f"  - Target connection failed: {config.target_url}")

    if not errors:
        print("\nConfiguration is valid!")
        return 0

    print(f"\nFound {len(errors)} validation errors")
    return 1


if __name__ == "__main__":
    sys.exit(main())
