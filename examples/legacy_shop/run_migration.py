#!/usr/bin/env python3
"""
Example: legacy shop export to a target shop

Drives every step one bounded invocation at a time, the way a web
dispatcher would: the continuation token returned by an invocation is
serialized, and the next invocation starts from the deserialized token.

Usage:
    # Dry run into an in-memory shop
    python run_migration.py

    # Write to a shop import API
    python run_migration.py --target-url https://shop.example.com/api/migration
"""

import argparse
import json
import logging
import os
from pathlib import Path
from typing import Optional

from shopmigration.extractors.file_profile import FileProfile
from shopmigration.loaders.api_loader import APITarget
from shopmigration.loaders.memory_loader import MemoryTarget
from shopmigration.models.config import StepConfig
from shopmigration.models.migration import DEFAULT_STEPS, MigrationStep
from shopmigration.models.progress import Progress
from shopmigration.orchestrator import MigrationOrchestrator
from shopmigration.storage.mapping_store import MappingStore

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

HERE = Path(__file__).parent


def create_orchestrator(config: StepConfig, target_url: Optional[str] = None) -> MigrationOrchestrator:
    """Build the connectors for this example."""
    source = FileProfile(HERE / config.source_dir)

    if target_url:
        target = APITarget(target_url, api_key=os.environ.get("SHOP_API_KEY"))
        mappings = MappingStore(config.mapping_database)
    else:
        # Shop 1 runs the German locale (2) below root category 1000
        target = MemoryTarget(shops={"1": {"locale_id": 2, "category_id": "1000"}})
        # Mappings into a throwaway shop stay in memory with it
        mappings = MappingStore()

    return MigrationOrchestrator(source, target, mappings)


def main():
    parser = argparse.ArgumentParser(description="Migrate the legacy shop example")
    parser.add_argument("--config", default=str(HERE / "job.json"), help="Path to job config file")
    parser.add_argument("--target-url", help="Import API of the target shop")
    args = parser.parse_args()

    config = StepConfig.from_file(args.config)
    orchestrator = create_orchestrator(config, args.target_url)

    params = {}
    try:
        for step in DEFAULT_STEPS:
            if not (config.is_step_enabled(step.value) or params.get(step.value)):
                continue

            report = MigrationStep(name=step.value)
            token = Progress(step=step.value, carried_params=params).to_json()

            while True:
                progress = orchestrator.invoke(step, config, Progress.from_json(token), report)
                token = progress.to_json()
                print(f"{step.value}: {report.message}")
                if progress.is_terminal:
                    break

            for warning in report.warnings:
                print(f"  warning: {warning}")

            if progress.is_error:
                print(f"Stopped: {progress.error_message}")
                return 1
            params.update(progress.carried_params)
    finally:
        orchestrator.mappings.close()

    if isinstance(orchestrator.target, MemoryTarget):
        shop = orchestrator.target
        print(json.dumps({
            "categories": len(shop.categories),
            "articles": len(shop.articles),
            "details": len(shop.details),
            "prices": len(shop.prices),
            "customers": len(shop.customers),
        }, indent=2))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
