"""Step execution endpoints: one request runs one bounded invocation."""

import logging
from typing import Callable

from fastapi import APIRouter, Depends, HTTPException

from ...extractors.base import SourceProfile
from ...loaders.base import TargetProfile
from ...models.config import StepConfig
from ...models.migration import MigrationStep, StepName
from ...models.progress import Progress
from ...orchestrator import MigrationOrchestrator
from ...storage.mapping_store import MappingStore
from ..dependencies import get_mapping_store, get_source_factory, get_target
from ..models import ProgressModel, StepRunRequest, StepRunResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/{step}/run", response_model=StepRunResponse)
def run_step(
    step: StepName,
    data: StepRunRequest,
    mappings: MappingStore = Depends(get_mapping_store),
    target: TargetProfile = Depends(get_target),
    source_factory: Callable[[StepConfig], SourceProfile] = Depends(get_source_factory),
):
    """
    Run one invocation of a step.

    Resubmit the returned progress until its state is `done` or `error`.
    """
    try:
        config = StepConfig.from_dict(data.config)
        source = source_factory(config)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    progress = None
    if data.progress is not None:
        progress = Progress.from_dict(data.progress.model_dump(mode="json"))

    orchestrator = MigrationOrchestrator(source, target, mappings)
    report = MigrationStep(name=step.value)
    try:
        progress = orchestrator.invoke(step, config, progress, report)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return StepRunResponse(
        progress=ProgressModel(**progress.to_dict()),
        message=report.message,
        warnings=report.warnings,
    )
