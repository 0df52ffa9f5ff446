"""Base resource adapter: the contract every entity importer follows."""

from abc import ABC, abstractmethod
from dataclasses import replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Tuple
import logging

from ..extractors.base import RowCursor, SourceProfile
from ..loaders.base import TargetProfile
from ..models.config import StepConfig
from ..models.migration import StepName
from ..models.progress import Progress
from ..services.scheduler import ContinuationScheduler
from ..storage.mapping_store import MappingStore

logger = logging.getLogger(__name__)


class StepError(Exception):
    """A row the whole step cannot get past; the step stops at its offset."""


def _is_zero(value: Any) -> bool:
    if value in (None, ""):
        return True
    try:
        return Decimal(str(value)) == 0
    except InvalidOperation:
        return True


def net_to_gross(net: Any, tax: Any) -> float:
    """Apply a tax rate to a net figure, rounded half-up to 2 decimals."""
    gross = Decimal(str(net)) * (Decimal(100) + Decimal(str(tax))) / Decimal(100)
    return float(gross.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


class AbstractResource(ABC):
    """
    Base class for resource adapters.

    One adapter instance handles one invocation of one step. It opens a
    source cursor at the offset of the incoming Progress, processes rows in
    cursor order, writes through the target profile, records identity links
    in the mapping store and advances the offset by one per row. After each
    row it asks the scheduler whether to yield; if so it returns the current
    `running` Progress and is invoked again later with it.

    Subclasses implement `run()` and may raise StepError for failures that
    stop the whole step. Row-level anomalies are reported with
    `add_warning()` and the row is skipped.
    """

    steps: Tuple[StepName, ...] = ()

    default_error_message = "An error occurred during the import"
    done_message = "Import successfully finished!"
    progress_label = "rows"

    def __init__(
        self,
        step: StepName,
        progress: Progress,
        source: SourceProfile,
        target: TargetProfile,
        mappings: MappingStore,
        config: StepConfig,
        scheduler: Optional[ContinuationScheduler] = None
    ):
        """
        Initialize the resource.

        Args:
            step: Step this invocation runs
            progress: Continuation token to resume from
            source: Source profile to read rows from
            target: Target profile to write records to
            mappings: Identity mapping store
            config: Job configuration
            scheduler: Execution budget; built from config.max_execution if omitted
        """
        self.step = StepName(step)
        if self.steps and self.step not in self.steps:
            raise ValueError(f"{type(self).__name__} does not handle step {self.step.value}")

        if not progress.step:
            progress = replace(progress, step=self.step.value)
        elif progress.step != self.step.value:
            raise ValueError(f"Progress token belongs to step {progress.step}, not {self.step.value}")
        self.progress = progress
        self.source = source
        self.target = target
        self.mappings = mappings
        self.config = config
        self.scheduler = scheduler or ContinuationScheduler(config.max_execution)
        self.warnings: List[str] = []

    def progress_message(self, progress: Optional[Progress] = None) -> str:
        """Human readable state of a running step."""
        progress = progress or self.progress
        return f"{progress.offset} out of {progress.count} {self.progress_label} imported"

    def execute(self) -> Progress:
        """
        Run one bounded invocation and return the next continuation token.

        Failures never escape: a StepError, or any other exception raised
        while processing a row, becomes an `error` token at the offset of
        the row that failed.
        """
        logger.info(f"Running {self.step.value} from offset {self.progress.offset}")
        self.scheduler.start()

        try:
            progress = self.run()
        except StepError as e:
            logger.error(f"{self.step.value} stopped at offset {self.progress.offset}: {e}")
            return self.progress.error(str(e))
        except Exception as e:
            logger.exception(f"{self.step.value} failed at offset {self.progress.offset}")
            return self.progress.error(f"{self.default_error_message}: {e}")

        if progress.is_done:
            logger.info(f"{self.step.value} done after {progress.offset} rows")
        else:
            logger.info(f"{self.step.value} yielding: {self.progress_message(progress)}")
        return progress

    @abstractmethod
    def run(self) -> Progress:
        """
        Process rows from the current offset.

        Returns:
            The current Progress when yielding, or a `done` Progress
        """
        pass

    def open_cursor(self, query: Callable[[int], RowCursor]) -> RowCursor:
        """Open the source cursor at the current offset and recount the step."""
        cursor = query(self.progress.offset)
        self.progress = self.progress.with_count(cursor.remaining_count() + self.progress.offset)
        return cursor

    def advance(self) -> None:
        self.progress = self.progress.advance()

    def needs_new_request(self) -> bool:
        """True if the invocation should yield after the current row."""
        return self.scheduler.should_yield()

    def add_warning(self, message: str) -> None:
        """Record a diagnostic for a skipped or partially imported row."""
        logger.warning(f"{self.step.value} offset {self.progress.offset}: {message}")
        self.warnings.append(message)

    @staticmethod
    def convert_net_price(record: Dict[str, Any], net_field: str, gross_field: str) -> Dict[str, Any]:
        """
        Replace a net figure by its gross value using the record's `tax` rate.

        With no tax rate the net figure is taken as gross and `tax` is
        removed from the record. An unset net figure leaves the record as
        it is.
        """
        if record.get(net_field) in (None, ""):
            return record

        net = record.pop(net_field)

        if _is_zero(record.get("tax")):
            record[gross_field] = net
            record.pop("tax", None)
        else:
            record[gross_field] = net_to_gross(net, record["tax"])
        return record
