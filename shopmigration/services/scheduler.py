"""Wall-clock budget that decides when a step yields control."""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class ContinuationScheduler:
    """
    Time box of one step invocation.

    The adapter starts the timer when it begins working and asks
    `should_yield()` after every processed row. Once the elapsed time
    exceeds `max_execution` the adapter returns its current Progress and
    waits to be invoked again.
    """

    def __init__(
        self,
        max_execution: Optional[float] = 10.0,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Args:
            max_execution: Budget in seconds; None or <= 0 never yields
            clock: Monotonic time source
        """
        self.max_execution = max_execution
        self._clock = clock
        self._started_at: Optional[float] = None

    def start(self) -> None:
        self._started_at = self._clock()

    @property
    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    @property
    def unbounded(self) -> bool:
        return self.max_execution is None or self.max_execution <= 0

    def should_yield(self) -> bool:
        """True once the invocation has used up its budget."""
        if self.unbounded or self._started_at is None:
            return False

        if self.elapsed > self.max_execution:
            logger.debug(f"Execution budget of {self.max_execution}s used up after {self.elapsed:.2f}s")
            return True
        return False
