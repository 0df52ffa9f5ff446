"""Migration execution models."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from enum import Enum
from datetime import datetime
import uuid


class StepName(str, Enum):
    """Steps a migration job is made of, in their usual order."""
    PRODUCTS = "import_products"
    CATEGORIES = "import_categories"
    ARTICLE_CATEGORIES = "import_article_categories"
    PRICES = "import_prices"
    CUSTOMERS = "import_customers"


DEFAULT_STEPS = [
    StepName.PRODUCTS,
    StepName.CATEGORIES,
    StepName.ARTICLE_CATEGORIES,
    StepName.PRICES,
    StepName.CUSTOMERS,
]


class MigrationStatus(str, Enum):
    """Status of a migration run or step."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class MigrationStep:
    """Report of a single step of a migration job."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    status: MigrationStatus = MigrationStatus.PENDING
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    invocations: int = 0
    offset: int = 0
    count: int = 0
    message: Optional[str] = None
    errors: List[Dict[str, Any]] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    carried_params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "invocations": self.invocations,
            "offset": self.offset,
            "count": self.count,
            "message": self.message,
            "errors": self.errors,
            "warnings": self.warnings,
            "carried_params": self.carried_params,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None


@dataclass
class MigrationRun:
    """A complete migration job."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    status: MigrationStatus = MigrationStatus.PENDING

    # Timing
    created_at: datetime = field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Progress
    steps: List[MigrationStep] = field(default_factory=list)
    current_step: Optional[str] = None

    # Statistics
    total_rows_processed: int = 0

    errors: List[Dict[str, Any]] = field(default_factory=list)

    # Parameters carried over from finished steps (enable flags etc.)
    params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "steps": [s.to_dict() for s in self.steps],
            "current_step": self.current_step,
            "total_rows_processed": self.total_rows_processed,
            "errors": self.errors,
            "params": self.params,
        }

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.started_at and self.completed_at:
            return (self.completed_at - self.started_at).total_seconds()
        return None

    def get_step(self, name: str) -> Optional[MigrationStep]:
        """Get a step report by step name."""
        for step in self.steps:
            if step.name == name:
                return step
        return None

    def update_totals(self) -> None:
        """Update total statistics from steps."""
        self.total_rows_processed = sum(s.offset for s in self.steps)
