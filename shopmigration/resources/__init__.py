"""Resource adapters, one per migrated entity kind."""

from typing import Dict, Optional, Type

from ..extractors.base import SourceProfile
from ..loaders.base import TargetProfile
from ..models.config import StepConfig
from ..models.migration import StepName
from ..models.progress import Progress
from ..services.scheduler import ContinuationScheduler
from ..storage.mapping_store import MappingStore
from .base import AbstractResource, StepError
from .category import Category
from .customer import Customer
from .price import Price
from .product import Product

# Step -> adapter; Category handles both of its phases
RESOURCES: Dict[StepName, Type[AbstractResource]] = {
    StepName.PRODUCTS: Product,
    StepName.CATEGORIES: Category,
    StepName.ARTICLE_CATEGORIES: Category,
    StepName.PRICES: Price,
    StepName.CUSTOMERS: Customer,
}


def create_resource(
    step: StepName,
    progress: Progress,
    source: SourceProfile,
    target: TargetProfile,
    mappings: MappingStore,
    config: StepConfig,
    scheduler: Optional[ContinuationScheduler] = None
) -> AbstractResource:
    """
    Build the adapter for a step.

    Raises:
        ValueError: If the step is unknown
    """
    resource_class = RESOURCES[StepName(step)]
    return resource_class(step, progress, source, target, mappings, config, scheduler)


__all__ = [
    "AbstractResource",
    "StepError",
    "Category",
    "Customer",
    "Price",
    "Product",
    "RESOURCES",
    "create_resource",
]
