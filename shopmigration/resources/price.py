"""Price import."""

import logging
from typing import Any, Dict

from ..loaders.base import ImportKind
from ..models.mapping import MappingType
from ..models.migration import StepName
from ..models.progress import Progress
from .base import AbstractResource

logger = logging.getLogger(__name__)

DEFAULT_PRICE_GROUP = "EK"


class Price(AbstractResource):
    """
    Imports product prices per customer group.

    Needs the article mapping of the product step. The first invocation
    (offset 0) normalizes the target's block prices to a single open tier;
    resumed invocations do not repeat it.
    """

    steps = (StepName.PRICES,)

    default_error_message = "An error occurred while importing prices"
    done_message = "Prices successfully imported!"
    progress_label = "prices"

    def run(self) -> Progress:
        if self.progress.offset == 0:
            logger.info("Resetting block prices")
            self.target.reset_block_prices()

        cursor = self.open_cursor(self.source.query_product_prices)
        for price in cursor:
            self._import_price(price)
            self.advance()
            if self.needs_new_request():
                return self.progress

        return self.progress.done()

    def _import_price(self, price: Dict[str, Any]) -> None:
        product_id = price.get("product_id")
        group = price.get("price_group")

        group_map = self.config.price_group_map
        if group_map and group:
            if str(group) not in group_map:
                self.add_warning(f"Price group '{group}' is not mapped, skipping price of product {product_id}")
                return
            group = group_map[str(group)]
        price["price_group"] = group or DEFAULT_PRICE_GROUP

        detail_id = self.mappings.get(MappingType.ARTICLE, product_id)
        context = self.target.price_context(detail_id, price["price_group"]) if detail_id else None
        if not context:
            self.add_warning(
                f"No migrated article or customer group '{price['price_group']}' for the price of product {product_id}"
            )
            return

        price.update(context)
        self.convert_net_price(price, "net_price", "price")
        self.convert_net_price(price, "net_pseudo_price", "pseudo_price")

        self.target.import_record(ImportKind.ARTICLE_PRICE, price)
