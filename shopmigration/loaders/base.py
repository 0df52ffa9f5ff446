"""Base target profile interface."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, Optional
import logging

logger = logging.getLogger(__name__)


class ImportKind(str, Enum):
    """Record kinds accepted by the generic import write."""
    CATEGORY = "category"
    ARTICLE = "article"
    ARTICLE_PRICE = "article_price"
    ARTICLE_CATEGORY = "article_category"
    ARTICLE_LINK = "article_link"
    CUSTOMER = "customer"
    SHIPPING_ADDRESS = "shipping_address"
    CUSTOMER_DEBIT = "customer_debit"


class TargetError(Exception):
    """Raised when the target system rejects a write or a lookup."""


class TargetProfile(ABC):
    """
    Base class for target shop profiles.

    The generic `import_record` write creates or updates one record and
    returns its identity fields:

    - category: {"category_id"}
    - article: {"article_id", "articledetails_id", "kind"} (kind 1 = main detail)
    - article_price: {"articleprices_id"}
    - article_link: {"articlelink_id"}
    - customer: {"user_id"}
    - article_category, shipping_address, customer_debit: {} or {"id"}

    Writes are expected to be idempotent on the record's natural key
    (order number, email, ...), so a re-imported row updates in place.
    The remaining methods are the lookups and small commands the resource
    adapters need on the target side.
    """

    name = "target"

    @abstractmethod
    def import_record(self, kind: ImportKind, record: Dict[str, Any]) -> Dict[str, Any]:
        """
        Write one record to the target.

        Args:
            kind: Kind of record
            record: Record fields

        Returns:
            Identity fields of the written record

        Raises:
            TargetError: If the target rejects the record
        """
        pass

    # Categories

    @abstractmethod
    def root_category_for_locale(self, locale_id) -> Optional[str]:
        """Root category of the shop using `locale_id`."""
        pass

    @abstractmethod
    def update_category(self, category_id, fields: Dict[str, Any]) -> None:
        pass

    # Articles

    @abstractmethod
    def article_id_for_detail(self, detail_id) -> Optional[str]:
        pass

    @abstractmethod
    def detail_has_configurator_options(self, detail_id) -> bool:
        pass

    @abstractmethod
    def promote_detail(self, old_detail_id, new_detail_id, article_id) -> None:
        """
        Replace a placeholder main detail by a real variant.

        Deletes the old detail, makes the new one the article's main detail
        and sets its kind to 1. Either all three changes apply or none.
        """
        pass

    @abstractmethod
    def set_article_configuration(self, record: Dict[str, Any]) -> None:
        """
        Generate the configurator of an article from its main detail.

        Used for master articles of master/child sources. The record carries
        `maindetails_id`, `additional_text` (option names separated by "|")
        and optionally `variant_group_names` (group names, same separator).
        """
        pass

    @abstractmethod
    def update_article(self, article_id, fields: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    def delete_article_links(self, article_id) -> None:
        pass

    # Prices

    @abstractmethod
    def price_context(self, detail_id, price_group: str) -> Optional[Dict[str, Any]]:
        """
        Resolve what a price row needs from the target.

        Returns:
            {"articledetails_id", "article_id", "tax"} where tax is the
            article's tax rate if the customer group enters prices with tax,
            otherwise 0; None if the detail or the group does not exist
        """
        pass

    @abstractmethod
    def reset_block_prices(self) -> None:
        """Drop every price tier above the first and open the first tier."""
        pass

    # Customers

    @abstractmethod
    def country_id(self, iso: str) -> int:
        """Country id for an ISO code, 0 if unknown."""
        pass

    @abstractmethod
    def shop_locale(self, shop_id) -> Optional[int]:
        pass

    @abstractmethod
    def default_payment_id(self) -> Optional[int]:
        pass

    def validate_connection(self) -> bool:
        """Validate the connection to the target."""
        return True
