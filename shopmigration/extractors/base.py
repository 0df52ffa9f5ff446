"""Base source profile interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterator, List, Optional
import logging

logger = logging.getLogger(__name__)


# Queries every source profile answers, in the stable order of its rows
PRODUCTS = "products"
PRODUCT_INFO = "product_info"
CATEGORIES = "categories"
PRODUCT_CATEGORIES = "product_categories"
PRODUCT_PRICES = "product_prices"
CUSTOMERS = "customers"

QUERIES = (
    PRODUCTS,
    PRODUCT_INFO,
    CATEGORIES,
    PRODUCT_CATEGORIES,
    PRODUCT_PRICES,
    CUSTOMERS,
)


class RowCursor:
    """
    Positioned, ordered cursor over the source rows of one query.

    Rows are handed out in the order of the underlying query, starting at
    the offset the cursor was opened with.
    """

    def __init__(self, rows: List[Dict[str, Any]], offset: int = 0):
        self._rows = rows
        self._position = 0
        self.offset = offset

    def remaining_count(self) -> int:
        """Rows from the opening offset to the end of the query."""
        return len(self._rows)

    def fetch(self) -> Optional[Dict[str, Any]]:
        """Return the next row as a fresh dict, or None when exhausted."""
        if self._position >= len(self._rows):
            return None
        row = dict(self._rows[self._position])
        self._position += 1
        return row

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        while True:
            row = self.fetch()
            if row is None:
                return
            yield row


class SourceProfile(ABC):
    """
    Base class for source data profiles.

    A profile answers a fixed set of queries, each positioned by an offset.
    The order of a query's rows must be stable across calls: resuming a step
    at offset N relies on the first N rows being the ones already processed.
    """

    name = "source"

    @abstractmethod
    def query(self, query: str, offset: int = 0) -> RowCursor:
        """
        Open a cursor over a query's rows, starting at `offset`.

        Args:
            query: One of the QUERIES names
            offset: Number of leading rows to skip

        Returns:
            RowCursor over the remaining rows
        """
        pass

    def query_products(self, offset: int = 0) -> RowCursor:
        return self.query(PRODUCTS, offset)

    def query_categories(self, offset: int = 0) -> RowCursor:
        return self.query(CATEGORIES, offset)

    def query_product_categories(self, offset: int = 0) -> RowCursor:
        return self.query(PRODUCT_CATEGORIES, offset)

    def query_product_prices(self, offset: int = 0) -> RowCursor:
        return self.query(PRODUCT_PRICES, offset)

    def query_customers(self, offset: int = 0) -> RowCursor:
        return self.query(CUSTOMERS, offset)

    def get_additional_product_info(self, product_id) -> Dict[str, Any]:
        """
        Extra fields of a product that the products query does not carry.

        Profiles without such data return an empty dict.
        """
        return {}

    def validate_source(self) -> List[str]:
        """
        Validate the profile configuration.

        Returns:
            List of validation error messages
        """
        return []


class MemoryProfile(SourceProfile):
    """Source profile over rows held in memory, keyed by query name."""

    name = "memory"

    def __init__(self, rows: Optional[Dict[str, List[Dict[str, Any]]]] = None):
        self.rows = {key: list(value) for key, value in (rows or {}).items()}

    def query(self, query: str, offset: int = 0) -> RowCursor:
        rows = self.rows.get(query, [])
        return RowCursor(rows[offset:], offset)

    def get_additional_product_info(self, product_id) -> Dict[str, Any]:
        for row in self.rows.get(PRODUCT_INFO, []):
            if str(row.get("product_id")) == str(product_id):
                info = dict(row)
                info.pop("product_id", None)
                return info
        return {}
