"""SQL database source profile."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, func, literal_column, select, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.expression import Subquery

from .base import PRODUCT_INFO, QUERIES, RowCursor, SourceProfile

logger = logging.getLogger(__name__)


class DatabaseProfile(SourceProfile):
    """
    Source profile reading from a relational database.

    Every query is a SQL statement supplied by configuration. It must order
    its rows deterministically (ORDER BY on a unique key). The statement is
    wrapped in a subquery: its row count comes from `SELECT COUNT(*)` and
    its rows are read in pages of `page_size` with LIMIT/OFFSET, starting
    at the invocation offset.

    The optional `product_info` statement takes a `:product_id` parameter.
    """

    name = "database"

    def __init__(
        self,
        queries: Dict[str, str],
        credentials: Optional[Dict[str, Any]] = None,
        engine: Optional[Engine] = None,
        page_size: int = 500
    ):
        """
        Initialize the database profile.

        Args:
            queries: Query name -> SQL statement
            credentials: username/password/host/port/database/driver
            engine: Existing engine, used instead of credentials
            page_size: Rows read per statement
        """
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.queries = dict(queries)
        self.page_size = page_size
        self.engine = engine or create_engine(self.build_url(credentials or {}))

    @staticmethod
    def build_url(credentials: Dict[str, Any]) -> URL:
        """Build a SQLAlchemy URL from connection credentials."""
        port = credentials.get("port")
        return URL.create(
            drivername=credentials.get("driver") or "mysql+pymysql",
            username=credentials.get("username") or None,
            password=credentials.get("password") or None,
            host=credentials.get("host") or None,
            port=int(port) if port else None,
            database=credentials.get("database") or None,
        )

    def query(self, query: str, offset: int = 0) -> RowCursor:
        sql = self.queries.get(query)
        if not sql:
            logger.debug(f"No SQL configured for query '{query}'")
            return RowCursor([], offset)

        source_rows = text(sql.strip().rstrip(";")).columns().subquery("source_rows")
        try:
            with self.engine.connect() as conn:
                count = conn.execute(select(func.count()).select_from(source_rows)).scalar_one()
        except SQLAlchemyError as e:
            raise RuntimeError(f"Source query '{query}' failed: {e}") from e

        return PagedRowCursor(self, query, source_rows, offset, count)

    def read_page(self, query: str, source_rows: Subquery, offset: int) -> List[Dict[str, Any]]:
        """Read up to page_size rows of a query, starting at offset."""
        page = (
            select(literal_column("*"))
            .select_from(source_rows)
            .limit(self.page_size)
            .offset(offset)
        )
        try:
            with self.engine.connect() as conn:
                return [dict(row) for row in conn.execute(page).mappings()]
        except SQLAlchemyError as e:
            raise RuntimeError(f"Source query '{query}' failed: {e}") from e

    def get_additional_product_info(self, product_id) -> Dict[str, Any]:
        sql = self.queries.get(PRODUCT_INFO)
        if not sql:
            return {}

        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(sql), {"product_id": product_id}).first()
        except SQLAlchemyError as e:
            raise RuntimeError(f"Source query '{PRODUCT_INFO}' failed: {e}") from e

        return dict(row._mapping) if row else {}

    def validate_source(self) -> List[str]:
        errors = []
        unknown = set(self.queries) - set(QUERIES)
        if unknown:
            errors.append(f"Unknown source queries: {', '.join(sorted(unknown))}")
        if not self.queries:
            errors.append("No source queries configured")
        return errors


class PagedRowCursor(RowCursor):
    """
    Cursor reading the rows of a SQL query one page at a time.

    The first page starts at the opening offset, so rows already processed
    by earlier invocations are never fetched.
    """

    def __init__(self, profile: DatabaseProfile, query: str, source_rows: Subquery, offset: int, count: int):
        super().__init__([], offset)
        self._profile = profile
        self._query = query
        self._source_rows = source_rows
        self._count = count
        self._next_offset = offset
        self._exhausted = offset >= count

    def remaining_count(self) -> int:
        return max(self._count - self.offset, 0)

    def fetch(self) -> Optional[Dict[str, Any]]:
        if self._position >= len(self._rows):
            if self._exhausted:
                return None
            self._rows = self._profile.read_page(self._query, self._source_rows, self._next_offset)
            self._position = 0
            self._next_offset += len(self._rows)
            if len(self._rows) < self._profile.page_size or self._next_offset >= self._count:
                self._exhausted = True
            if not self._rows:
                return None
        return super().fetch()
