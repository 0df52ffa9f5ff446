"""
Persistent source -> target identifier mapping store.

One table keyed by (type_id, source_id). Writes are upserts, so a row that
is imported again after a resume or a re-run converges on a single entry.
"""

import logging
from typing import Callable, List, Optional

from sqlalchemy import (
    Column,
    Integer,
    String,
    UniqueConstraint,
    create_engine,
    delete,
    func,
    or_,
    select,
    update,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base
from sqlalchemy.pool import StaticPool

from ..models.mapping import MappingEntry, MappingType

logger = logging.getLogger(__name__)

Base = declarative_base()


class MappingStoreError(Exception):
    """Raised when the mapping store cannot be read or written."""


class MappingRow(Base):
    """ORM row of the mapping table."""
    __tablename__ = "migration_mappings"
    __table_args__ = (
        UniqueConstraint("type_id", "source_id", name="uq_migration_mappings_type_source"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    type_id = Column(Integer, nullable=False, index=True)
    source_id = Column(String(255), nullable=False)
    target_id = Column(String(255), nullable=False)


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so a prefix matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class MappingStore:
    """
    Keyed store of (entity type, source id) -> target id.

    Usage:
        store = MappingStore("sqlite:///migration.db")
        store.put(MappingType.ARTICLE, "S1", "42")
        store.get(MappingType.ARTICLE, "S1")  # "42"
    """

    def __init__(self, database_url: str = "sqlite:///:memory:", echo: bool = False):
        """
        Initialize the store and create the mapping table if needed.

        Args:
            database_url: SQLAlchemy database URL
            echo: Log emitted SQL

        Raises:
            MappingStoreError: If the database cannot be initialized
        """
        self.database_url = database_url
        engine_kwargs = {"echo": echo}
        if database_url == "sqlite://" or (database_url.startswith("sqlite") and ":memory:" in database_url):
            # All sessions must share the single in-memory database
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}

        try:
            self.engine = create_engine(database_url, **engine_kwargs)
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            raise MappingStoreError(f"Failed to initialize mapping store: {e}") from e

        logger.debug(f"Mapping store ready at {self.engine.url.render_as_string(hide_password=True)}")

    def put(self, mapping_type: MappingType, source_id, target_id) -> None:
        """
        Insert or overwrite the target of (mapping_type, source_id).

        Raises:
            ValueError: If the source id is empty
            MappingStoreError: If the write fails
        """
        if source_id is None or source_id == "":
            raise ValueError(f"Cannot map an empty {mapping_type.name} source id")

        source_id, target_id = str(source_id), str(target_id)
        try:
            with Session(self.engine) as session:
                existing = session.execute(
                    select(MappingRow).where(
                        MappingRow.type_id == int(mapping_type),
                        MappingRow.source_id == source_id,
                    )
                ).scalar_one_or_none()

                if existing:
                    existing.target_id = target_id
                else:
                    session.add(MappingRow(
                        type_id=int(mapping_type),
                        source_id=source_id,
                        target_id=target_id,
                    ))
                session.commit()
        except SQLAlchemyError as e:
            raise MappingStoreError(
                f"Failed to save mapping {mapping_type.name} {source_id} -> {target_id}: {e}"
            ) from e

    def get(self, mapping_type: MappingType, source_id) -> Optional[str]:
        """Get the target id of an exact key, or None."""
        if source_id is None or source_id == "":
            return None

        stmt = select(MappingRow.target_id).where(
            MappingRow.type_id == int(mapping_type),
            MappingRow.source_id == str(source_id),
        )
        return self._scalar(stmt)

    def get_by_prefix(self, mapping_type: MappingType, prefix) -> Optional[str]:
        """Get the target id of the first source id starting with `prefix`."""
        if prefix is None or prefix == "":
            return None

        stmt = (
            select(MappingRow.target_id)
            .where(
                MappingRow.type_id == int(mapping_type),
                MappingRow.source_id.like(_escape_like(str(prefix)) + "%", escape="\\"),
            )
            .order_by(MappingRow.source_id)
            .limit(1)
        )
        return self._scalar(stmt)

    def find_all(
        self,
        mapping_type: MappingType,
        source_id,
        prefix: Optional[str] = None
    ) -> List[str]:
        """
        Get all target ids matching a source id exactly or by prefix.

        Args:
            mapping_type: Key space to search
            source_id: Exact source id
            prefix: Optional source id prefix matched in addition

        Returns:
            Target ids ordered by source id
        """
        conditions = [MappingRow.source_id == str(source_id)]
        if prefix:
            conditions.append(MappingRow.source_id.like(_escape_like(prefix) + "%", escape="\\"))

        stmt = (
            select(MappingRow.target_id)
            .where(MappingRow.type_id == int(mapping_type), or_(*conditions))
            .order_by(MappingRow.source_id)
        )
        try:
            with Session(self.engine) as session:
                return list(session.execute(stmt).scalars())
        except SQLAlchemyError as e:
            raise MappingStoreError(f"Failed to read mappings: {e}") from e

    def delete(self, mapping_type: MappingType, source_id) -> None:
        """Delete a single entry."""
        self._execute(delete(MappingRow).where(
            MappingRow.type_id == int(mapping_type),
            MappingRow.source_id == str(source_id),
        ))

    def reset(self, *mapping_types: MappingType) -> int:
        """
        Delete every entry of the given types.

        Only called at offset 0 of a step that regenerates the key space.

        Returns:
            Number of deleted entries
        """
        if not mapping_types:
            return 0

        deleted = self._execute(delete(MappingRow).where(
            MappingRow.type_id.in_([int(t) for t in mapping_types])
        ))
        logger.info(f"Reset {deleted} mapping entries of {', '.join(t.name for t in mapping_types)}")
        return deleted

    def retarget(
        self,
        mapping_type: MappingType,
        old_target,
        new_target,
        apply: Optional[Callable[[], None]] = None
    ) -> int:
        """
        Point every entry targeting `old_target` at `new_target`.

        Args:
            mapping_type: Key space to rewrite
            old_target: Target id being replaced
            new_target: Replacement target id
            apply: Called inside the transaction before commit; if it raises,
                the rewrite is rolled back and the exception propagates

        Returns:
            Number of rewritten entries
        """
        stmt = (
            update(MappingRow)
            .where(
                MappingRow.type_id == int(mapping_type),
                MappingRow.target_id == str(old_target),
            )
            .values(target_id=str(new_target))
        )
        try:
            with Session(self.engine) as session:
                with session.begin():
                    updated = session.execute(stmt).rowcount
                    if apply is not None:
                        apply()
        except SQLAlchemyError as e:
            raise MappingStoreError(
                f"Failed to retarget {mapping_type.name} {old_target} -> {new_target}: {e}"
            ) from e

        logger.debug(f"Retargeted {updated} {mapping_type.name} entries {old_target} -> {new_target}")
        return updated

    def entries(self, mapping_type: MappingType) -> List[MappingEntry]:
        """List all entries of a type, ordered by source id."""
        stmt = (
            select(MappingRow)
            .where(MappingRow.type_id == int(mapping_type))
            .order_by(MappingRow.source_id)
        )
        try:
            with Session(self.engine) as session:
                return [
                    MappingEntry(MappingType(row.type_id), row.source_id, row.target_id)
                    for row in session.execute(stmt).scalars()
                ]
        except SQLAlchemyError as e:
            raise MappingStoreError(f"Failed to read mappings: {e}") from e

    def count(self, mapping_type: Optional[MappingType] = None) -> int:
        stmt = select(func.count(MappingRow.id))
        if mapping_type is not None:
            stmt = stmt.where(MappingRow.type_id == int(mapping_type))
        return self._scalar(stmt) or 0

    def close(self) -> None:
        self.engine.dispose()

    def _scalar(self, stmt):
        try:
            with Session(self.engine) as session:
                return session.execute(stmt).scalar()
        except SQLAlchemyError as e:
            raise MappingStoreError(f"Failed to read mappings: {e}") from e

    def _execute(self, stmt) -> int:
        try:
            with Session(self.engine) as session:
                result = session.execute(stmt)
                session.commit()
                return result.rowcount
        except SQLAlchemyError as e:
            raise MappingStoreError(f"Failed to write mappings: {e}") from e
