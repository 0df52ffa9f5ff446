"""Identity mapping models."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Optional, Tuple


# Folds the language dimension into a category id, e.g. "12_LANG_3"
CATEGORY_LANGUAGE_SEPARATOR = "_LANG_"


class MappingType(IntEnum):
    """Key spaces of the mapping store (persisted as integers)."""
    ARTICLE = 1
    CATEGORY = 2
    CUSTOMER = 3
    CATEGORY_TARGET = 6  # Parent links of the category hierarchy


@dataclass(frozen=True)
class MappingEntry:
    """A single source -> target identifier link."""
    entity_type: MappingType
    source_id: str
    target_id: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "entity_type": self.entity_type.name.lower(),
            "source_id": self.source_id,
            "target_id": self.target_id,
        }


def is_composite(category_id: Any) -> bool:
    """Check whether a category id already carries a language suffix."""
    return CATEGORY_LANGUAGE_SEPARATOR in str(category_id)


def compose(raw_id: Any, language_id: Any) -> str:
    """
    Build a composite category key from a raw id and a language id.

    Keys that already carry a language suffix are returned unchanged.
    """
    if is_composite(raw_id):
        return str(raw_id)
    return f"{raw_id}{CATEGORY_LANGUAGE_SEPARATOR}{language_id}"


def decompose(category_id: Any) -> Tuple[str, Optional[str]]:
    """
    Split a (possibly composite) category key into (raw_id, language_id).

    Both parts come back as strings, whatever type the key was composed
    from; language_id is None for a plain key.
    """
    raw_id, sep, language_id = str(category_id).partition(CATEGORY_LANGUAGE_SEPARATOR)
    if not sep:
        return raw_id, None
    return raw_id, language_id


def language_prefix(raw_id: Any) -> str:
    """Prefix matching every composite key of a raw category id."""
    return f"{raw_id}{CATEGORY_LANGUAGE_SEPARATOR}"
