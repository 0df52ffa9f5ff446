"""Step configuration shared by every invocation of a migration job."""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import parse_qsl


class NumberValidationMode(str, Enum):
    """How product order numbers that do not conform are handled."""
    IGNORE = "ignore"  # No check at all
    COMPLAIN = "complain"  # First invalid number stops the step
    MAKE_VALID = "make_valid"  # Sanitize the number, never map it


# Short request parameter names of the importer form, accepted next to the field names
_ALIASES = {
    "supplier": "default_supplier",
    "salt": "password_salt",
    "basepath": "base_path",
    "language": "language_map",
    "shop": "shop_map",
    "price_group": "price_group_map",
    "customer_group": "customer_group_map",
    "attribute": "attribute_map",
    "tax_rate": "tax_rate_map",
    "order_status": "order_status_map",
    "payment_mean": "payment_mean_map",
    "property_options": "property_options_map",
}

_MAP_FIELDS = (
    "language_map",
    "shop_map",
    "price_group_map",
    "customer_group_map",
    "attribute_map",
    "tax_rate_map",
    "order_status_map",
    "payment_mean_map",
    "property_options_map",
    "configurator_mapping",
)

_CREDENTIAL_KEYS = ("username", "password", "host", "port", "database", "dbname", "prefix", "driver")

_BRACKET_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])+)$")


def _clean_map(value: Any) -> Dict[str, Any]:
    """Normalize a translation table: string keys, empty targets dropped."""
    if not value:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"Expected a mapping, got {type(value).__name__}")
    return {
        str(k): v for k, v in value.items()
        if v is not None and v != ""
    }


def _is_enabled(value: Any) -> bool:
    if isinstance(value, str):
        return value.lower() in ("on", "1", "true", "yes")
    return bool(value)


def parse_query_string(query: str) -> Dict[str, Any]:
    """
    Parse a form-encoded query string into nested dictionaries.

    Bracket keys are expanded, so `language[1]=3&shop[2]=4` becomes
    `{"language": {"1": "3"}, "shop": {"2": "4"}}`. Empty brackets append
    positional keys.
    """
    result: Dict[str, Any] = {}

    for key, value in parse_qsl(query, keep_blank_values=True):
        match = _BRACKET_KEY.match(key)
        if not match:
            result[key] = value
            continue

        parts = [match.group(1)] + re.findall(r"\[([^\[\]]*)\]", match.group(2))
        node = result
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = {}
                node[part] = child
            node = child

        last = parts[-1]
        if last == "":
            last = str(len(node))
        node[last] = value

    return result


@dataclass(frozen=True)
class StepConfig:
    """
    Configuration supplied once at the start of a migration job.

    The same instance is forwarded unchanged to every step and every
    continuation of a step.
    """
    profile: str = ""
    credentials: Dict[str, Any] = field(default_factory=dict)
    enabled_steps: Tuple[str, ...] = ()

    # Translation tables (source id -> target id)
    language_map: Dict[str, Any] = field(default_factory=dict)
    shop_map: Dict[str, Any] = field(default_factory=dict)
    price_group_map: Dict[str, Any] = field(default_factory=dict)
    customer_group_map: Dict[str, Any] = field(default_factory=dict)
    attribute_map: Dict[str, Any] = field(default_factory=dict)
    tax_rate_map: Dict[str, Any] = field(default_factory=dict)
    order_status_map: Dict[str, Any] = field(default_factory=dict)
    payment_mean_map: Dict[str, Any] = field(default_factory=dict)
    property_options_map: Dict[str, Any] = field(default_factory=dict)
    configurator_mapping: Dict[str, Any] = field(default_factory=dict)

    # Behaviour
    number_validation_mode: NumberValidationMode = NumberValidationMode.COMPLAIN
    default_supplier: str = ""
    password_salt: str = ""
    base_path: str = ""
    max_execution: Optional[float] = 10.0

    # Connectors
    source_dir: Optional[str] = None
    source_queries: Dict[str, str] = field(default_factory=dict)
    target_url: Optional[str] = None
    target_api_key: Optional[str] = None
    mapping_database: Optional[str] = None

    def is_step_enabled(self, step: str) -> bool:
        """An empty enable list enables every step."""
        return not self.enabled_steps or step in self.enabled_steps

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation (credentials password masked)."""
        credentials = dict(self.credentials)
        if credentials.get("password"):
            credentials["password"] = "***"

        data: Dict[str, Any] = {
            "profile": self.profile,
            "credentials": credentials,
            "enabled_steps": list(self.enabled_steps),
            "number_validation_mode": self.number_validation_mode.value,
            "default_supplier": self.default_supplier,
            "password_salt": self.password_salt,
            "base_path": self.base_path,
            "max_execution": self.max_execution,
            "source_dir": self.source_dir,
            "source_queries": dict(self.source_queries),
            "target_url": self.target_url,
            "mapping_database": self.mapping_database,
        }
        for name in _MAP_FIELDS:
            data[name] = dict(getattr(self, name))
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepConfig":
        """
        Create from dictionary representation.

        Accepts the field names as well as the short request names of the
        importer form (`supplier`, `salt`, `language`, `import_products=on`, ...).

        Raises:
            ValueError: If an option has an invalid value
        """
        normalized: Dict[str, Any] = {}
        for key, value in data.items():
            normalized[_ALIASES.get(key, key)] = value

        # Step enable flags: explicit list plus import_*=on style flags
        enabled: List[str] = list(normalized.get("enabled_steps") or [])
        for key, value in normalized.items():
            if key.startswith("import_") and _is_enabled(value) and key not in enabled:
                enabled.append(key)

        credentials = dict(normalized.get("credentials") or {})
        for key in _CREDENTIAL_KEYS:
            if key in normalized and key not in credentials:
                credentials[key] = normalized[key]
        if "dbname" in credentials and "database" not in credentials:
            credentials["database"] = credentials.pop("dbname")
        for key in ("port", "prefix"):
            if credentials.get(key) in ("", "default"):
                credentials.pop(key)

        mode = normalized.get("number_validation_mode") or NumberValidationMode.COMPLAIN.value
        try:
            mode = NumberValidationMode(mode)
        except ValueError:
            valid = ", ".join(m.value for m in NumberValidationMode)
            raise ValueError(f"Invalid number_validation_mode '{mode}', expected one of: {valid}")

        max_execution = normalized.get("max_execution", 10.0)
        if max_execution in ("", None):
            max_execution = None
        else:
            max_execution = float(max_execution)

        maps = {name: _clean_map(normalized.get(name)) for name in _MAP_FIELDS}

        return cls(
            profile=normalized.get("profile", ""),
            credentials=credentials,
            enabled_steps=tuple(enabled),
            number_validation_mode=mode,
            default_supplier=normalized.get("default_supplier") or "",
            password_salt=normalized.get("password_salt") or "",
            base_path=normalized.get("base_path") or "",
            max_execution=max_execution,
            source_dir=normalized.get("source_dir"),
            source_queries=dict(normalized.get("source_queries") or {}),
            target_url=normalized.get("target_url") or None,
            target_api_key=normalized.get("target_api_key"),
            mapping_database=normalized.get("mapping_database"),
            **maps,
        )

    @classmethod
    def from_query_string(cls, query: str) -> "StepConfig":
        """Create from a form-encoded request string (`language[1]=3&...`)."""
        return cls.from_dict(parse_query_string(query))

    @classmethod
    def from_json_file(cls, path: str) -> "StepConfig":
        with open(path) as f:
            return cls.from_dict(json.load(f))

    @classmethod
    def from_file(cls, path: str) -> "StepConfig":
        """Load a JSON config, or a query string for `.query`/`.txt` files."""
        if Path(path).suffix.lower() in (".query", ".txt"):
            return cls.from_query_string(Path(path).read_text().strip())
        return cls.from_json_file(path)
