"""CSV/JSON file-based source profile."""

import csv
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .base import PRODUCT_INFO, QUERIES, RowCursor, SourceProfile

logger = logging.getLogger(__name__)


class FileProfile(SourceProfile):
    """
    Source profile reading one export file per query.

    Supports:
    - `<query>.json` (a list, or an object with a data/records/items/rows list)
    - `<query>.jsonl` (one object per line)
    - `<query>.csv` (header row, delimiter sniffed, values type-inferred)

    The row order of the file is the stable order of the query.
    """

    name = "file"

    SUFFIXES = (".json", ".jsonl", ".csv")

    def __init__(
        self,
        base_dir: Union[str, Path],
        encoding: str = "utf-8",
        delimiter: str = ","
    ):
        """
        Initialize the file profile.

        Args:
            base_dir: Directory holding the export files
            encoding: File encoding
            delimiter: CSV delimiter used when sniffing fails
        """
        self.base_dir = Path(base_dir)
        self.encoding = encoding
        self.delimiter = delimiter
        self._cache: Dict[str, List[Dict[str, Any]]] = {}
        self._product_info: Optional[Dict[str, Dict[str, Any]]] = None

    def query(self, query: str, offset: int = 0) -> RowCursor:
        rows = self._load(query)
        return RowCursor(rows[offset:], offset)

    def get_additional_product_info(self, product_id) -> Dict[str, Any]:
        if self._product_info is None:
            self._product_info = {}
            for row in self._load(PRODUCT_INFO):
                info = dict(row)
                key = str(info.pop("product_id", ""))
                self._product_info[key] = info
        return dict(self._product_info.get(str(product_id), {}))

    def validate_source(self) -> List[str]:
        """Validate the file source configuration."""
        errors = []

        if not self.base_dir.is_dir():
            errors.append(f"Source directory not found: {self.base_dir}")
            return errors

        if not any(self._find_file(q) for q in QUERIES):
            errors.append(f"No export files found in {self.base_dir}")

        return errors

    def _find_file(self, query: str) -> Optional[Path]:
        for suffix in self.SUFFIXES:
            path = self.base_dir / f"{query}{suffix}"
            if path.exists():
                return path
        return None

    def _load(self, query: str) -> List[Dict[str, Any]]:
        """Load (once) all rows of a query; a missing file is an empty query."""
        if query in self._cache:
            return self._cache[query]

        path = self._find_file(query)
        if path is None:
            logger.debug(f"No export file for query '{query}' in {self.base_dir}")
            rows: List[Dict[str, Any]] = []
        elif path.suffix == ".csv":
            rows = self._read_csv(path)
        elif path.suffix == ".jsonl":
            rows = self._read_jsonl(path)
        else:
            rows = self._read_json(path)

        logger.info(f"Loaded {len(rows)} '{query}' rows from {path}")
        self._cache[query] = rows
        return rows

    def _read_json(self, path: Path) -> List[Dict[str, Any]]:
        with open(path, "r", encoding=self.encoding) as f:
            data = json.load(f)

        # Handle different JSON structures
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ["data", "records", "items", "rows"]:
                if key in data and isinstance(data[key], list):
                    return data[key]
        raise ValueError(f"Unexpected JSON structure in {path}")

    def _read_jsonl(self, path: Path) -> List[Dict[str, Any]]:
        rows = []
        with open(path, "r", encoding=self.encoding) as f:
            for line_num, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line))
                except json.JSONDecodeError as e:
                    raise ValueError(f"Invalid JSON on line {line_num} of {path}: {e}") from e
        return rows

    def _read_csv(self, path: Path) -> List[Dict[str, Any]]:
        rows = []
        with open(path, "r", encoding=self.encoding, newline="") as f:
            # Try to detect delimiter
            sample = f.read(8192)
            f.seek(0)

            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
            except csv.Error:
                delimiter = self.delimiter

            reader = csv.DictReader(f, delimiter=delimiter)
            for row in reader:
                data = {
                    column.strip(): self._infer_type(value)
                    for column, value in row.items()
                    if column is not None
                }
                # Skip empty records
                if all(v is None for v in data.values()):
                    continue
                rows.append(data)
        return rows

    def _infer_type(self, value: Optional[str]) -> Union[str, int, float, None]:
        """Infer the type of a CSV cell; ids with leading zeros stay strings."""
        if value is None:
            return None

        value = value.strip()
        if value == "" or value.lower() in ("null", "none"):
            return None

        if value.lstrip("-").isdigit():
            if len(value.lstrip("-")) > 1 and value.lstrip("-").startswith("0"):
                return value
            return int(value)

        try:
            return float(value)
        except ValueError:
            return value
