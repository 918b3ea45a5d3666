"""Row and dataset normalization into canonical inventory records.

A raw row is a mapping of vendor header -> loosely typed cell value. The
``RowNormalizer`` renames headers through a ``HeaderResolver``, reduces cell
values to ``str | int | float | None`` and coerces the typed canonical
fields. ``normalize_dataset`` applies it to a whole upload in order and
assigns 1-based ids.
"""
from __future__ import annotations

import numbers
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional

import numpy as np

from .coercers import (
    SENTINEL,
    format_date,
    is_missing,
    is_na,
    normalize_number,
    support_coercer,
)
from .config import CANONICAL_FIELDS, AssetLensSettings, SupportScheme
from .header_resolver import HeaderResolver
from .logging_utils import get_logger, log_warning

LOGGER = get_logger("normalizer")

DATE_FIELDS = ("ship_date", "end_of_sale", "last_day_support")
NUMERIC_FIELDS = ("qty", "total_value")
TEXT_FIELDS = tuple(
    f for f in CANONICAL_FIELDS if f not in DATE_FIELDS + NUMERIC_FIELDS + ("id", "support_coverage")
)


def normalize_scalar(value: Any) -> Any:
    """Reduce a decoded cell to ``str``, ``int``, ``float`` or ``None``.

    - NaN/NaT/NA -> ``None``
    - dates and timestamps -> ``YYYY-MM-DD``
    - booleans -> ``'true'`` / ``'false'``
    - numpy scalars -> Python numbers
    - anything else (rich text objects, decimals) -> ``str(value)``
    """

    if is_na(value):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (bool, np.bool_)):
        return "true" if value else "false"
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, numbers.Integral):
        return int(value)
    if isinstance(value, float) or isinstance(value, np.floating):
        return float(value)
    return str(value)


def _as_text(value: Any) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return SENTINEL
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (int, float)):
        return str(value)
    return value


class RowNormalizer:
    """Turn one raw row into a canonical record.

    ``scheme`` selects the support-status rules and has no default: lenient
    and strict disagree on unknown values, so callers must choose.
    """

    def __init__(self, scheme: SupportScheme | str, resolver: Optional[HeaderResolver] = None):
        self.scheme = SupportScheme(scheme)
        self.resolver = resolver or HeaderResolver()
        self._coerce_support = support_coercer(self.scheme)

    @classmethod
    def from_settings(cls, settings: AssetLensSettings) -> "RowNormalizer":
        cfg = settings.normalization
        return cls(cfg.support_scheme, HeaderResolver(cfg.column_synonyms))

    def map_headers(self, raw_row: Mapping[Any, Any]) -> Dict[str, Any]:
        """Rename headers to canonical names; later duplicates overwrite earlier ones."""
        mapped: Dict[str, Any] = {}
        for header, value in raw_row.items():
            mapped[self.resolver.resolve(header)] = normalize_scalar(value)
        return mapped

    def coerce(self, mapped: Mapping[str, Any]) -> Dict[str, Any]:
        """Apply the field coercers and fill every canonical field."""
        record = dict(mapped)
        record["support_coverage"] = self._coerce_support(record.get("support_coverage"))
        for field in DATE_FIELDS:
            record[field] = format_date(record.get(field))
        qty = normalize_number(record.get("qty"))
        record["qty"] = qty if qty > 0 else 0
        record["total_value"] = normalize_number(record.get("total_value"))
        for field in TEXT_FIELDS:
            record[field] = _as_text(record.get(field))
        return record

    def normalize(self, raw_row: Any) -> Any:
        """Return the canonical record for ``raw_row``, or ``raw_row`` itself if it cannot be processed."""
        try:
            return self.coerce(self.map_headers(raw_row))
        except Exception as exc:
            log_warning(LOGGER, f"Row could not be normalized ({type(exc).__name__}: {exc}); passing it through unchanged")
            return raw_row


def _supplied_id(value: Any) -> Optional[int]:
    if is_missing(value):
        return None
    number = normalize_number(value)
    if isinstance(number, int) and number > 0:
        return number
    return None


def normalize_dataset(raw_rows: Iterable[Any], normalizer: RowNormalizer) -> List[Any]:
    """Normalize every row in input order and give each record a unique id.

    A supplied positive integer id is kept by the first row that carries it.
    Every other record (no id, a non-numeric or non-positive id, or a repeat)
    gets ``index + 1``, or the next integer above it that no other record
    uses. A supplied id that was replaced is kept as ``source_id``. Rows the
    normalizer passed through unchanged are emitted as received.
    """

    rows = list(raw_rows) if raw_rows is not None else []
    records = [normalizer.normalize(raw) for raw in rows]
    normalized = [record is not raw and isinstance(record, dict) for record, raw in zip(records, rows)]

    # supplied id -> index of the first row claiming it
    claimed: Dict[int, int] = {}
    for index, record in enumerate(records):
        if normalized[index]:
            number = _supplied_id(record.get("id"))
            if number is not None:
                claimed.setdefault(number, index)

    used = set(claimed)
    for index, record in enumerate(records):
        if not normalized[index]:
            continue
        supplied = record.get("id")
        number = _supplied_id(supplied)
        if number is not None and claimed[number] == index:
            record["id"] = number
            continue
        candidate = index + 1
        while candidate in used:
            candidate += 1
        used.add(candidate)
        record["id"] = candidate
        if not is_missing(supplied):
            record.setdefault("source_id", supplied)

    if rows and isinstance(rows[0], Mapping):
        LOGGER.debug("Header mapping for first row: %s", normalizer.resolver.column_mapping(rows[0].keys()))
    LOGGER.info("Normalized %d rows (support scheme: %s)", len(records), normalizer.scheme.value)
    return records
