"""Per-field value coercion for canonical inventory records.

Every function here is total: it accepts any scalar and returns a value,
falling back to a sentinel or to the untouched input instead of raising.
"""
from __future__ import annotations

import math
import numbers
import re
import warnings
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict

import pandas as pd

from .config import SupportScheme

SENTINEL = "-"
ACTIVE = "Active"
EXPIRED = "Expired"

_MISSING_TEXT = {"", "-", "N/A", "n/a"}
_RELATIVE_DATE_WORDS = {"now", "today", "tomorrow", "yesterday"}
_NUMBER_PREFIX_RX = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_YEAR_RX = re.compile(r"\d{4}")
_DIGIT_GROUP_RX = re.compile(r"\d+")

ACTIVE_TERMS = ("covered", "active", "yes", "valid", "current", "maintenance")
ACTIVE_EXACT = {"y", "1", "true"}
EXPIRED_TERMS = ("not covered", "no coverage", "expired", "none", "no")
EXPIRED_EXACT = {"n", "0", "false"}
STRICT_PLACEHOLDERS = {"", "-", ".", "?", "0"}
STRICT_ACTIVE = {"ACTIVE", "COVERED"}


def is_na(value: Any) -> bool:
    """True for ``None`` and pandas/numpy missing markers (NaN, NaT, NA)."""
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def is_missing(value: Any) -> bool:
    """True for values treated as "no data": NA, ``''``, ``'-'``, ``'N/A'``, ``'n/a'``."""
    if is_na(value):
        return True
    return isinstance(value, str) and value.strip() in _MISSING_TEXT


def _datetime_to_iso(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date().isoformat()


def parse_date(value: Any) -> date | None:
    """Parse ``value`` into a calendar date (UTC), or ``None`` when it is not a date."""

    if is_missing(value) or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if text.lower() in _RELATIVE_DATE_WORDS:
        return None
    # Bare numbers other than YYYY / YYYYMMDD are quantities, not dates
    if text.isdigit() and len(text) not in (4, 8):
        return None
    # Text without a year ("March", "May 5") is not a date
    if not _YEAR_RX.search(text) and len(_DIGIT_GROUP_RX.findall(text)) < 3:
        return None
    try:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            parsed = pd.to_datetime(text, utc=True, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if is_na(parsed):
        return None
    return parsed.date()


def format_date(value: Any) -> Any:
    """Return ``YYYY-MM-DD`` for a parseable date, ``'-'`` for missing input.

    Input that cannot be parsed is returned unchanged so foreign or ambiguous
    formats stay visible for manual review.
    """

    if is_missing(value):
        return SENTINEL
    if isinstance(value, datetime):
        return _datetime_to_iso(value)
    parsed = parse_date(value)
    if parsed is None:
        return value
    return parsed.isoformat()


def _tidy_number(number: float) -> int | float:
    if not math.isfinite(number):
        return 0
    return int(number) if float(number).is_integer() else float(number)


def normalize_number(value: Any) -> int | float:
    """Parse a quantity or currency amount; missing or unparsable input yields ``0``.

    ``$`` and ``,`` are stripped and the leading numeric literal is used, so
    ``'$1,234.50'`` gives ``1234.5`` and ``'12 units'`` gives ``12``.
    """

    if is_missing(value):
        return 0
    if isinstance(value, numbers.Real) and not isinstance(value, bool):
        return _tidy_number(float(value))
    text = str(value).replace("$", "").replace(",", "").strip()
    match = _NUMBER_PREFIX_RX.match(text)
    if not match:
        return 0
    return _tidy_number(float(match.group(0)))


def normalize_support_lenient(value: Any) -> Any:
    """Map coverage wording to ``Active``/``Expired``; keep unrecognised values verbatim.

    Missing input maps to the ``'-'`` sentinel. The active vocabulary is
    checked before the expired one.
    """

    if is_missing(value):
        return SENTINEL
    lowered = str(value).lower().strip()
    if lowered in ACTIVE_EXACT or any(term in lowered for term in ACTIVE_TERMS):
        return ACTIVE
    if lowered in EXPIRED_EXACT or any(term in lowered for term in EXPIRED_TERMS):
        return EXPIRED
    return value


def normalize_support_strict(value: Any) -> str:
    """Fail-closed coverage mapping: only ``ACTIVE``/``COVERED`` count as active."""

    if is_na(value):
        return EXPIRED
    text = str(value).strip()
    if text in STRICT_PLACEHOLDERS:
        return EXPIRED
    if text.upper() in STRICT_ACTIVE:
        return ACTIVE
    return EXPIRED


SUPPORT_COERCERS: Dict[SupportScheme, Callable[[Any], Any]] = {
    SupportScheme.LENIENT: normalize_support_lenient,
    SupportScheme.STRICT: normalize_support_strict,
}


def support_coercer(scheme: SupportScheme | str) -> Callable[[Any], Any]:
    """Return the support-status coercer for ``scheme``.

    Raises:
        ValueError: If ``scheme`` is not a known scheme name.
    """
    return SUPPORT_COERCERS[SupportScheme(scheme)]
