"""Summary analytics over canonical inventory records.

``aggregate`` projects the records into a flat pandas frame (one row per
record, one column per derived flag) and builds every rollup from it with
group-bys. The summary is recomputed from scratch on every call.

Lifecycle counts compare calendar dates against a reference ``now``; a date
counts once it is on or before that day. Unparsable dates never count.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, Iterable, Mapping

import pandas as pd

from .coercers import ACTIVE, EXPIRED, is_missing, normalize_number, parse_date
from .logging_utils import get_logger, log_warning

LOGGER = get_logger("analytics")

UNKNOWN_MANUFACTURER = "Unknown"
UNCATEGORIZED = "Uncategorized"

COMPLETENESS_FIELDS = (
    "mfg",
    "category",
    "product_id",
    "description",
    "support_coverage",
    "end_of_sale",
    "last_day_support",
    "asset_type",
    "ship_date",
)

# Slugs produced for the usual "End of Vulnerability/Security Support" headers
VULNERABILITY_DATE_KEYS = (
    "end_of_vulnerability_support",
    "end_of_vulnerabilitysecurity_support",
    "end_of_security_support",
    "end_of_sw_vulnerability",
)

_FRAME_COLUMNS = [
    "mfg",
    "has_mfg",
    "category",
    "qty",
    "value",
    "is_active",
    "is_expired",
    "eos_due",
    "vuln_due",
    "ldos_due",
    *[f"complete_{f}" for f in COMPLETENESS_FIELDS],
]


@dataclass(frozen=True)
class InventorySummary:
    """Read-only analytics for one normalized upload."""

    total_items: int = 0
    total_quantity: int = 0
    total_value: float = 0.0
    total_manufacturers: int = 0
    total_categories: int = 0
    active_support: int = 0
    expired_support: int = 0
    support_coverage_pct: int = 0
    total_end_of_sale: int = 0
    total_end_of_sw_vuln: int = 0
    total_last_day_support: int = 0
    manufacturer_breakdown: Dict[str, Dict[str, int]] = field(default_factory=dict)
    category_breakdown: Dict[str, Dict[str, int]] = field(default_factory=dict)
    field_completeness: Dict[str, int] = field(default_factory=dict)
    lifecycle_by_category: Dict[str, Dict[str, int]] = field(default_factory=dict)
    reference_date: str = ""

    @property
    def total_service_contracts(self) -> int:
        return self.active_support

    def to_dict(self) -> Dict[str, Any]:
        """Serialise using the reporting payload's key names."""
        return {
            "total_items": self.total_items,
            "totalRecords": self.total_items,
            "total_quantity": self.total_quantity,
            "total_value": self.total_value,
            "total_manufacturers": self.total_manufacturers,
            "total_categories": self.total_categories,
            "active_support": self.active_support,
            "expired_support": self.expired_support,
            "total_service_contracts": self.total_service_contracts,
            "supportCoverage": self.support_coverage_pct,
            "totalEndOfSale": self.total_end_of_sale,
            "totalEndOfSWVuln": self.total_end_of_sw_vuln,
            "totalLastDaySupport": self.total_last_day_support,
            "manufacturerBreakdown": {k: dict(v) for k, v in self.manufacturer_breakdown.items()},
            "categoryBreakdown": {k: dict(v) for k, v in self.category_breakdown.items()},
            "fieldCompleteness": dict(self.field_completeness),
            "lifecycleByCategory": {k: dict(v) for k, v in self.lifecycle_by_category.items()},
            "referenceDate": self.reference_date,
        }


def percent(part: float, whole: float) -> int:
    """Integer percentage rounded half up; ``0`` when ``whole`` is zero."""
    if not whole:
        return 0
    return int(math.floor(part * 100.0 / whole + 0.5))


def resolve_reference_date(now: Any = None) -> date:
    """Return the UTC calendar day used for lifecycle comparisons."""
    if now is None:
        return datetime.now(timezone.utc).date()
    parsed = parse_date(now)
    if parsed is None:
        log_warning(LOGGER, f"Unusable reference time {now!r}; using the current UTC date")
        return datetime.now(timezone.utc).date()
    return parsed


def _group_key(value: Any, default: str) -> str:
    if is_missing(value):
        return default
    return str(value)


def _quantity(value: Any) -> int:
    return int(normalize_number(value))


def _is_due(value: Any, today: date) -> bool:
    parsed = parse_date(value)
    return parsed is not None and parsed <= today


def _vulnerability_date(record: Mapping[str, Any]) -> Any:
    for key in VULNERABILITY_DATE_KEYS:
        value = record.get(key)
        if not is_missing(value):
            return value
    return None


def build_record_frame(records: Iterable[Any], today: date) -> pd.DataFrame:
    """Project records to one row of derived flags each.

    Non-mapping entries (rows the normalizer passed through) are counted as
    records with no fields.
    """

    rows = []
    for item in records:
        record: Mapping[str, Any] = item if isinstance(item, Mapping) else {}
        support = record.get("support_coverage")
        row = {
            "mfg": _group_key(record.get("mfg"), UNKNOWN_MANUFACTURER),
            "has_mfg": not is_missing(record.get("mfg")),
            "category": _group_key(record.get("category"), UNCATEGORIZED),
            "qty": _quantity(record.get("qty")),
            "value": float(normalize_number(record.get("total_value"))),
            "is_active": support == ACTIVE,
            "is_expired": support == EXPIRED,
            "eos_due": _is_due(record.get("end_of_sale"), today),
            "vuln_due": _is_due(_vulnerability_date(record), today),
            "ldos_due": _is_due(record.get("last_day_support"), today),
        }
        for name in COMPLETENESS_FIELDS:
            row[f"complete_{name}"] = not is_missing(record.get(name))
        rows.append(row)
    return pd.DataFrame(rows, columns=_FRAME_COLUMNS)


def _breakdown(frame: pd.DataFrame, key: str) -> Dict[str, Dict[str, int]]:
    grouped = frame.groupby(key, sort=False).agg(
        count=("qty", "size"),
        quantity=("qty", "sum"),
        activeCount=("is_active", "sum"),
        expiredCount=("is_expired", "sum"),
    )
    return {
        str(group): {col: int(row[col]) for col in ("count", "quantity", "activeCount", "expiredCount")}
        for group, row in grouped.iterrows()
    }


def _lifecycle(frame: pd.DataFrame) -> Dict[str, Dict[str, int]]:
    grouped = frame.groupby("category", sort=False).agg(
        totalQty=("qty", "sum"),
        endOfSale=("eos_due", "sum"),
        endOfSWVuln=("vuln_due", "sum"),
        lastDaySupport=("ldos_due", "sum"),
        total=("qty", "size"),
    )
    return {
        str(group): {col: int(row[col]) for col in ("totalQty", "endOfSale", "endOfSWVuln", "lastDaySupport", "total")}
        for group, row in grouped.iterrows()
    }


def aggregate(records: Iterable[Any], now: Any = None) -> InventorySummary:
    """Compute the summary for ``records`` relative to ``now`` (default: current UTC time)."""

    today = resolve_reference_date(now)
    frame = build_record_frame(records if records is not None else [], today)
    total = int(len(frame))
    if total == 0:
        return InventorySummary(
            field_completeness={name: 0 for name in COMPLETENESS_FIELDS},
            reference_date=today.isoformat(),
        )

    active = int(frame["is_active"].sum())
    category_breakdown = _breakdown(frame, "category")
    summary = InventorySummary(
        total_items=total,
        total_quantity=int(frame["qty"].sum()),
        total_value=round(float(frame["value"].sum()), 2),
        total_manufacturers=int(frame.loc[frame["has_mfg"], "mfg"].nunique()),
        total_categories=len(category_breakdown),
        active_support=active,
        expired_support=int(frame["is_expired"].sum()),
        support_coverage_pct=percent(active, total),
        total_end_of_sale=int(frame["eos_due"].sum()),
        total_end_of_sw_vuln=int(frame["vuln_due"].sum()),
        total_last_day_support=int(frame["ldos_due"].sum()),
        manufacturer_breakdown=_breakdown(frame, "mfg"),
        category_breakdown=category_breakdown,
        field_completeness={
            name: percent(int(frame[f"complete_{name}"].sum()), total) for name in COMPLETENESS_FIELDS
        },
        lifecycle_by_category=_lifecycle(frame),
        reference_date=today.isoformat(),
    )
    LOGGER.info(
        "Aggregated %d records: %d active, %d expired, %d categories",
        summary.total_items,
        summary.active_support,
        summary.expired_support,
        summary.total_categories,
    )
    return summary
