"""Unit tests for the analytics aggregator."""

from datetime import date, datetime, timezone

import pytest

from assetlens.analytics import COMPLETENESS_FIELDS, aggregate, percent, resolve_reference_date

NOW = "2024-01-01"


def make_record(**fields):
    record = {
        "id": 1,
        "mfg": "Cisco",
        "category": "Router",
        "asset_type": "Network",
        "type": "Hardware",
        "product_id": "ISR4331",
        "description": "Branch router",
        "ship_date": "2019-03-01",
        "qty": 1,
        "total_value": 0,
        "support_coverage": "Active",
        "end_of_sale": "-",
        "last_day_support": "-",
    }
    record.update(fields)
    return record


@pytest.fixture
def records():
    return [
        make_record(id=1, qty=2, total_value=3000, end_of_sale="2020-01-01", last_day_support="2025-01-31"),
        make_record(id=2, qty=1, total_value=8500.5, support_coverage="Pending Review", end_of_sale="2099-01-01"),
        make_record(
            id=3,
            mfg="Juniper",
            category="Switch",
            qty=5,
            support_coverage="Expired",
            end_of_sale="2019-05-01",
            last_day_support="2023-05-01",
            description="-",
        ),
        make_record(id=4, mfg="-", category="", qty=3, support_coverage="-", description="N/A", last_day_support="TBD"),
    ]


def test_scalar_totals(records):
    summary = aggregate(records, now=NOW)
    assert summary.total_items == 4
    assert summary.total_quantity == 11
    assert summary.total_value == 11500.5
    assert summary.active_support == 1
    assert summary.expired_support == 1
    assert summary.total_service_contracts == summary.active_support
    assert summary.total_manufacturers == 2
    assert summary.total_categories == 3
    assert summary.support_coverage_pct == 25


def test_unknown_and_uncategorized_groups(records):
    summary = aggregate(records, now=NOW)
    assert list(summary.manufacturer_breakdown) == ["Cisco", "Juniper", "Unknown"]
    assert list(summary.category_breakdown) == ["Router", "Switch", "Uncategorized"]
    assert summary.manufacturer_breakdown["Cisco"] == {"count": 2, "quantity": 3, "activeCount": 1, "expiredCount": 0}
    assert summary.category_breakdown["Switch"] == {"count": 1, "quantity": 5, "activeCount": 0, "expiredCount": 1}
    assert summary.category_breakdown["Uncategorized"]["count"] == 1


def test_breakdown_conservation(records):
    summary = aggregate(records, now=NOW)
    for breakdown in (summary.manufacturer_breakdown, summary.category_breakdown):
        assert sum(g["count"] for g in breakdown.values()) == summary.total_items
        assert sum(g["quantity"] for g in breakdown.values()) == summary.total_quantity


def test_field_completeness(records):
    summary = aggregate(records, now=NOW)
    completeness = summary.field_completeness
    assert set(completeness) == set(COMPLETENESS_FIELDS)
    assert completeness["product_id"] == 100
    assert completeness["mfg"] == 75
    assert completeness["description"] == 50
    assert completeness["end_of_sale"] == 75
    # "TBD" is unparsed but present
    assert completeness["last_day_support"] == 75
    assert all(isinstance(v, int) and 0 <= v <= 100 for v in completeness.values())


def test_lifecycle_by_category(records):
    summary = aggregate(records, now=NOW)
    router = summary.lifecycle_by_category["Router"]
    assert router == {"totalQty": 3, "endOfSale": 1, "endOfSWVuln": 0, "lastDaySupport": 0, "total": 2}
    switch = summary.lifecycle_by_category["Switch"]
    assert switch["endOfSale"] == 1
    assert switch["lastDaySupport"] == 1
    assert summary.lifecycle_by_category["Uncategorized"]["lastDaySupport"] == 0
    assert summary.total_end_of_sale == 2
    assert summary.total_last_day_support == 1


def test_lifecycle_router_scenario():
    records = [
        make_record(id=1, category="Router", end_of_sale="2020-01-01"),
        make_record(id=2, category="Router", end_of_sale="2099-01-01"),
    ]
    summary = aggregate(records, now=datetime(2024, 1, 1, tzinfo=timezone.utc))
    assert summary.lifecycle_by_category["Router"]["endOfSale"] == 1


def test_date_on_reference_day_counts():
    summary = aggregate([make_record(end_of_sale="2024-01-01")], now=NOW)
    assert summary.total_end_of_sale == 1


def test_vulnerability_date_read_from_slugged_column():
    record = make_record(end_of_vulnerabilitysecurity_support="2019-06-30")
    summary = aggregate([record, make_record(end_of_security_support="2030-01-01")], now=NOW)
    assert summary.total_end_of_sw_vuln == 1
    assert summary.lifecycle_by_category["Router"]["endOfSWVuln"] == 1


def test_quantity_is_recoerced():
    summary = aggregate([make_record(qty="7"), make_record(qty="$2.9"), make_record(qty=None)], now=NOW)
    assert summary.total_quantity == 9


def test_non_mapping_records_are_counted():
    summary = aggregate([make_record(), "garbage"], now=NOW)
    assert summary.total_items == 2
    assert summary.manufacturer_breakdown["Unknown"]["count"] == 1
    assert summary.category_breakdown["Uncategorized"]["count"] == 1


def test_empty_dataset():
    summary = aggregate([], now=NOW)
    assert summary.total_items == 0
    assert summary.total_quantity == 0
    assert summary.support_coverage_pct == 0
    assert summary.manufacturer_breakdown == {}
    assert summary.category_breakdown == {}
    assert summary.lifecycle_by_category == {}
    assert summary.field_completeness == {name: 0 for name in COMPLETENESS_FIELDS}


def test_idempotent(records):
    assert aggregate(records, now=NOW).to_dict() == aggregate(records, now=NOW).to_dict()


def test_to_dict_payload_keys(records):
    payload = aggregate(records, now=NOW).to_dict()
    for key in (
        "total_items",
        "total_quantity",
        "total_manufacturers",
        "active_support",
        "expired_support",
        "total_categories",
        "total_service_contracts",
        "totalRecords",
        "supportCoverage",
        "manufacturerBreakdown",
        "categoryBreakdown",
        "fieldCompleteness",
        "lifecycleByCategory",
    ):
        assert key in payload
    assert payload["referenceDate"] == "2024-01-01"


def test_percent_rounds_half_up():
    assert percent(1, 2) == 50
    assert percent(1, 8) == 13
    assert percent(2, 3) == 67
    assert percent(0, 0) == 0


def test_resolve_reference_date():
    assert resolve_reference_date("2024-01-01") == date(2024, 1, 1)
    assert resolve_reference_date(date(2023, 5, 6)) == date(2023, 5, 6)
    assert resolve_reference_date("not a date") == datetime.now(timezone.utc).date()


def test_dates_without_a_year_never_count():
    records = [make_record(end_of_sale="March", last_day_support="May 5")]
    summary = aggregate(records, now=NOW)
    assert summary.total_end_of_sale == 0
    assert summary.total_last_day_support == 0
