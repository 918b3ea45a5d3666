"""
assetlens: normalization and analytics for vendor inventory spreadsheets.

Vendor exports with inconsistent headers, date formats and support-status
wording are mapped onto one canonical record schema and summarized into
coverage, completeness and lifecycle rollups.
"""

from .analytics import InventorySummary, aggregate
from .coercers import format_date, normalize_number, normalize_support_lenient, normalize_support_strict
from .config import AssetLensSettings, SupportScheme, load_settings
from .header_resolver import HeaderResolver, resolve
from .normalizer import RowNormalizer, normalize_dataset

__all__ = [
    "AssetLensSettings",
    "HeaderResolver",
    "InventorySummary",
    "RowNormalizer",
    "SupportScheme",
    "aggregate",
    "format_date",
    "load_settings",
    "normalize_dataset",
    "normalize_number",
    "normalize_support_lenient",
    "normalize_support_strict",
    "resolve",
]
