"""Configuration models and loaders for assetlens.

Settings live in a YAML file and are validated with pydantic. Only two knobs
affect normalization: the column synonym table and the support-status scheme.
Everything else (logging, job retention) is operational.
"""
from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError


class SupportScheme(str, Enum):
    """Which support-status coercion rules the row normalizer applies."""

    LENIENT = "lenient"
    STRICT = "strict"


CANONICAL_FIELDS: tuple[str, ...] = (
    "id",
    "mfg",
    "category",
    "asset_type",
    "type",
    "product_id",
    "description",
    "ship_date",
    "qty",
    "total_value",
    "support_coverage",
    "end_of_sale",
    "last_day_support",
)

# Declaration order is the tie-break when an alias appears under two fields.
DEFAULT_COLUMN_SYNONYMS: Dict[str, List[str]] = {
    "id": ["id", "row id", "row_id", "record id", "record_id"],
    "mfg": ["mfg", "manufacturer", "vendor", "supplier", "make", "brand"],
    "category": [
        "category",
        "business entity",
        "business_entity",
        "businessentity",
        "bus_entity",
        "product category",
        "product_category",
    ],
    "asset_type": ["asset type", "asset_type", "assettype", "type of asset", "equipment type", "equipment_type"],
    "type": ["type", "product type", "product_type", "model type", "model_type"],
    "product_id": [
        "product id",
        "product_id",
        "productid",
        "pid",
        "product number",
        "product_number",
        "part number",
        "part_number",
        "sku",
    ],
    "description": [
        "description",
        "product description",
        "product_description",
        "productdescription",
        "desc",
        "details",
        "product details",
    ],
    "ship_date": [
        "ship date",
        "ship_date",
        "shipdate",
        "ship dt",
        "ship_dt",
        "shipped date",
        "shipped_date",
        "date shipped",
        "date_shipped",
    ],
    "qty": [
        "qty",
        "quantity",
        "count",
        "amount",
        "units",
        "total qty",
        "total_qty",
        "item quantity",
        "item_quantity",
    ],
    "total_value": [
        "total value",
        "total_value",
        "totalvalue",
        "value",
        "cost",
        "price",
        "total cost",
        "total_cost",
        "total price",
        "total_price",
        "extended price",
        "extended_price",
    ],
    "support_coverage": [
        "support coverage",
        "support_coverage",
        "supportcoverage",
        "coverage",
        "maintenance",
        "support status",
        "support_status",
        "maintenance status",
        "maintenance_status",
        "covered",
        "covered line status",
        "covered_line_status",
    ],
    "end_of_sale": [
        "end of sale",
        "end_of_sale",
        "endofsale",
        "end of product sale",
        "end_of_product_sale",
        "end of product sale date",
        "end_of_product_sale_date",
        "eos",
        "sale end date",
        "sale_end_date",
        "discontinued date",
        "discontinued_date",
    ],
    "last_day_support": [
        "last day support",
        "last_day_support",
        "lastdaysupport",
        "last support",
        "last_support",
        "last date of support",
        "last_date_of_support",
        "end of support",
        "end_of_support",
        "support end date",
        "support_end_date",
        "eosl",
    ],
}


class NormalizationConfig(BaseModel):
    """Tunable parameters of the normalization engine."""

    support_scheme: SupportScheme = Field(
        SupportScheme.LENIENT,
        description="Support-status coercion rules: 'lenient' keeps unknowns, 'strict' fails closed",
    )
    column_synonyms: Dict[str, List[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_COLUMN_SYNONYMS.items()},
        description="Canonical field -> accepted header spellings",
    )

    @field_validator("support_scheme", mode="before")
    @classmethod
    def validate_scheme(cls, v):
        """Accept scheme names case-insensitively."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("column_synonyms")
    @classmethod
    def validate_synonyms(cls, v):
        """Lowercase and trim aliases; reject an empty table."""
        cleaned: Dict[str, List[str]] = {}
        for field, aliases in v.items():
            key = str(field).strip()
            if not key:
                raise ValueError("column_synonyms keys must be non-empty field names")
            cleaned[key] = [str(a).strip().lower() for a in (aliases or []) if str(a).strip()]
        if not cleaned:
            raise ValueError("column_synonyms must define at least one canonical field")
        return cleaned


class LoggingConfig(BaseModel):
    level: str = Field("INFO", description="Root level for assetlens loggers")
    file_name: Optional[str] = Field(None, description="Log file name; console only when unset")
    logs_dir: str = Field("logs", description="Directory for the log file")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v):
        level = str(v).strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown logging level: {v}")
        return level


class JobsConfig(BaseModel):
    retention_minutes: int = Field(60, ge=1, description="Age after which sweep() evicts a job")


class AssetLensSettings(BaseModel):
    """Complete assetlens configuration."""

    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    jobs: JobsConfig = Field(default_factory=JobsConfig)


def settings_from_mapping(config_dict: Optional[Dict[str, Any]]) -> AssetLensSettings:
    """Validate a raw configuration mapping.

    Raises:
        ConfigError: If any section fails validation.
    """
    try:
        return AssetLensSettings(**(config_dict or {}))
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load a YAML configuration file into a plain dict."""

    p = Path(path)
    if not p.exists():
        raise ConfigError(f"Config file not found: {p}")
    try:
        with open(p, "r", encoding="utf-8") as stream:
            data = yaml.safe_load(stream)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse config file {p}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a mapping at the top level")
    return data


def load_settings(path: str | Path | None = None) -> AssetLensSettings:
    """Return validated settings from ``path``, or the defaults when no path is given."""

    if path is None:
        return AssetLensSettings()
    return settings_from_mapping(load_config(path))
