"""File decoding and export encoding around the normalization core.

Decoding turns an uploaded CSV/Excel file into an ordered list of raw rows
(header -> cell). Encoding renders canonical records back to CSV or XLSX with
the fixed reporting column set, and the summary to JSON.
"""
from __future__ import annotations

import csv
import io
import json
import re
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from .analytics import InventorySummary
from .coercers import is_na
from .errors import InputFileError
from .logging_utils import get_logger, log_warning

LOGGER = get_logger("io")

TEXT_EXTENSIONS = (".csv", ".tsv", ".txt")
EXCEL_EXTENSIONS = (".xlsx", ".xlsm")
ALLOWED_EXTENSIONS = TEXT_EXTENSIONS + EXCEL_EXTENSIONS
TEXT_DELIMITERS = {".csv": ",", ".tsv": "\t"}
SNIFF_DELIMITERS = (",", "\t", ";", "|")

# (header, record key, xlsx column width)
EXPORT_COLUMNS: Tuple[Tuple[str, str, int], ...] = (
    ("ID", "id", 10),
    ("Manufacturer", "mfg", 15),
    ("Category", "category", 20),
    ("Asset Type", "asset_type", 15),
    ("Type", "type", 15),
    ("Product ID", "product_id", 20),
    ("Description", "description", 40),
    ("Ship Date", "ship_date", 12),
    ("Quantity", "qty", 10),
    ("Total Value", "total_value", 15),
    ("Support Coverage", "support_coverage", 15),
    ("End of Sale", "end_of_sale", 12),
    ("Last Support", "last_day_support", 12),
)
EXPORT_SHEET_NAME = "Analysis Results"
_HEADER_FILL = PatternFill(fill_type="solid", fgColor="FFE0E0E0")
_UNNAMED_RX = re.compile(r"^Unnamed: \d+$")


def validate_extension(filename: str, allowed: Iterable[str] = ALLOWED_EXTENSIONS) -> str:
    """Return the lowercased suffix of ``filename`` or raise if it is not allowed."""

    suffix = Path(filename).suffix.lower()
    if suffix not in {ext.lower() for ext in allowed}:
        raise InputFileError(f"Unsupported file extension: {suffix or '(none)'}. Allowed: {list(allowed)}")
    return suffix


def _decode_text(data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def _detect_delimiter(text: str) -> str:
    """Sniff a ``.txt`` delimiter among ``SNIFF_DELIMITERS``; default to a comma."""
    sample = "\n".join(text.splitlines()[:20])
    try:
        return csv.Sniffer().sniff(sample, delimiters="".join(SNIFF_DELIMITERS)).delimiter
    except csv.Error:
        return ","


def _read_frame(data: bytes, suffix: str) -> pd.DataFrame:
    # Only truly blank cells are missing; "None", "N/A" etc. stay as text for the coercers
    if suffix in TEXT_EXTENSIONS:
        text = _decode_text(data)
        sep = TEXT_DELIMITERS.get(suffix) or _detect_delimiter(text)
        return pd.read_csv(
            io.StringIO(text),
            sep=sep,
            dtype=str,
            keep_default_na=False,
            na_values=[""],
            skip_blank_lines=True,
        )
    return pd.read_excel(io.BytesIO(data), sheet_name=0, keep_default_na=False, na_values=[""])


def frame_to_rows(df: pd.DataFrame) -> List[Dict[str, Any]]:
    """Convert a decoded frame to raw rows.

    Columns without a header and rows with no values are dropped; cell values
    are returned as decoded (the normalizer reduces them to plain scalars).
    """

    keep = [c for c in df.columns if not _UNNAMED_RX.match(str(c)) and str(c).strip()]
    df = df.loc[:, keep].dropna(how="all")
    rows: List[Dict[str, Any]] = []
    for values in df.itertuples(index=False, name=None):
        rows.append({str(col): val for col, val in zip(keep, values)})
    return rows


def read_input_bytes(data: bytes, filename: str) -> List[Dict[str, Any]]:
    """Decode an uploaded file's bytes into raw rows.

    Raises:
        InputFileError: If the extension is not supported or the file cannot be parsed.
    """

    suffix = validate_extension(filename)
    if not data:
        log_warning(LOGGER, f"{filename} is empty; no rows decoded")
        return []
    try:
        df = _read_frame(data, suffix)
    except pd.errors.EmptyDataError:
        log_warning(LOGGER, f"{filename} has no header row; no rows decoded")
        return []
    except Exception as exc:
        raise InputFileError(f"Failed to parse {filename}: {exc}") from exc
    rows = frame_to_rows(df)
    LOGGER.info("Decoded %d rows from %s (columns: %s)", len(rows), filename, list(df.columns))
    return rows


def read_input_file(path: str | Path) -> List[Dict[str, Any]]:
    """Read a CSV/TSV/TXT/XLSX file from disk into raw rows."""

    p = Path(path)
    if not p.exists():
        raise InputFileError(f"Input not found: {p}")
    return read_input_bytes(p.read_bytes(), p.name)


def _export_value(record: Any, key: str) -> Any:
    value = record.get(key) if isinstance(record, Mapping) else None
    if is_na(value):
        return None
    if isinstance(value, (str, int, float)):
        return value
    return str(value)


def records_to_frame(records: Iterable[Any]) -> pd.DataFrame:
    """Project records onto the fixed export columns, in export order."""

    rows = [[_export_value(rec, key) for _, key, _ in EXPORT_COLUMNS] for rec in records]
    return pd.DataFrame(rows, columns=[header for header, _, _ in EXPORT_COLUMNS])


def export_csv(records: Iterable[Any]) -> bytes:
    return records_to_frame(records).to_csv(index=False).encode("utf-8")


def export_xlsx(records: Iterable[Any]) -> bytes:
    """Render records as a single-sheet workbook with a bold, shaded header row."""

    wb = Workbook()
    ws = wb.active
    ws.title = EXPORT_SHEET_NAME
    ws.append([header for header, _, _ in EXPORT_COLUMNS])
    for rec in records:
        ws.append([_export_value(rec, key) for _, key, _ in EXPORT_COLUMNS])

    for idx, (_, _, width) in enumerate(EXPORT_COLUMNS, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width
        cell = ws.cell(row=1, column=idx)
        cell.font = Font(bold=True)
        cell.fill = _HEADER_FILL

    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def normalize_format(fmt: Optional[str]) -> str:
    """Map ``csv``/``excel``/``xlsx`` (any case) to ``csv`` or ``xlsx``; unknown -> ``csv``."""
    value = (fmt or "csv").strip().lower().lstrip(".")
    return "xlsx" if value in {"excel", "xlsx"} else "csv"


def export_records(records: Iterable[Any], fmt: Optional[str] = "csv") -> bytes:
    if normalize_format(fmt) == "xlsx":
        return export_xlsx(records)
    return export_csv(records)


def export_filename(customer_name: Optional[str], fmt: Optional[str] = "csv", today: Optional[date] = None) -> str:
    """Build ``export_<customer>_<YYYY-MM-DD>.<ext>`` with unsafe characters replaced by ``_``."""

    safe = re.sub(r"[^a-zA-Z0-9]", "_", customer_name or "Unknown")
    day = (today or date.today()).isoformat()
    return f"export_{safe}_{day}.{normalize_format(fmt)}"


def write_export(records: Iterable[Any], path: str | Path) -> Path:
    """Write records to ``path``; the suffix picks CSV or XLSX."""

    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_bytes(export_records(records, p.suffix))
    LOGGER.info("Wrote export to %s", p)
    return p


def write_summary(summary: InventorySummary, path: str | Path) -> Path:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(summary.to_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    LOGGER.info("Wrote summary to %s", p)
    return p
