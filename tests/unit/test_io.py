"""Unit tests for file decoding and export encoding."""

import csv
import io
import json
from datetime import date, datetime

import pandas as pd
import pytest
from openpyxl import Workbook, load_workbook

from assetlens.analytics import aggregate
from assetlens.errors import InputFileError
from assetlens.io import (
    EXPORT_COLUMNS,
    EXPORT_SHEET_NAME,
    export_csv,
    export_filename,
    export_records,
    export_xlsx,
    read_input_bytes,
    read_input_file,
    validate_extension,
    write_export,
    write_summary,
)

RECORDS = [
    {"id": 1, "mfg": "Cisco", "category": "Router", "qty": 2, "total_value": 3000, "support_coverage": "Active"},
    {"id": 2, "mfg": "Juniper", "category": "Switch", "qty": 5, "total_value": 900.5, "end_of_sale": "2019-05-01"},
]


class TestDecoding:
    def test_csv_rows_keep_order_and_text(self):
        data = b"Vendor,Qty,Coverage\nCisco,3,None\nJuniper,,Covered\n"
        rows = read_input_bytes(data, "inventory.csv")
        assert len(rows) == 2
        assert rows[0] == {"Vendor": "Cisco", "Qty": "3", "Coverage": "None"}
        assert rows[1]["Vendor"] == "Juniper"
        assert pd.isna(rows[1]["Qty"])

    def test_tsv_is_tab_separated(self):
        rows = read_input_bytes(b"Vendor\tQty\nHPE\t4\n", "inventory.tsv")
        assert rows == [{"Vendor": "HPE", "Qty": "4"}]

    def test_single_column_csv_is_not_split_on_spaces(self):
        rows = read_input_bytes(b"Product ID\nISR4331\nEX2300\n", "inventory.csv")
        assert rows == [{"Product ID": "ISR4331"}, {"Product ID": "EX2300"}]

    def test_csv_with_semicolons_in_values_stays_comma_separated(self):
        rows = read_input_bytes(b"Vendor,Description\nCisco,Router; branch\n", "inventory.csv")
        assert rows == [{"Vendor": "Cisco", "Description": "Router; branch"}]

    @pytest.mark.parametrize("delimiter", [";", "|", "\t", ","])
    def test_txt_delimiter_is_detected(self, delimiter):
        data = delimiter.join(["Vendor", "Product ID", "Qty"]) + "\n" + delimiter.join(["HPE", "J9773A", "3"]) + "\n"
        rows = read_input_bytes(data.encode("utf-8"), "inventory.txt")
        assert rows == [{"Vendor": "HPE", "Product ID": "J9773A", "Qty": "3"}]

    def test_single_column_txt(self):
        rows = read_input_bytes(b"Product ID\nISR4331\n", "inventory.txt")
        assert rows == [{"Product ID": "ISR4331"}]

    def test_blank_rows_and_unnamed_columns_are_dropped(self):
        data = b"Vendor,,Qty\nCisco,,1\n,,\nHPE,,2\n"
        rows = read_input_bytes(data, "inventory.csv")
        assert [r["Vendor"] for r in rows] == ["Cisco", "HPE"]
        assert all(set(r) == {"Vendor", "Qty"} for r in rows)

    def test_latin1_fallback(self):
        rows = read_input_bytes("Vendor,Qty\nNokia Oyjé,1\n".encode("latin-1"), "inventory.csv")
        assert rows[0]["Vendor"] == "Nokia Oyjé"

    def test_empty_file_gives_no_rows(self):
        assert read_input_bytes(b"", "inventory.csv") == []

    def test_unsupported_extension(self):
        with pytest.raises(InputFileError):
            read_input_bytes(b"x", "inventory.pdf")
        with pytest.raises(InputFileError):
            validate_extension("inventory")
        assert validate_extension("INVENTORY.XLSX") == ".xlsx"

    def test_corrupt_workbook_raises(self):
        with pytest.raises(InputFileError):
            read_input_bytes(b"not a zip archive", "inventory.xlsx")

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputFileError):
            read_input_file(tmp_path / "absent.csv")

    def test_xlsx_cells_are_decoded(self, tmp_path):
        wb = Workbook()
        ws = wb.active
        ws.append(["Vendor", "Qty", "Ship Date"])
        ws.append(["Cisco", 4, datetime(2021, 4, 1)])
        path = tmp_path / "inventory.xlsx"
        wb.save(path)

        rows = read_input_file(path)
        assert len(rows) == 1
        assert rows[0]["Vendor"] == "Cisco"
        assert rows[0]["Qty"] == 4
        assert pd.Timestamp(rows[0]["Ship Date"]) == pd.Timestamp("2021-04-01")


class TestExport:
    def test_csv_has_fixed_columns(self):
        text = export_csv(RECORDS).decode("utf-8")
        reader = list(csv.reader(io.StringIO(text)))
        assert reader[0] == [header for header, _, _ in EXPORT_COLUMNS]
        assert reader[1][:3] == ["1", "Cisco", "Router"]
        assert len(reader) == 3

    def test_xlsx_sheet_and_header_style(self):
        wb = load_workbook(io.BytesIO(export_xlsx(RECORDS)))
        ws = wb[EXPORT_SHEET_NAME]
        headers = [c.value for c in ws[1]]
        assert headers == [header for header, _, _ in EXPORT_COLUMNS]
        assert ws.cell(row=1, column=1).font.bold
        assert ws.cell(row=3, column=2).value == "Juniper"
        assert ws.cell(row=3, column=10).value == 900.5
        assert ws.column_dimensions["G"].width == 40

    def test_export_records_format_selection(self):
        assert export_records(RECORDS, "CSV").startswith(b"ID,")
        # xlsx files are zip archives
        assert export_records(RECORDS, "excel")[:2] == b"PK"
        assert export_records(RECORDS, "unknown").startswith(b"ID,")

    def test_export_filename(self):
        assert export_filename("ACME Corp.", "excel", date(2024, 1, 2)) == "export_ACME_Corp__2024-01-02.xlsx"
        assert export_filename(None, "csv", date(2024, 1, 2)) == "export_Unknown_2024-01-02.csv"

    def test_write_export_and_summary(self, tmp_path):
        out = write_export(RECORDS, tmp_path / "out" / "records.xlsx")
        assert load_workbook(out)[EXPORT_SHEET_NAME].max_row == 3

        summary_path = write_summary(aggregate(RECORDS, now="2024-01-01"), tmp_path / "summary.json")
        payload = json.loads(summary_path.read_text(encoding="utf-8"))
        assert payload["totalRecords"] == 2
        assert payload["totalEndOfSale"] == 1
