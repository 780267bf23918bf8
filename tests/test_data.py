from __future__ import annotations

import io
from pathlib import Path

import pandas as pd
import pytest

from engine import data
from engine.data import (
    ShipmentFileError,
    load_shipments,
    prepare_context,
    round_half_up,
    shipments_to_frame,
    template_csv,
)
from engine.filters import ShipmentFilters
from engine.schema import SHIPMENT_COLUMNS, ShipmentRow


SAMPLE = Path(__file__).resolve().parents[1] / "data" / "sample_shipments.csv"

CSV_TEXT = (
    "PO_No,Vendor,Status,On_Time(YesNo),Delay_Days,ETA,Unknown_Col\n"
    "PO1,Alpha,Arrived,Yes,0,2025-01-02,x\n"
    "\n"
    "PO2,Beta,In-Transit,,,,y\n"
    ",,,,,,\n"
)


def test_load_csv_skips_blank_lines_and_ignores_unknown_columns(tmp_path):
    path = tmp_path / "shipments.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")

    rows = load_shipments(path)

    assert [r.po_no for r in rows] == ["PO1", "PO2"]
    assert rows[0] == ShipmentRow(
        po_no="PO1", vendor="Alpha", status="Arrived", on_time="Yes", delay_days="0", eta="2025-01-02"
    )
    assert rows[1].delay_days == ""


def test_load_keeps_values_as_strings(tmp_path):
    path = tmp_path / "shipments.csv"
    path.write_text("PO_No,Order_Qty,Delay_Days\n00123,1200,NA\n", encoding="utf-8")
    row = load_shipments(path)[0]
    assert row.po_no == "00123"
    assert row.order_qty == "1200"
    assert row.delay_days == "NA"
    assert row.delay_value == 0.0


def test_load_sniffs_semicolon_delimiter(tmp_path):
    path = tmp_path / "shipments.csv"
    path.write_text("PO_No;Vendor;Status\nPO1;Alpha;Arrived\n", encoding="utf-8")
    rows = load_shipments(path)
    assert rows == [ShipmentRow(po_no="PO1", vendor="Alpha", status="Arrived")]


def test_load_tsv_and_strips_header_whitespace(tmp_path):
    path = tmp_path / "shipments.tsv"
    path.write_text(" PO_No \tVendor\nPO1\tAlpha, Inc.\n", encoding="utf-8")
    rows = load_shipments(path)
    assert rows == [ShipmentRow(po_no="PO1", vendor="Alpha, Inc.")]


def test_load_from_uploaded_buffer_with_bom():
    buffer = io.BytesIO(("\ufeff" + CSV_TEXT).encode("utf-8"))
    rows = load_shipments(buffer, filename="upload.csv")
    assert [r.po_no for r in rows] == ["PO1", "PO2"]


def test_load_xlsx(tmp_path):
    path = tmp_path / "shipments.xlsx"
    pd.DataFrame([{"PO_No": "PO1", "Vendor": "Alpha", "Status": "Arrived"}]).to_excel(path, index=False)
    rows = load_shipments(path)
    assert rows == [ShipmentRow(po_no="PO1", vendor="Alpha", status="Arrived")]


def test_empty_file_raises_shipment_file_error(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("", encoding="utf-8")
    with pytest.raises(ShipmentFileError) as info:
        load_shipments(path)
    assert info.value.filename == str(path)


def test_missing_file_raises_shipment_file_error(tmp_path):
    with pytest.raises(ShipmentFileError):
        load_shipments(tmp_path / "nope.csv")


def test_sample_file_loads():
    rows = load_shipments(SAMPLE)
    assert len(rows) == 5
    assert rows[0].vendor == "Alpha Textiles"
    assert rows[3].is_arrived and rows[3].is_on_time


def test_template_csv_is_header_only():
    text = template_csv()
    assert text.strip() == ",".join(SHIPMENT_COLUMNS)


def test_template_round_trips_through_loader(tmp_path):
    path = tmp_path / "template.csv"
    path.write_text(template_csv(), encoding="utf-8")
    assert load_shipments(path) == []


def test_shipments_to_frame_uses_template_headers():
    frame = shipments_to_frame([ShipmentRow(po_no="PO1", on_time="Yes")])
    assert list(frame.columns) == list(SHIPMENT_COLUMNS)
    assert frame.loc[0, "On_Time(YesNo)"] == "Yes"
    assert shipments_to_frame([]).empty


@pytest.mark.parametrize("value, ndigits, expected", [(2.5, 0, 3.0), (0.125, 2, 0.13), (33.333333, 1, 33.3), (-2.5, 0, -3.0)])
def test_round_half_up(value, ndigits, expected):
    assert round_half_up(value, ndigits) == expected


def test_round_half_up_passes_missing_through():
    assert round_half_up(None, 1) is None


def test_round_half_up_handles_large_and_infinite_values():
    assert round_half_up(1e30, 2) == 1e30
    assert round_half_up(1.5e300, 1) == 1.5e300
    assert round_half_up(float("inf"), 2) == float("inf")


def test_load_dashboard_data_reads_data_dir(tmp_path, monkeypatch):
    (tmp_path / "a.csv").write_text("PO_No,Vendor,Country_Origin,Season\nPO1,Alpha,VN,25SS\n", encoding="utf-8")
    (tmp_path / "b.csv").write_text("PO_No,Vendor,Country_Origin,Season\nPO2,Beta,CN,25FW\n", encoding="utf-8")
    (tmp_path / "notes.md").write_text("not data", encoding="utf-8")
    monkeypatch.setattr(data, "DATA_DIR", tmp_path)
    data._load_dashboard_data_cached.cache_clear()

    ctx = data.load_dashboard_data()

    assert ctx["files"] == ["a.csv", "b.csv"]
    assert [r.po_no for r in ctx["rows"]] == ["PO1", "PO2"]
    assert ctx["options"]["vendors"] == ["ALL", "Alpha", "Beta"]


def test_load_dashboard_data_without_files(tmp_path, monkeypatch):
    monkeypatch.setattr(data, "DATA_DIR", tmp_path)
    ctx = data.load_dashboard_data()
    assert ctx["files"] == []
    assert ctx["rows"] == ()


def test_prepare_context_accepts_raw_filters():
    data_ctx = data.build_data_context(
        [ShipmentRow(po_no="PO1", vendor="Alpha"), ShipmentRow(po_no="PO2", vendor="Beta")], ["x.csv"]
    )
    ctx = prepare_context({"vendor": "Beta", "origin": ""}, data_ctx)
    assert ctx["filters"] == ShipmentFilters(vendor="Beta")
    assert [r.po_no for r in ctx["filtered_rows"]] == ["PO2"]
    assert len(ctx["rows"]) == 2
