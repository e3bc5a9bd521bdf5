"""Tests for the version workbook export."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from openpyxl import load_workbook

from wbscalc.models import Granularity, Version, VersionMode
from wbscalc.reporting.excel_export import export_version_workbook
from wbscalc.versions.manager import resolve_items


def _resolved(make_item, items=None):
    items = items or [
        make_item("1", 100),
        make_item("1.1", 50, start=date(2025, 7, 1), duration=14, progress=50),
        make_item("1.2", 50, start=date(2025, 7, 8), duration=14),
    ]
    version = Version(project_id="prj", mode=VersionMode.DETAIL, name="Detail v3")
    return resolve_items(version, items)


def test_workbook_has_three_sheets(make_item):
    wb = load_workbook(export_version_workbook(_resolved(make_item)))
    assert wb.sheetnames == ["Summary", "Gantt", "S-Curve"]


def test_summary_sheet(make_item):
    ws = load_workbook(export_version_workbook(_resolved(make_item)))["Summary"]

    assert ws["B3"].value == "Detail v3"
    assert ws["B4"].value == "Detail"
    labels = {ws.cell(row=r, column=1).value: ws.cell(row=r, column=2).value for r in range(8, 19)}
    assert labels["Overall Progress (%)"] == 25.0
    assert labels["Duration (days)"] == 21


def test_gantt_rows(make_item):
    ws = load_workbook(export_version_workbook(_resolved(make_item)))["Gantt"]

    assert ws["A1"].value == "Code"
    assert [ws.cell(row=r, column=1).value for r in range(2, 5)] == ["1", "1.1", "1.2"]
    assert ws["G4"].value == 7  # 1.2 offset
    assert ws["H4"].value == 14


def test_scurve_sheet_with_chart(make_item):
    ws = load_workbook(
        export_version_workbook(_resolved(make_item), granularity=Granularity.WEEK)
    )["S-Curve"]

    days = [ws.cell(row=r, column=2).value for r in range(2, ws.max_row + 1)]
    assert days == [0, 7, 14, 21]
    assert ws.cell(row=5, column=5).value == 100.0
    assert ws["H1"].value == 25.0


def test_unscheduled_version(make_item):
    resolved = _resolved(make_item, [make_item("1", Decimal("100"))])
    ws = load_workbook(export_version_workbook(resolved))["S-Curve"]
    assert ws["A2"].value == "No scheduled items"
