"""Excel export functionality for WBSCalc versions.

Generates a workbook with:
- Version summary
- Gantt table (timeline rows with bar offsets)
- Planned S-curve with a line chart
"""
from __future__ import annotations

from datetime import datetime
from io import BytesIO
from typing import TYPE_CHECKING

from openpyxl import Workbook
from openpyxl.chart import LineChart, Reference
from openpyxl.styles import Alignment, Font, PatternFill

from wbscalc.models import Granularity
from wbscalc.views.projector import gantt_view, scurve_view, summary_view

if TYPE_CHECKING:
    from wbscalc.versions.models import ResolvedVersion
    from wbscalc.views.models import GanttView, SCurveView, SummaryView

HEADER_FILL = PatternFill(start_color="366092", end_color="366092", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True)


def export_version_workbook(
    resolved: ResolvedVersion,
    granularity: Granularity = Granularity.WEEK,
    places: int = 2,
) -> BytesIO:
    """Generate an Excel workbook for one resolved version.

    Args:
        resolved: Version resolved by ``VersionManager.resolve``
        granularity: S-curve sampling step for the S-Curve sheet
        places: Decimal places for percentages

    Returns:
        BytesIO containing Excel workbook
    """
    wb = Workbook()

    # Remove default sheet
    if "Sheet" in wb.sheetnames:
        wb.remove(wb["Sheet"])

    _create_summary_sheet(wb, summary_view(resolved, places))
    _create_gantt_sheet(wb, gantt_view(resolved, places))
    _create_scurve_sheet(wb, scurve_view(resolved, granularity, places))

    output = BytesIO()
    wb.save(output)
    output.seek(0)

    return output


def _write_headers(ws, row: int, headers: list[str]) -> None:
    for col, header in enumerate(headers, 1):
        cell = ws.cell(row=row, column=col, value=header)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center")


def _create_summary_sheet(wb: Workbook, summary: SummaryView):
    """Create summary sheet with headline figures."""
    ws = wb.create_sheet("Summary", 0)

    ws["A1"] = "WBSCalc Version Summary"
    ws["A1"].font = Font(bold=True, size=16)
    ws.merge_cells("A1:C1")

    ws["A3"] = "Version:"
    ws["B3"] = summary.version_name
    ws["A4"] = "Mode:"
    ws["B4"] = summary.mode.value.title()
    ws["A5"] = "Generated:"
    ws["B5"] = datetime.now().strftime("%Y-%m-%d %H:%M")

    row = 7
    _write_headers(ws, row, ["Metric", "Value"])

    data = [
        ("Allocated Weight (%)", float(summary.total_weight)),
        ("Unallocated Weight (%)", float(summary.unallocated_weight)),
        ("Overall Progress (%)", float(summary.overall_progress)),
        ("Start", summary.start.isoformat() if summary.start else "-"),
        ("End", summary.end.isoformat() if summary.end else "-"),
        ("Duration (days)", summary.duration_days if summary.duration_days is not None else "-"),
        ("Items", summary.item_count),
        ("Leaf Items", summary.leaf_count),
        ("Scheduled", summary.scheduled_count),
        ("Unscheduled", summary.unscheduled_count),
        ("Total Cost", float(summary.total_cost)),
    ]
    for label, value in data:
        row += 1
        ws.cell(row=row, column=1, value=label)
        ws.cell(row=row, column=2, value=value)

    if summary.weight_overflows or summary.schedule_issue_codes:
        row += 2
        ws.cell(row=row, column=1, value="Issues").font = Font(bold=True, size=12)
        for overflow in summary.weight_overflows:
            row += 1
            label = overflow.parent_code or "(top level)"
            ws.cell(row=row, column=1, value=f"Weight overflow under {label}")
            ws.cell(row=row, column=2, value=float(overflow.observed_sum))
        for code in summary.schedule_issue_codes:
            row += 1
            ws.cell(row=row, column=1, value=f"Invalid schedule on {code}")

    ws.column_dimensions["A"].width = 35
    ws.column_dimensions["B"].width = 20


def _create_gantt_sheet(wb: Workbook, gantt: GanttView):
    """Create Gantt table; one row per WBS node, indented by depth."""
    ws = wb.create_sheet("Gantt")

    headers = ["Code", "Name", "Weight", "Start", "End", "Progress (%)", "Offset (days)", "Span (days)"]
    _write_headers(ws, 1, headers)

    for row, item in enumerate(gantt.rows, 2):
        ws.cell(row=row, column=1, value=item.code)
        name_cell = ws.cell(row=row, column=2, value=item.name)
        name_cell.alignment = Alignment(indent=item.depth - 1)
        if not item.is_leaf:
            name_cell.font = Font(bold=True)
        ws.cell(row=row, column=3, value=float(item.weight) if item.weight is not None else None)
        ws.cell(row=row, column=4, value=item.start)
        ws.cell(row=row, column=5, value=item.end)
        ws.cell(row=row, column=6, value=float(item.progress))
        ws.cell(row=row, column=7, value=item.offset_days)
        ws.cell(row=row, column=8, value=item.span_days)

    ws.column_dimensions["A"].width = 12
    ws.column_dimensions["B"].width = 40
    for col in "CDEFGH":
        ws.column_dimensions[col].width = 13
    ws.freeze_panes = "C2"


def _create_scurve_sheet(wb: Workbook, curve: SCurveView):
    """Create S-curve table and line chart of cumulative planned progress."""
    ws = wb.create_sheet("S-Curve")

    _write_headers(ws, 1, ["Date", "Day", "Week", "Planned (%)", "Cumulative (%)"])
    for row, point in enumerate(curve.points, 2):
        ws.cell(row=row, column=1, value=point.day)
        ws.cell(row=row, column=2, value=point.day_index)
        ws.cell(row=row, column=3, value=point.week)
        ws.cell(row=row, column=4, value=float(point.planned_increment))
        ws.cell(row=row, column=5, value=float(point.cumulative))

    ws["G1"] = "Actual Progress (%)"
    ws["G1"].font = Font(bold=True)
    ws["H1"] = float(curve.actual_progress)

    for col in "ABCDE":
        ws.column_dimensions[col].width = 15
    ws.column_dimensions["G"].width = 20

    if not curve.points:
        ws["A2"] = "No scheduled items"
        return

    last_row = len(curve.points) + 1
    chart = LineChart()
    chart.title = "Planned Progress"
    chart.y_axis.title = "Cumulative (%)"
    chart.x_axis.title = "Date"
    chart.y_axis.scaling.min = 0
    chart.y_axis.scaling.max = 100
    chart.add_data(Reference(ws, min_col=5, min_row=1, max_row=last_row), titles_from_data=True)
    chart.set_categories(Reference(ws, min_col=1, min_row=2, max_row=last_row))
    chart.height = 10
    chart.width = 20
    ws.add_chart(chart, "G3")
