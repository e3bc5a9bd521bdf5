"""Reporting exports for WBSCalc."""

from wbscalc.reporting.excel_export import export_version_workbook

__all__ = ["export_version_workbook"]
