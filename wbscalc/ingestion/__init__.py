"""Data ingestion module for WBSCalc.

Handles importing WBS/RAB item sheets.
"""

from wbscalc.ingestion.items import import_items, read_items

__all__ = ["import_items", "read_items"]
