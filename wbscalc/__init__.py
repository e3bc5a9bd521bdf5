"""WBSCalc - WBS/RAB/Schedule engine for construction projects."""

__version__ = "0.1.0"
