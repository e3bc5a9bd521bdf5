"""Read-only views (Summary, Timeline, Gantt, S-Curve) of a resolved version."""

from wbscalc.views.models import (
    GanttRow,
    GanttView,
    SCurvePoint,
    SCurveView,
    SummaryView,
    TimelineRow,
    TimelineView,
    WeightIssue,
)

__all__ = [
    "GanttRow",
    "GanttView",
    "SCurvePoint",
    "SCurveView",
    "SummaryView",
    "TimelineRow",
    "TimelineView",
    "WeightIssue",
]
