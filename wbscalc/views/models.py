"""Pydantic models for the read-only views of a resolved version."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from wbscalc.models import Granularity, VersionMode


class WeightIssue(BaseModel):
    """Sibling group whose weights exceed 100."""

    parent_code: str | None  # None = top level
    observed_sum: Decimal


class SummaryView(BaseModel):
    """Headline figures of one version."""

    version_id: UUID
    version_name: str
    mode: VersionMode

    total_weight: Decimal  # Allocated top-level weight
    unallocated_weight: Decimal
    overall_progress: Decimal

    start: date | None = None
    end: date | None = None
    duration_days: int | None = None

    item_count: int = 0
    leaf_count: int = 0
    scheduled_count: int = 0
    unscheduled_count: int = 0

    total_cost: Decimal = Decimal("0")  # Sum of leaf subtotals

    weight_overflows: list[WeightIssue] = Field(default_factory=list)
    schedule_issue_codes: list[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "version_name": "Estimates v2",
                "mode": "estimates",
                "total_weight": "100.00",
                "overall_progress": "42.50",
                "start": "2025-03-03",
                "end": "2025-09-30",
                "duration_days": 211,
                "item_count": 48,
                "leaf_count": 36,
            }
        }


class TimelineRow(BaseModel):
    """One WBS node in depth-first order."""

    code: str
    name: str
    parent_code: str | None = None
    depth: int
    weight: Decimal | None = None
    start: date | None = None
    end: date | None = None
    progress: Decimal
    is_leaf: bool
    unscheduled: bool


class TimelineView(BaseModel):
    version_id: UUID
    rows: list[TimelineRow] = Field(default_factory=list)


class GanttRow(TimelineRow):
    """Timeline row plus bar geometry relative to the project start."""

    offset_days: int | None = None
    span_days: int | None = None


class GanttView(BaseModel):
    version_id: UUID
    project_start: date | None = None
    project_end: date | None = None
    rows: list[GanttRow] = Field(default_factory=list)


class SCurvePoint(BaseModel):
    """Cumulative planned progress at one sampled date."""

    day: date
    day_index: int
    week: int
    planned_increment: Decimal  # Added since the previous point
    cumulative: Decimal


class SCurveView(BaseModel):
    """Planned progress curve with the version's actual progress."""

    version_id: UUID
    granularity: Granularity
    start: date | None = None
    end: date | None = None
    points: list[SCurvePoint] = Field(default_factory=list)
    actual_progress: Decimal = Decimal("0")

    def value_at(self, when: date) -> Decimal:
        """Planned cumulative progress on a date (step interpolation)."""
        value = Decimal("0")
        for point in self.points:
            if point.day > when:
                break
            value = point.cumulative
        return value
