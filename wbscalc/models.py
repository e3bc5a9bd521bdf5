"""WBSCalc Pydantic models for type-safe data validation.

Percentages (weight, progress) and money are Decimal end to end. The tree
node materialized from these records lives in ``wbscalc.wbs.tree``.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

HUNDRED = Decimal("100")

# Weight and progress are stored as NUMERIC(7, 4)
PERCENT_PLACES = 4


def check_percent_places(v: Decimal | None, field_name: str) -> Decimal | None:
    """Reject finite percentages with more than ``PERCENT_PLACES`` decimals."""
    if v is not None and v.is_finite() and v.normalize().as_tuple().exponent < -PERCENT_PLACES:
        raise ValueError(f"{field_name} allows at most {PERCENT_PLACES} decimal places")
    return v


class VersionMode(str, Enum):
    """Maturity stage of a version's item set."""

    BALLPARK = "ballpark"
    ESTIMATES = "estimates"
    DETAIL = "detail"


class ViewKind(str, Enum):
    """Read-only projections of a resolved version."""

    SUMMARY = "summary"
    TIMELINE = "timeline"
    GANTT = "gantt"
    SCURVE = "scurve"


class WeightPolicy(str, Enum):
    """How sibling weight overflow is treated."""

    STRICT = "strict"  # Raise WeightOverflow, callers block the save
    ADVISORY = "advisory"  # Report and warn, callers decide


class Granularity(str, Enum):
    """Sampling step of the S-curve series."""

    DAY = "day"
    WEEK = "week"


class DependencyType(str, Enum):
    """Precedence relation between two scheduled items."""

    FS = "FS"  # finish-to-start
    SS = "SS"  # start-to-start
    FF = "FF"  # finish-to-finish
    SF = "SF"  # start-to-finish


class ScheduleValue(BaseModel):
    """Raw per-item schedule values as held by the store.

    Dates and durations are not validated here: store data may carry a
    malformed date or a negative duration. ``wbscalc.wbs.schedule.parse_schedule``
    decides whether the schedule is usable. Progress only has its precision
    checked so it survives the store unchanged.
    """

    start: date | str | None = None
    duration: int | None = None  # whole days
    progress: Decimal | None = None  # 0-100, clamped at read time

    @field_validator("progress")
    @classmethod
    def validate_progress_places(cls, v: Decimal | None) -> Decimal | None:
        return check_percent_places(v, "progress")


class Item(BaseModel):
    """WBS/RAB line item within one version."""

    id: UUID = Field(default_factory=uuid4)
    code: str
    name: str
    parent_code: str | None = None

    # Share of the parent's scope (0-100); None = not entered yet
    weight: Decimal | None = None
    sort_order: int | None = None

    # RAB
    quantity: Decimal | None = None
    unit: str | None = None  # "m2", "ls", "m3"
    unit_cost: Decimal | None = None

    notes: str | None = None
    schedule: ScheduleValue | None = None

    # Optimistic concurrency token, owned by the store
    revision: int = 0

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("code must not be empty")
        return v

    @field_validator("parent_code")
    @classmethod
    def validate_parent_code(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @field_validator("weight")
    @classmethod
    def validate_weight(cls, v: Decimal | None) -> Decimal | None:
        if v is None:
            return v
        if v < 0:
            raise ValueError("weight must be non-negative")
        if v > HUNDRED:
            raise ValueError("weight must not exceed 100")
        return check_percent_places(v, "weight")

    @field_validator("quantity", "unit_cost")
    @classmethod
    def validate_non_negative(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            raise ValueError("quantity and unit_cost must be non-negative")
        return v

    @property
    def effective_weight(self) -> Decimal:
        """Weight used in aggregation; unset counts as 0."""
        return self.weight if self.weight is not None else Decimal("0")

    @property
    def subtotal(self) -> Decimal | None:
        if self.quantity is None or self.unit_cost is None:
            return None
        return self.quantity * self.unit_cost

    class Config:
        json_schema_extra = {
            "example": {
                "code": "1.2",
                "name": "Structural works",
                "parent_code": "1",
                "weight": Decimal("40"),
                "quantity": Decimal("1200"),
                "unit": "m2",
                "unit_cost": Decimal("850000"),
                "schedule": {"start": "2025-03-03", "duration": 45, "progress": 20},
            }
        }


class Project(BaseModel):
    """Project owning zero or more versions."""

    id: str
    code: str
    name: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class Version(BaseModel):
    """Independently addressable snapshot of a project's items."""

    id: UUID = Field(default_factory=uuid4)
    project_id: str
    mode: VersionMode
    name: str
    version_no: int = 1
    is_locked: bool = False
    source_version_id: UUID | None = None  # Set on clones
    project_start: date | None = None  # Anchor for dependency scheduling
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        json_schema_extra = {
            "example": {
                "project_id": "001-prg",
                "mode": "ballpark",
                "name": "Ballpark v1",
                "version_no": 1,
                "is_locked": False,
            }
        }


class Dependency(BaseModel):
    """Precedence link between two items of the same version."""

    predecessor_code: str
    successor_code: str
    dep_type: DependencyType = DependencyType.FS
    lag_days: int = 0
