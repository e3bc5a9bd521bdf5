"""SQLAlchemy async database models for WBSCalc.

Holds the flat records only: projects, versions, WBS items and schedule
dependencies. Trees are rebuilt from ``wbs_items`` on every read.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class ProjectModel(Base):
    """Project identification."""

    __tablename__ = "projects"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class VersionModel(Base):
    """Ballpark / Estimates / Detail snapshot of a project's items."""

    __tablename__ = "wbs_versions"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    project_id: Mapped[str] = mapped_column(
        Text, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    mode: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    version_no: Mapped[int] = mapped_column(Integer, nullable=False)
    is_locked: Mapped[bool] = mapped_column(nullable=False, default=False)

    # Clone lineage
    source_version_id: Mapped[UUID | None] = mapped_column(Uuid(as_uuid=True))
    project_start: Mapped[date | None] = mapped_column(Date)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "mode IN ('ballpark', 'estimates', 'detail')",
            name="check_version_mode_valid",
        ),
        UniqueConstraint("project_id", "version_no", name="uq_versions_project_no"),
    )


class WbsItemModel(Base):
    """One WBS/RAB line item with its schedule values."""

    __tablename__ = "wbs_items"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    version_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("wbs_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    parent_code: Mapped[str | None] = mapped_column(Text)
    weight: Mapped[Decimal | None] = mapped_column(Numeric(7, 4))
    sort_order: Mapped[int | None] = mapped_column(Integer)

    # RAB
    quantity: Mapped[Decimal | None] = mapped_column(Numeric(18, 4))
    unit: Mapped[str | None] = mapped_column(Text)
    unit_cost: Mapped[Decimal | None] = mapped_column(Numeric(18, 2))
    notes: Mapped[str | None] = mapped_column(Text)

    # Schedule
    start_date: Mapped[date | None] = mapped_column(Date)
    duration_days: Mapped[int | None] = mapped_column(Integer)
    progress: Mapped[Decimal | None] = mapped_column(Numeric(7, 4))

    revision: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("version_id", "code", name="uq_wbs_items_version_code"),
        CheckConstraint("weight IS NULL OR (weight >= 0 AND weight <= 100)", name="check_weight_range"),
        CheckConstraint("duration_days IS NULL OR duration_days >= 0", name="check_duration_non_negative"),
        Index("idx_wbs_items_version_parent", "version_id", "parent_code"),
    )


class DependencyModel(Base):
    """Precedence link between two items of one version."""

    __tablename__ = "wbs_dependencies"

    id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    version_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("wbs_versions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    predecessor_code: Mapped[str] = mapped_column(Text, nullable=False)
    successor_code: Mapped[str] = mapped_column(Text, nullable=False)
    dep_type: Mapped[str] = mapped_column(String(2), nullable=False, default="FS")
    lag_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("dep_type IN ('FS', 'SS', 'FF', 'SF')", name="check_dep_type_valid"),
    )
