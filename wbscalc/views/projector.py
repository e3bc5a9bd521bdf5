"""Projection of a resolved version into read-only views.

Projection is pure: the same ResolvedVersion always yields the same view,
and nothing is written back to the tree.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from wbscalc.models import HUNDRED, Granularity, ViewKind
from wbscalc.views.models import (
    GanttRow,
    GanttView,
    SCurveView,
    SummaryView,
    TimelineRow,
    TimelineView,
    WeightIssue,
)
from wbscalc.views.scurve import planned_curve
from wbscalc.wbs.tree import WBSNode

if TYPE_CHECKING:
    from wbscalc.versions.models import ResolvedVersion

ViewModel = SummaryView | TimelineView | GanttView | SCurveView


def _q(value: Decimal | None, places: int) -> Decimal:
    if value is None:
        value = Decimal("0")
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def _timeline_row(node: WBSNode, places: int) -> dict:
    return {
        "code": node.code,
        "name": node.name,
        "parent_code": node.item.parent_code,
        "depth": node.depth,
        "weight": node.item.weight,
        "start": node.effective_start,
        "end": node.effective_end,
        "progress": _q(node.aggregated_progress, places),
        "is_leaf": node.is_leaf,
        "unscheduled": not node.is_scheduled,
    }


def summary_view(resolved: ResolvedVersion, places: int = 2) -> SummaryView:
    root = resolved.root
    nodes = list(root.walk())
    leaves = [node for node in nodes if node.is_leaf]
    scheduled = sum(1 for node in nodes if node.is_scheduled)

    total_weight = resolved.weights.sums.get(None, Decimal("0"))
    total_cost = sum(
        (leaf.item.subtotal for leaf in leaves if leaf.item.subtotal is not None),
        Decimal("0"),
    )

    duration = None
    if root.effective_start is not None:
        duration = (root.effective_end - root.effective_start).days

    return SummaryView(
        version_id=resolved.version.id,
        version_name=resolved.version.name,
        mode=resolved.version.mode,
        total_weight=_q(total_weight, places),
        unallocated_weight=_q(max(HUNDRED - total_weight, Decimal("0")), places),
        overall_progress=_q(root.aggregated_progress, places),
        start=root.effective_start,
        end=root.effective_end,
        duration_days=duration,
        item_count=len(nodes),
        leaf_count=len(leaves),
        scheduled_count=scheduled,
        unscheduled_count=len(nodes) - scheduled,
        total_cost=total_cost,
        weight_overflows=[
            WeightIssue(parent_code=o.parent_code, observed_sum=o.observed_sum)
            for o in resolved.weights.overflows
        ],
        schedule_issue_codes=[issue.code for issue in resolved.schedule_issues],
    )


def timeline_view(resolved: ResolvedVersion, places: int = 2) -> TimelineView:
    return TimelineView(
        version_id=resolved.version.id,
        rows=[TimelineRow(**_timeline_row(node, places)) for node in resolved.root.walk()],
    )


def gantt_view(resolved: ResolvedVersion, places: int = 2) -> GanttView:
    root = resolved.root
    rows = []
    for node in root.walk():
        offset = span = None
        if node.is_scheduled:
            offset = (node.effective_start - root.effective_start).days
            span = (node.effective_end - node.effective_start).days
        rows.append(GanttRow(**_timeline_row(node, places), offset_days=offset, span_days=span))

    return GanttView(
        version_id=resolved.version.id,
        project_start=root.effective_start,
        project_end=root.effective_end,
        rows=rows,
    )


def scurve_view(
    resolved: ResolvedVersion,
    granularity: Granularity = Granularity.DAY,
    places: int = 2,
) -> SCurveView:
    root = resolved.root
    return SCurveView(
        version_id=resolved.version.id,
        granularity=granularity,
        start=root.effective_start,
        end=root.effective_end,
        points=planned_curve(root, granularity, places),
        actual_progress=_q(root.aggregated_progress, places),
    )


def project(
    resolved: ResolvedVersion,
    view_kind: ViewKind,
    *,
    granularity: Granularity = Granularity.DAY,
    places: int = 2,
) -> ViewModel:
    """Project one view of a resolved version.

    Args:
        resolved: Output of ``VersionManager.resolve`` or ``resolve_items``
        view_kind: SUMMARY, TIMELINE, GANTT or SCURVE
        granularity: S-curve sampling step (ignored by the other views)
        places: Decimal places for percentages

    Raises:
        ValueError: Unknown view kind
    """
    view_kind = ViewKind(view_kind)
    if view_kind == ViewKind.SUMMARY:
        return summary_view(resolved, places)
    if view_kind == ViewKind.TIMELINE:
        return timeline_view(resolved, places)
    if view_kind == ViewKind.GANTT:
        return gantt_view(resolved, places)
    return scurve_view(resolved, Granularity(granularity), places)
