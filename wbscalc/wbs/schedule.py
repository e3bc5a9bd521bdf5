"""Schedule roll-up over a WBS tree.

Leaves take their dates and progress from their own ScheduleValue. Parents
derive their date range from scheduled children and their progress as the
weighted sum ``sum(child_progress * child_weight) / 100`` over children with
a positive weight. The divisor is always 100: unallocated weight lowers the
parent's progress instead of being re-spread over the weighted children.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from wbscalc.exceptions import InvalidScheduleValue
from wbscalc.models import HUNDRED, Item
from wbscalc.wbs.tree import WBSNode

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True, slots=True)
class ParsedSchedule:
    """Validated schedule of one item; all fields None when unscheduled."""

    start: date | None = None
    end: date | None = None
    duration: int | None = None
    progress: Decimal | None = None


def clamp_progress(value: Decimal) -> Decimal:
    """Clamp a progress percentage into [0, 100]."""
    return min(max(value, ZERO), HUNDRED)


def parse_schedule(item: Item) -> ParsedSchedule:
    """Validate an item's raw schedule values.

    An item without a start date is unscheduled (not an error). A start date
    without a duration is a zero-day milestone. Progress is clamped.

    Raises:
        InvalidScheduleValue: Negative duration, malformed start date or
            non-finite progress
    """
    raw = item.schedule
    if raw is None:
        return ParsedSchedule()

    duration = raw.duration
    if duration is not None and duration < 0:
        raise InvalidScheduleValue(item.code, "duration", duration)

    start = _parse_start(item.code, raw.start)

    progress = None
    if raw.progress is not None:
        if not raw.progress.is_finite():
            raise InvalidScheduleValue(item.code, "progress", raw.progress)
        progress = clamp_progress(raw.progress)

    end = start + timedelta(days=duration or 0) if start is not None else None
    return ParsedSchedule(start=start, end=end, duration=duration, progress=progress)


def _parse_start(code: str, value: date | str | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = value.strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise InvalidScheduleValue(code, "start", value) from exc


def _nodes(node: WBSNode) -> list[WBSNode]:
    return [node, *node.walk()] if node.is_root else list(node.walk())


def _copy_shape(node: WBSNode) -> WBSNode:
    """Fresh nodes over the same items, derived fields cleared."""
    copy = WBSNode(item=node.item, depth=node.depth)
    stack = [(node, copy)]
    while stack:
        src, dst = stack.pop()
        dst.children = [WBSNode(item=child.item, depth=child.depth) for child in src.children]
        stack.extend(zip(src.children, dst.children))
    return copy


def resolve_schedule(root: WBSNode) -> WBSNode:
    """Compute derived schedule fields bottom-up.

    The input tree is not modified; a new tree carrying
    ``aggregated_progress``, ``effective_start`` and ``effective_end`` is
    returned. Leaves with an invalid schedule are treated as unscheduled and
    keep the error in ``schedule_issue``. Schedule values stored on an
    internal node are ignored: its span is always rolled up from children.

    Args:
        root: Tree from ``build_tree`` (or any subtree)

    Returns:
        WBSNode: Resolved copy of ``root``
    """
    resolved = _copy_shape(root)

    # Reversed pre-order visits every child before its parent
    for node in reversed(_nodes(resolved)):
        if node.is_leaf:
            parsed = ParsedSchedule()
            if node.item is not None:
                try:
                    parsed = parse_schedule(node.item)
                except InvalidScheduleValue as exc:
                    logger.warning("Treating schedule of %s as absent: %s", node.code, exc)
                    node.schedule_issue = exc
            node.effective_start = parsed.start
            node.effective_end = parsed.end
            node.aggregated_progress = parsed.progress if parsed.progress is not None else ZERO
        else:
            _roll_up(node)

    return resolved


def _roll_up(node: WBSNode) -> None:
    scheduled = [child for child in node.children if child.effective_start is not None]
    if scheduled:
        node.effective_start = min(child.effective_start for child in scheduled)
        node.effective_end = max(child.effective_end for child in scheduled)
    else:
        node.effective_start = None
        node.effective_end = None

    weighted = sum(
        (
            child.aggregated_progress * child.weight
            for child in node.children
            if child.weight > 0
        ),
        ZERO,
    )
    node.aggregated_progress = weighted / HUNDRED


def collect_schedule_issues(root: WBSNode) -> list[InvalidScheduleValue]:
    """Schedule errors found while resolving, in tree order."""
    return [node.schedule_issue for node in root.walk() if node.schedule_issue is not None]
