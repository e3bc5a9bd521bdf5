"""Planned-progress S-curve over a resolved WBS tree.

Each scheduled leaf carries a project share, the product of ``weight / 100``
along its path from the top level. The share accrues linearly over the
leaf's span (``duration`` days starting on ``start``); a zero-day leaf
accrues its whole share on its start day. Linear accrual is a simplifying
assumption: real work rarely progresses evenly.

Accrual is computed exactly with ``Fraction`` through per-day rate deltas and
only rounded when the points are emitted, so the curve never decreases and
reaches exactly 100 on the project end date.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from fractions import Fraction

from wbscalc.models import Granularity
from wbscalc.views.models import SCurvePoint
from wbscalc.wbs.tree import WBSNode

WEEK_DAYS = 7


def leaf_shares(root: WBSNode) -> list[tuple[WBSNode, Fraction]]:
    """Scheduled leaves with a positive project share, in tree order."""
    result = []
    stack = [(child, Fraction(1)) for child in reversed(root.children)]
    while stack:
        node, parent_share = stack.pop()
        share = parent_share * Fraction(node.weight) / 100
        if share <= 0:
            continue
        if node.is_leaf:
            if node.is_scheduled:
                result.append((node, share))
            continue
        stack.extend((child, share) for child in reversed(node.children))
    return result


def _to_decimal(value: Fraction, places: int) -> Decimal:
    quantum = Decimal(1).scaleb(-places)
    return (Decimal(value.numerator) / Decimal(value.denominator)).quantize(
        quantum, rounding=ROUND_HALF_UP
    )


def daily_cumulative(root: WBSNode) -> list[Fraction]:
    """Exact cumulative planned percentage for every project day.

    Index 0 is the project start, the last index the project end. Empty when
    the project has no scheduled item.
    """
    start, end = root.effective_start, root.effective_end
    if start is None or end is None:
        return []

    days = (end - start).days
    shares = leaf_shares(root)
    total = sum((share for _, share in shares), Fraction(0))
    if total == 0:
        return [Fraction(0)] * (days + 1)

    rate_delta = [Fraction(0)] * (days + 2)
    steps = [Fraction(0)] * (days + 1)
    for node, share in shares:
        offset = (node.effective_start - start).days
        span = (node.effective_end - node.effective_start).days
        if span == 0:
            steps[offset] += share
        else:
            rate = share / span
            rate_delta[offset] += rate
            rate_delta[offset + span] -= rate

    values = []
    accrued = Fraction(0)
    rate = Fraction(0)
    for day in range(days + 1):
        # Value on a day: full days of accrual before it plus milestones on it
        accrued += steps[day]
        values.append(accrued * 100 / total)
        rate += rate_delta[day]
        accrued += rate
    return values


def planned_curve(
    root: WBSNode,
    granularity: Granularity = Granularity.DAY,
    places: int = 2,
) -> list[SCurvePoint]:
    """Sample the cumulative planned curve as rounded points.

    Daily granularity yields one point per day from start to end inclusive;
    weekly granularity samples every seventh day plus the end date.
    """
    values = daily_cumulative(root)
    if not values:
        return []

    last = len(values) - 1
    if granularity == Granularity.WEEK:
        indices = list(range(0, last + 1, WEEK_DAYS))
        if indices[-1] != last:
            indices.append(last)
    else:
        indices = list(range(last + 1))

    points = []
    previous = Decimal("0")
    for index in indices:
        cumulative = _to_decimal(values[index], places)
        points.append(
            SCurvePoint(
                day=root.effective_start + timedelta(days=index),
                day_index=index,
                week=index // WEEK_DAYS + 1,
                planned_increment=cumulative - previous,
                cumulative=cumulative,
            )
        )
        previous = cumulative
    return points
