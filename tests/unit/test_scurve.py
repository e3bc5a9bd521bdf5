"""Unit tests for the planned-progress S-curve."""

from __future__ import annotations

from datetime import date, timedelta
from decimal import Decimal
from fractions import Fraction

from wbscalc.models import Granularity
from wbscalc.views.scurve import daily_cumulative, leaf_shares, planned_curve
from wbscalc.wbs.schedule import resolve_schedule
from wbscalc.wbs.tree import build_tree

DAY0 = date(2025, 4, 1)


def _resolved(items):
    return resolve_schedule(build_tree(items))


class TestLeafShares:
    def test_share_is_product_along_path(self, make_item):
        root = _resolved(
            [
                make_item("1", 50),
                make_item("1.1", 40, start=DAY0, duration=1),
                make_item("1.2", 60, start=DAY0, duration=1),
                make_item("2", 50, start=DAY0, duration=1),
            ]
        )
        shares = {node.code: share for node, share in leaf_shares(root)}
        assert shares == {"1.1": Fraction(1, 5), "1.2": Fraction(3, 10), "2": Fraction(1, 2)}

    def test_unscheduled_and_unweighted_leaves_skipped(self, make_item):
        root = _resolved(
            [
                make_item("1", 50, start=DAY0, duration=2),
                make_item("2", 50),
                make_item("3", start=DAY0, duration=2),
            ]
        )
        assert [node.code for node, _ in leaf_shares(root)] == ["1"]


class TestPlannedCurve:
    def test_single_leaf_linear(self, make_item):
        root = _resolved([make_item("1", 100, start=DAY0, duration=10)])
        points = planned_curve(root)

        assert len(points) == 11
        assert points[0].day == DAY0
        assert points[0].cumulative == Decimal("0")
        assert points[-1].day == DAY0 + timedelta(days=10)
        assert points[-1].cumulative == Decimal("100")
        assert [p.cumulative for p in points] == [Decimal(10 * k) for k in range(11)]
        assert all(p.planned_increment == Decimal("10") for p in points[1:])

    def test_partial_weight_normalized_to_hundred(self, make_item):
        root = _resolved([make_item("1", 40, start=DAY0, duration=4)])
        assert planned_curve(root)[-1].cumulative == Decimal("100")

    def test_milestone_accrues_on_its_day(self, make_item):
        root = _resolved(
            [
                make_item("1", 50, start=DAY0, duration=4),
                make_item("2", 50, start=DAY0 + timedelta(days=2)),
            ]
        )
        values = [p.cumulative for p in planned_curve(root)]
        assert values == [
            Decimal("0"),
            Decimal("12.5"),
            Decimal("75"),
            Decimal("87.5"),
            Decimal("100"),
        ]

    def test_non_decreasing_with_rounding(self, make_item):
        root = _resolved(
            [
                make_item("1", 33, start=DAY0, duration=7),
                make_item("2", 33, start=DAY0 + timedelta(days=3), duration=11),
                make_item("3", 34, start=DAY0 + timedelta(days=5), duration=3),
            ]
        )
        values = [p.cumulative for p in planned_curve(root)]
        assert values == sorted(values)
        assert values[-1] == Decimal("100")
        assert all(v == v.quantize(Decimal("0.01")) for v in values)

    def test_weekly_samples_include_end(self, make_item):
        root = _resolved([make_item("1", 100, start=DAY0, duration=16)])
        points = planned_curve(root, Granularity.WEEK)

        assert [p.day_index for p in points] == [0, 7, 14, 16]
        assert [p.week for p in points] == [1, 2, 3, 3]
        assert points[-1].cumulative == Decimal("100")
        assert sum(p.planned_increment for p in points) == Decimal("100")

    def test_no_scheduled_items_is_empty(self, make_item):
        root = _resolved([make_item("1", 100)])
        assert planned_curve(root) == []
        assert daily_cumulative(root) == []

    def test_only_unweighted_scheduled_items_stays_flat(self, make_item):
        root = _resolved([make_item("1", start=DAY0, duration=3)])
        assert [p.cumulative for p in planned_curve(root)] == [Decimal("0")] * 4
