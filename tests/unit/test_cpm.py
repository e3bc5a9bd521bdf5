"""Unit tests for dependency-driven (forward pass) scheduling."""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from wbscalc.exceptions import CycleDetected, InvalidScheduleValue, UnknownDependency
from wbscalc.models import Dependency, DependencyType
from wbscalc.wbs.cpm import apply_forward_pass, forward_pass

START = date(2025, 1, 6)


@pytest.fixture
def chain_items(make_item):
    return [
        make_item("1", 100),
        make_item("1.1", 30, duration=5),
        make_item("1.2", 30, duration=3),
        make_item("1.3", 40, duration=4, progress=25),
    ]


class TestForwardPass:
    def test_no_dependencies_start_at_project_start(self, chain_items):
        dates = forward_pass(chain_items, [], START)

        assert set(dates) == {"1.1", "1.2", "1.3"}  # parents are not scheduled
        assert all(start == START for start, _ in dates.values())
        assert dates["1.1"][1] == date(2025, 1, 11)

    def test_finish_to_start_chain(self, chain_items):
        deps = [
            Dependency(predecessor_code="1.1", successor_code="1.2"),
            Dependency(predecessor_code="1.2", successor_code="1.3", lag_days=2),
        ]
        dates = forward_pass(chain_items, deps, START)

        assert dates["1.2"] == (date(2025, 1, 11), date(2025, 1, 14))
        assert dates["1.3"] == (date(2025, 1, 16), date(2025, 1, 20))

    def test_start_to_start(self, chain_items):
        deps = [Dependency(predecessor_code="1.1", successor_code="1.2", dep_type=DependencyType.SS, lag_days=1)]
        assert forward_pass(chain_items, deps, START)["1.2"][0] == date(2025, 1, 7)

    def test_finish_to_finish(self, chain_items):
        deps = [Dependency(predecessor_code="1.1", successor_code="1.2", dep_type=DependencyType.FF)]
        start, end = forward_pass(chain_items, deps, START)["1.2"]
        assert end == date(2025, 1, 11)
        assert start == date(2025, 1, 8)

    def test_start_to_finish_never_before_project_start(self, chain_items):
        deps = [Dependency(predecessor_code="1.1", successor_code="1.2", dep_type=DependencyType.SF)]
        # Predecessor start minus duration would fall before the project start
        assert forward_pass(chain_items, deps, START)["1.2"][0] == START

    def test_latest_predecessor_wins(self, chain_items):
        deps = [
            Dependency(predecessor_code="1.1", successor_code="1.3"),
            Dependency(predecessor_code="1.2", successor_code="1.3"),
        ]
        assert forward_pass(chain_items, deps, START)["1.3"][0] == date(2025, 1, 11)

    def test_cycle_detected(self, chain_items):
        deps = [
            Dependency(predecessor_code="1.1", successor_code="1.2"),
            Dependency(predecessor_code="1.2", successor_code="1.1"),
        ]
        with pytest.raises(CycleDetected):
            forward_pass(chain_items, deps, START)

    def test_unknown_code(self, chain_items):
        deps = [Dependency(predecessor_code="9.9", successor_code="1.1")]
        with pytest.raises(UnknownDependency) as exc_info:
            forward_pass(chain_items, deps, START)
        assert exc_info.value.code == "9.9"

    def test_parent_code_is_not_schedulable(self, chain_items):
        deps = [Dependency(predecessor_code="1", successor_code="1.1")]
        with pytest.raises(UnknownDependency):
            forward_pass(chain_items, deps, START)

    def test_negative_duration(self, make_item):
        with pytest.raises(InvalidScheduleValue):
            forward_pass([make_item("1", duration=-2)], [], START)


class TestApplyForwardPass:
    def test_fills_start_and_keeps_values(self, chain_items):
        deps = [Dependency(predecessor_code="1.1", successor_code="1.3")]
        updated = {item.code: item for item in apply_forward_pass(chain_items, deps, START)}

        assert updated["1.3"].schedule.start == date(2025, 1, 11)
        assert updated["1.3"].schedule.duration == 4
        assert updated["1.3"].schedule.progress == Decimal("25")
        assert updated["1"].schedule is None

    def test_input_untouched(self, chain_items):
        apply_forward_pass(chain_items, [], START)
        assert chain_items[1].schedule.start is None
