"""Coarse scaling checks for tree resolution and view projection.

A version of roughly ten thousand items must resolve and project in well
under a second or two on a developer machine; the bounds are loose so the
checks only catch accidental quadratic behaviour.
"""

from __future__ import annotations

import time
from datetime import date, timedelta
from decimal import Decimal

import pytest

from wbscalc.models import Item, ScheduleValue, Version, VersionMode, ViewKind
from wbscalc.versions.manager import resolve_items
from wbscalc.views.projector import project

START = date(2025, 1, 6)


def generate_items(sections: int, groups: int, leaves: int) -> list[Item]:
    """Three-level WBS whose sibling weights always sum to 100."""
    items = []
    for s in range(1, sections + 1):
        items.append(Item(code=f"{s}", name=f"Section {s}", weight=Decimal(100) / sections))
        for g in range(1, groups + 1):
            group = f"{s}.{g}"
            items.append(
                Item(code=group, name=f"Group {group}", parent_code=f"{s}", weight=Decimal(100) / groups)
            )
            for n in range(1, leaves + 1):
                code = f"{group}.{n}"
                items.append(
                    Item(
                        code=code,
                        name=f"Task {code}",
                        parent_code=group,
                        weight=Decimal(100) / leaves,
                        schedule=ScheduleValue(
                            start=START + timedelta(days=s * 7 + n),
                            duration=10,
                            progress=Decimal("50"),
                        ),
                    )
                )
    return items


def _timed(func, *args, **kwargs):
    started = time.perf_counter()
    result = func(*args, **kwargs)
    return result, time.perf_counter() - started


@pytest.mark.performance
class TestTreeScaling:
    """Resolution time grows roughly linearly with item count."""

    def test_large_version_resolves_quickly(self):
        items = generate_items(sections=20, groups=25, leaves=20)
        version = Version(project_id="perf", mode=VersionMode.DETAIL, name="Perf")

        resolved, elapsed = _timed(resolve_items, version, items)

        assert resolved.root.node_count() == len(items)
        assert resolved.weights.ok
        assert resolved.overall_progress == Decimal("50")
        assert elapsed < 5.0

    def test_resolution_scales_linearly(self):
        version = Version(project_id="perf", mode=VersionMode.DETAIL, name="Perf")
        small = generate_items(sections=4, groups=5, leaves=20)
        large = generate_items(sections=20, groups=25, leaves=20)

        # Warm up imports and caches
        resolve_items(version, small)
        _, small_time = _timed(resolve_items, version, small)
        _, large_time = _timed(resolve_items, version, large)

        ratio = len(large) / len(small)
        # Generous slack: only catches quadratic blow-ups
        assert large_time < max(small_time, 0.01) * ratio * 5

    @pytest.mark.parametrize("kind", list(ViewKind))
    def test_every_view_projects_quickly(self, kind):
        items = generate_items(sections=10, groups=20, leaves=20)
        resolved = resolve_items(
            Version(project_id="perf", mode=VersionMode.DETAIL, name="Perf"), items
        )

        view, elapsed = _timed(project, resolved, kind)

        assert view is not None
        assert elapsed < 5.0
