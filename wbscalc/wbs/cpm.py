"""Early-start scheduling of leaf items from task dependencies.

Forward pass of the critical path method over the leaf items of a version.
End dates are exclusive (``end = start + duration``), so a finish-to-start
successor with no lag starts on its predecessor's end date.
"""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict
from collections.abc import Sequence
from datetime import date, timedelta

from wbscalc.exceptions import CycleDetected, InvalidScheduleValue, UnknownDependency
from wbscalc.models import Dependency, DependencyType, Item, ScheduleValue
from wbscalc.wbs.tree import code_sort_key

logger = logging.getLogger(__name__)


def _leaf_durations(items: Sequence[Item]) -> dict[str, int]:
    parents = {item.parent_code for item in items if item.parent_code is not None}
    durations: dict[str, int] = {}
    for item in items:
        if item.code in parents:
            continue
        duration = item.schedule.duration if item.schedule is not None else None
        if duration is not None and duration < 0:
            raise InvalidScheduleValue(item.code, "duration", duration)
        durations[item.code] = duration or 0
    return durations


def _earliest_start(
    dep: Dependency,
    pred_start: date,
    pred_end: date,
    duration: int,
) -> date:
    lag = timedelta(days=dep.lag_days)
    if dep.dep_type == DependencyType.FS:
        return pred_end + lag
    if dep.dep_type == DependencyType.SS:
        return pred_start + lag
    if dep.dep_type == DependencyType.FF:
        return pred_end + lag - timedelta(days=duration)
    # SF
    return pred_start + lag - timedelta(days=duration)


def forward_pass(
    items: Sequence[Item],
    dependencies: Sequence[Dependency],
    project_start: date,
) -> dict[str, tuple[date, date]]:
    """Compute early (start, end) dates for every leaf item.

    Leaves without predecessors start on ``project_start``; no leaf starts
    earlier than that.

    Raises:
        UnknownDependency: A dependency names a code that is not a leaf item
        CycleDetected: The dependency graph loops
        InvalidScheduleValue: A leaf has a negative duration
    """
    durations = _leaf_durations(items)

    successors: dict[str, list[Dependency]] = defaultdict(list)
    incoming: dict[str, list[Dependency]] = defaultdict(list)
    in_degree = {code: 0 for code in durations}
    for dep in dependencies:
        for code in (dep.predecessor_code, dep.successor_code):
            if code not in durations:
                raise UnknownDependency(code)
        successors[dep.predecessor_code].append(dep)
        incoming[dep.successor_code].append(dep)
        in_degree[dep.successor_code] += 1

    # Kahn's algorithm, ties broken by code order for reproducible output
    ready = [(code_sort_key(code), code) for code, degree in in_degree.items() if degree == 0]
    heapq.heapify(ready)

    dates: dict[str, tuple[date, date]] = {}
    while ready:
        _, code = heapq.heappop(ready)
        duration = durations[code]
        start = project_start
        for dep in incoming[code]:
            pred_start, pred_end = dates[dep.predecessor_code]
            start = max(start, _earliest_start(dep, pred_start, pred_end, duration))
        dates[code] = (start, start + timedelta(days=duration))

        for dep in successors[code]:
            in_degree[dep.successor_code] -= 1
            if in_degree[dep.successor_code] == 0:
                heapq.heappush(ready, (code_sort_key(dep.successor_code), dep.successor_code))

    if len(dates) != len(durations):
        stuck = sorted((code for code in durations if code not in dates), key=code_sort_key)
        raise CycleDetected(stuck[0])

    logger.debug("Forward pass scheduled %d leaf items", len(dates))
    return dates


def apply_forward_pass(
    items: Sequence[Item],
    dependencies: Sequence[Dependency],
    project_start: date,
) -> list[Item]:
    """Return item copies with leaf start dates set from the forward pass.

    Duration and progress are preserved; parent items are returned unchanged.
    """
    dates = forward_pass(items, dependencies, project_start)
    result = []
    for item in items:
        if item.code not in dates:
            result.append(item.model_copy(deep=True))
            continue
        start, _ = dates[item.code]
        current = item.schedule or ScheduleValue()
        schedule = current.model_copy(update={"start": start})
        result.append(item.model_copy(update={"schedule": schedule}, deep=True))
    return result
