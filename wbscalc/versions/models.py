"""Data structures returned by the version manager."""

from __future__ import annotations

from dataclasses import dataclass, field

from wbscalc.exceptions import InvalidScheduleValue
from wbscalc.models import Version
from wbscalc.wbs.tree import WBSNode
from wbscalc.wbs.weights import WeightReport


@dataclass(slots=True)
class ResolvedVersion:
    """One version's tree after structure, weight and schedule passes."""

    version: Version
    root: WBSNode
    weights: WeightReport
    schedule_issues: list[InvalidScheduleValue] = field(default_factory=list)

    @property
    def overall_progress(self):
        return self.root.aggregated_progress

    @property
    def start(self):
        return self.root.effective_start

    @property
    def end(self):
        return self.root.effective_end
