"""WBS engine: tree building, weight validation and schedule roll-up."""

from wbscalc.wbs.schedule import collect_schedule_issues, parse_schedule, resolve_schedule
from wbscalc.wbs.tree import WBSNode, build_tree, code_sort_key
from wbscalc.wbs.weights import WeightReport, derive_weights_from_cost, validate_weights

__all__ = [
    "WBSNode",
    "WeightReport",
    "build_tree",
    "code_sort_key",
    "collect_schedule_issues",
    "derive_weights_from_cost",
    "parse_schedule",
    "resolve_schedule",
    "validate_weights",
]
