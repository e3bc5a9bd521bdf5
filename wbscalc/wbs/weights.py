"""Sibling weight validation and cost-derived weights.

Weights are detected, never repaired: the normalizer reports the literal sum
of each sibling group and flags groups above 100. Unweighted children count
as 0, so a partially weighted branch represents unallocated scope.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from decimal import ROUND_DOWN, Decimal

from wbscalc.exceptions import WeightOverflow
from wbscalc.models import HUNDRED, Item, WeightPolicy
from wbscalc.wbs.tree import WBSNode, build_tree

logger = logging.getLogger(__name__)

WEIGHT_QUANTUM = Decimal("0.01")


@dataclass(slots=True)
class WeightReport:
    """Per-parent weight sums and overflows of one tree.

    ``sums`` is keyed by parent code; None is the top level.
    """

    sums: dict[str | None, Decimal] = field(default_factory=dict)
    overflows: list[WeightOverflow] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.overflows

    def unallocated(self, parent_code: str | None) -> Decimal:
        """Weight still free under a parent (never negative)."""
        return max(HUNDRED - self.sums.get(parent_code, Decimal("0")), Decimal("0"))

    def raise_for_overflow(self) -> None:
        if self.overflows:
            raise self.overflows[0]


def sibling_weight_sum(node: WBSNode) -> Decimal:
    """Literal sum of the direct children's weights (unset = 0)."""
    return sum((child.weight for child in node.children), Decimal("0"))


def validate_weights(
    node: WBSNode,
    policy: WeightPolicy = WeightPolicy.STRICT,
) -> WeightReport:
    """Check every sibling group under ``node``.

    Args:
        node: Tree (usually the virtual root) to validate
        policy: STRICT raises the first overflow in depth-first order;
            ADVISORY returns the report and logs a warning

    Returns:
        WeightReport with literal sums for every parent that has children

    Raises:
        WeightOverflow: Under STRICT policy when any group exceeds 100
    """
    parents = [node] if node.is_root else []
    parents.extend(n for n in node.walk() if n.children)

    report = WeightReport()
    for parent in parents:
        if not parent.children:
            continue
        total = sibling_weight_sum(parent)
        report.sums[parent.code] = total
        if total > HUNDRED:
            report.overflows.append(WeightOverflow(parent.code, total))

    if report.overflows:
        if policy == WeightPolicy.STRICT:
            raise report.overflows[0]
        logger.warning(
            "Weight overflow under %d parent(s): %s",
            len(report.overflows),
            ", ".join(str(o.parent_code) for o in report.overflows),
        )

    return report


def derive_weights_from_cost(items: Sequence[Item]) -> list[Item]:
    """Set each item's weight to its share of its sibling group's cost.

    Leaf cost is ``quantity * unit_cost`` (0 when either is missing); a parent's
    cost is the sum of its children, its own subtotal is ignored. Shares are
    rounded down to 2 places so no group exceeds 100.

    Returns:
        New Item copies in input order; the input is not modified
    """
    root = build_tree(items)

    costs: dict[str | None, Decimal] = {}
    for node in reversed(list(root.walk())):
        if node.is_leaf:
            costs[node.code] = node.item.subtotal or Decimal("0")
        else:
            costs[node.code] = sum(
                (costs[child.code] for child in node.children), Decimal("0")
            )

    weights: dict[str, Decimal] = {}
    for parent in [root, *root.walk()]:
        if not parent.children:
            continue
        total = sum((costs[child.code] for child in parent.children), Decimal("0"))
        for child in parent.children:
            if total > 0:
                share = (costs[child.code] / total * HUNDRED).quantize(
                    WEIGHT_QUANTUM, rounding=ROUND_DOWN
                )
            else:
                share = Decimal("0")
            weights[child.code] = share

    return [item.model_copy(update={"weight": weights[item.code]}) for item in items]
