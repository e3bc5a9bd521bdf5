"""WBS tree construction from flat, code-addressed items.

The tree is a read model: it is rebuilt from the flat item set on every read
and never written back. Items are indexed by code, linked through an
adjacency map computed on demand, and wrapped in ``WBSNode`` objects under a
virtual super-root that holds the top-level items.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from wbscalc.exceptions import CycleDetected, DanglingParent, DuplicateCode, InvalidScheduleValue
from wbscalc.models import Item

logger = logging.getLogger(__name__)

CODE_SEPARATOR = "."


@dataclass(slots=True)
class WBSNode:
    """Tree materialization of an Item.

    ``item`` is None only for the virtual super-root. The derived fields are
    filled in by ``wbscalc.wbs.schedule.resolve_schedule``.
    """

    item: Item | None
    children: list[WBSNode] = field(default_factory=list)
    depth: int = 0

    # Derived, never stored
    aggregated_progress: Decimal | None = None
    effective_start: date | None = None
    effective_end: date | None = None
    schedule_issue: InvalidScheduleValue | None = None

    @property
    def code(self) -> str | None:
        return self.item.code if self.item is not None else None

    @property
    def name(self) -> str:
        return self.item.name if self.item is not None else ""

    @property
    def weight(self) -> Decimal:
        if self.item is None:
            return Decimal("100")
        return self.item.effective_weight

    @property
    def is_root(self) -> bool:
        return self.item is None

    @property
    def is_leaf(self) -> bool:
        return not self.children and self.item is not None

    @property
    def is_scheduled(self) -> bool:
        return self.effective_start is not None

    def walk(self) -> Iterator[WBSNode]:
        """Yield item nodes depth-first in sibling order (root excluded)."""
        stack = list(reversed(self.children)) if self.is_root else [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, code: str) -> WBSNode | None:
        for node in self.walk():
            if node.code == code:
                return node
        return None

    def node_count(self) -> int:
        return sum(1 for _ in self.walk())


def code_sort_key(code: str) -> tuple[tuple[tuple[int, int, str], ...], str]:
    """Sort key comparing codes segment by segment.

    Numeric segments compare as integers so "1.9" sorts before "1.10";
    numeric segments sort before alphabetic ones ("S.1" vs "S.A").
    The raw code breaks ties such as "1.01" vs "1.1".
    """
    segments = []
    for segment in code.split(CODE_SEPARATOR):
        if segment.isdigit():
            segments.append((0, int(segment), ""))
        else:
            segments.append((1, 0, segment))
    return tuple(segments), code


def sibling_sort_key(item: Item) -> tuple:
    """Explicit sort_order first (ascending), then code order."""
    return (
        item.sort_order is None,
        item.sort_order if item.sort_order is not None else 0,
        code_sort_key(item.code),
    )


def derive_parent_code(code: str) -> str | None:
    """Parent implied by a dotted code: "1.2.3" -> "1.2", "1" -> None."""
    head, sep, _ = code.rpartition(CODE_SEPARATOR)
    return head if sep and head else None


def index_items(items: Iterable[Item]) -> dict[str, Item]:
    """Index items by code, rejecting duplicates."""
    index: dict[str, Item] = {}
    for item in items:
        if item.code in index:
            raise DuplicateCode(item.code)
        index[item.code] = item
    return index


def check_structure(items: Iterable[Item]) -> dict[str, Item]:
    """Validate codes, parent references and acyclicity without building nodes.

    Returns the code index on success.

    Raises:
        DuplicateCode: Two items share a code
        DanglingParent: A parent_code is not in the set
        CycleDetected: An item is its own ancestor
    """
    index = index_items(items)
    ordered = sorted(index, key=code_sort_key)

    for code in ordered:
        parent_code = index[code].parent_code
        if parent_code is not None and parent_code not in index:
            raise DanglingParent(code, parent_code)

    # Codes proven to reach the root are not walked again, keeping this O(n)
    reaches_root: set[str] = set()
    for code in ordered:
        chain: list[str] = []
        seen: set[str] = set()
        cursor: str | None = code
        while cursor is not None and cursor not in reaches_root:
            if cursor in seen:
                raise CycleDetected(cursor)
            seen.add(cursor)
            chain.append(cursor)
            cursor = index[cursor].parent_code
        reaches_root.update(chain)

    return index


def build_tree(items: Iterable[Item]) -> WBSNode:
    """Build the WBS forest under a virtual super-root.

    Structural errors abort the build; no partial tree is returned.

    Args:
        items: Flat item set of one version

    Returns:
        WBSNode: Virtual root whose children are the top-level items

    Raises:
        DuplicateCode, DanglingParent, CycleDetected
    """
    index = check_structure(items)

    children_of: dict[str | None, list[Item]] = defaultdict(list)
    for item in index.values():
        children_of[item.parent_code].append(item)

    root = WBSNode(item=None)
    stack = [root]
    while stack:
        node = stack.pop()
        kids = sorted(children_of.get(node.code, ()), key=sibling_sort_key)
        node.children = [WBSNode(item=kid, depth=node.depth + 1) for kid in kids]
        stack.extend(node.children)

    logger.debug("Built WBS tree with %d nodes", len(index))
    return root


def subtree_codes(items: Iterable[Item], code: str) -> set[str]:
    """Codes of ``code`` and all of its descendants (cascading delete set)."""
    children_of: dict[str | None, list[str]] = defaultdict(list)
    for item in items:
        children_of[item.parent_code].append(item.code)

    result: set[str] = set()
    stack = [code]
    while stack:
        current = stack.pop()
        if current in result:
            continue
        result.add(current)
        stack.extend(children_of.get(current, ()))
    return result
