"""Typed failures raised by the WBS engine and its stores.

Every error carries the offending code or identifier so callers can render a
specific remediation message instead of a generic failure.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any


class WBSError(Exception):
    """Base class for all engine errors."""


class DanglingParent(WBSError):
    """An item references a parent code that does not exist in its version."""

    def __init__(self, code: str, parent_code: str):
        self.code = code
        self.parent_code = parent_code
        super().__init__(
            f"Item '{code}' references missing parent '{parent_code}'"
        )


class CycleDetected(WBSError):
    """An item is its own ancestor (or a dependency chain loops)."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Cycle detected at '{code}'")


class DuplicateCode(WBSError):
    """Two items in one version share a code."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Duplicate item code '{code}'")


class WeightOverflow(WBSError):
    """Direct children of one parent carry more than 100 weight in total.

    ``parent_code`` is None for the top level of a version.
    """

    def __init__(self, parent_code: str | None, observed_sum: Decimal):
        self.parent_code = parent_code
        self.observed_sum = observed_sum
        label = parent_code if parent_code is not None else "<root>"
        super().__init__(
            f"Child weights under '{label}' sum to {observed_sum} (max 100)"
        )


class InvalidScheduleValue(WBSError):
    """A schedule field is malformed (negative duration, bad date, ...)."""

    def __init__(self, code: str, field: str, value: Any = None):
        self.code = code
        self.field = field
        self.value = value
        super().__init__(f"Invalid schedule {field} on '{code}': {value!r}")


class UnknownDependency(WBSError):
    """A dependency references a code that is not in the version."""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Dependency references unknown item '{code}'")


class NotFound(WBSError):
    """Project, version or item lookup miss."""

    def __init__(self, kind: str, key: Any):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} not found: {key}")


class Conflict(WBSError):
    """Store-level concurrent write detected (stale revision)."""

    def __init__(self, code: str, expected: int, actual: int | None):
        self.code = code
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Conflicting write on '{code}': expected revision {expected}, "
            f"store has {actual}"
        )


class VersionLocked(WBSError):
    """Write attempted against a locked version."""

    def __init__(self, version_id: Any):
        self.version_id = version_id
        super().__init__(f"Version {version_id} is locked")


class ReparentRejected(WBSError):
    """An update tried to change the parent of an existing code.

    Codes are immutable; moving an item means re-inserting it under a new code
    (see ``VersionManager.move_item``).
    """

    def __init__(self, code: str, current_parent: str | None, requested_parent: str | None):
        self.code = code
        self.current_parent = current_parent
        self.requested_parent = requested_parent
        super().__init__(
            f"Cannot re-parent '{code}' from {current_parent!r} to {requested_parent!r}; "
            "move it under a new code instead"
        )
