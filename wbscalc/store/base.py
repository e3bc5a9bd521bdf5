"""Store contract for projects, versions, items and dependencies.

The engine never persists trees; stores hold flat records only. Stores hand
out copies so no record is aliased between callers or versions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from uuid import UUID, uuid4

from wbscalc.exceptions import Conflict, DuplicateCode
from wbscalc.models import Dependency, Item, Project, Version


class ItemStore(ABC):
    """Abstract async store reachable by opaque identifiers.

    Item writes use optimistic concurrency: ``item.revision`` must equal the
    stored revision (0 for a new code), otherwise ``Conflict`` is raised.
    The stored copy is returned with its revision incremented.
    """

    def mint_id(self) -> UUID:
        """Generate a fresh identifier for a version or item."""
        return uuid4()

    @abstractmethod
    async def create_project(self, project: Project) -> Project:
        pass

    @abstractmethod
    async def get_project(self, project_id: str) -> Project:
        """Raises NotFound."""

    @abstractmethod
    async def create_version(self, version: Version) -> Version:
        """Persist a new version; the store assigns ``version_no``.

        Raises:
            NotFound: If the owning project does not exist
        """

    @abstractmethod
    async def get_version(self, version_id: UUID) -> Version:
        """Raises NotFound."""

    @abstractmethod
    async def list_versions(self, project_id: str) -> list[Version]:
        """Versions of a project ordered by ``version_no``."""

    @abstractmethod
    async def update_version(self, version: Version) -> Version:
        """Raises NotFound."""

    @abstractmethod
    async def delete_version(self, version_id: UUID) -> None:
        """Delete a version with its items and dependencies. Raises NotFound."""

    @abstractmethod
    async def get_items(self, version_id: UUID) -> list[Item]:
        """Raises NotFound for an unknown version."""

    @abstractmethod
    async def put_item(self, version_id: UUID, item: Item) -> Item:
        """Insert or update by code. Raises Conflict on a stale revision."""

    async def put_items(self, version_id: UUID, items: Iterable[Item]) -> list[Item]:
        """Write a batch only if every revision in it is current.

        Raises:
            DuplicateCode: A code appears twice in the batch
            Conflict: Any item's revision is stale; nothing is written
        """
        batch = list(items)
        current = {i.code: i.revision for i in await self.get_items(version_id)}
        seen: set[str] = set()
        for item in batch:
            if item.code in seen:
                raise DuplicateCode(item.code)
            seen.add(item.code)
            stored = current.get(item.code)
            if item.revision != (stored if stored is not None else 0):
                raise Conflict(item.code, item.revision, stored)
        return [await self.put_item(version_id, item) for item in batch]

    @abstractmethod
    async def delete_items(self, version_id: UUID, codes: Iterable[str]) -> int:
        """Delete items by code; returns the number removed."""

    @abstractmethod
    async def get_dependencies(self, version_id: UUID) -> list[Dependency]:
        pass

    @abstractmethod
    async def put_dependencies(
        self, version_id: UUID, dependencies: Sequence[Dependency]
    ) -> None:
        """Replace the dependency set of a version."""
