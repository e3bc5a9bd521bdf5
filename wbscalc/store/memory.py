"""In-memory ItemStore.

Used by tests and by host applications that keep project data elsewhere and
only need the engine for a session. Every read and write goes through deep
copies, so callers can mutate returned records freely.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from uuid import UUID

from wbscalc.exceptions import Conflict, NotFound
from wbscalc.models import Dependency, Item, Project, Version
from wbscalc.store.base import ItemStore


class InMemoryStore(ItemStore):
    """Dict-backed store keyed by project id, version id and item code."""

    def __init__(self) -> None:
        self._projects: dict[str, Project] = {}
        self._versions: dict[UUID, Version] = {}
        self._items: dict[UUID, dict[str, Item]] = {}
        self._dependencies: dict[UUID, list[Dependency]] = {}

    async def create_project(self, project: Project) -> Project:
        self._projects[project.id] = project.model_copy(deep=True)
        return project.model_copy(deep=True)

    async def get_project(self, project_id: str) -> Project:
        try:
            return self._projects[project_id].model_copy(deep=True)
        except KeyError:
            raise NotFound("Project", project_id) from None

    async def create_version(self, version: Version) -> Version:
        if version.project_id not in self._projects:
            raise NotFound("Project", version.project_id)
        siblings = [v.version_no for v in self._versions.values() if v.project_id == version.project_id]
        stored = version.model_copy(update={"version_no": max(siblings, default=0) + 1}, deep=True)
        self._versions[stored.id] = stored
        self._items[stored.id] = {}
        self._dependencies[stored.id] = []
        return stored.model_copy(deep=True)

    async def get_version(self, version_id: UUID) -> Version:
        return self._version(version_id).model_copy(deep=True)

    async def list_versions(self, project_id: str) -> list[Version]:
        versions = [v for v in self._versions.values() if v.project_id == project_id]
        versions.sort(key=lambda v: v.version_no)
        return [v.model_copy(deep=True) for v in versions]

    async def update_version(self, version: Version) -> Version:
        self._version(version.id)
        self._versions[version.id] = version.model_copy(deep=True)
        return version.model_copy(deep=True)

    async def delete_version(self, version_id: UUID) -> None:
        self._version(version_id)
        del self._versions[version_id]
        del self._items[version_id]
        del self._dependencies[version_id]

    async def get_items(self, version_id: UUID) -> list[Item]:
        self._version(version_id)
        return [item.model_copy(deep=True) for item in self._items[version_id].values()]

    async def put_item(self, version_id: UUID, item: Item) -> Item:
        self._version(version_id)
        items = self._items[version_id]
        existing = items.get(item.code)
        current = existing.revision if existing is not None else 0
        if item.revision != current:
            raise Conflict(item.code, item.revision, current if existing is not None else None)

        stored = item.model_copy(update={"revision": current + 1}, deep=True)
        if existing is not None:
            # Identity of a code is fixed at creation
            stored = stored.model_copy(update={"id": existing.id})
        items[item.code] = stored
        return stored.model_copy(deep=True)

    async def delete_items(self, version_id: UUID, codes: Iterable[str]) -> int:
        self._version(version_id)
        items = self._items[version_id]
        removed = 0
        for code in set(codes):
            if items.pop(code, None) is not None:
                removed += 1
        return removed

    async def get_dependencies(self, version_id: UUID) -> list[Dependency]:
        self._version(version_id)
        return [dep.model_copy(deep=True) for dep in self._dependencies[version_id]]

    async def put_dependencies(
        self, version_id: UUID, dependencies: Sequence[Dependency]
    ) -> None:
        self._version(version_id)
        self._dependencies[version_id] = [dep.model_copy(deep=True) for dep in dependencies]

    def _version(self, version_id: UUID) -> Version:
        try:
            return self._versions[version_id]
        except KeyError:
            raise NotFound("Version", version_id) from None
