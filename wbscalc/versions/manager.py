"""Version lifecycle and item writes over an ItemStore.

Every read rebuilds the tree from the store's flat records; nothing is cached
between calls. Writes validate the resulting item set before they reach the
store, and the store arbitrates concurrent edits through item revisions.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from uuid import UUID

from wbscalc.config import EngineConfig, get_config
from wbscalc.exceptions import (
    Conflict,
    CycleDetected,
    DanglingParent,
    NotFound,
    ReparentRejected,
    VersionLocked,
)
from wbscalc.models import (
    Dependency,
    Granularity,
    Item,
    Project,
    Version,
    VersionMode,
    ViewKind,
    WeightPolicy,
)
from wbscalc.store.base import ItemStore
from wbscalc.versions.models import ResolvedVersion
from wbscalc.views.projector import project as project_view
from wbscalc.wbs.cpm import apply_forward_pass, forward_pass
from wbscalc.wbs.schedule import collect_schedule_issues, parse_schedule, resolve_schedule
from wbscalc.wbs.tree import (
    CODE_SEPARATOR,
    build_tree,
    check_structure,
    code_sort_key,
    subtree_codes,
)
from wbscalc.wbs.weights import validate_weights

logger = logging.getLogger(__name__)


def resolve_items(version: Version, items: Sequence[Item]) -> ResolvedVersion:
    """Run the tree, weight and schedule passes over one version's items.

    Weights are always checked in advisory mode here: reading a version never
    fails because of an overflow, the report carries it instead.
    """
    root = build_tree(items)
    weights = validate_weights(root, WeightPolicy.ADVISORY)
    resolved = resolve_schedule(root)
    return ResolvedVersion(
        version=version,
        root=resolved,
        weights=weights,
        schedule_issues=collect_schedule_issues(resolved),
    )


class VersionManager:
    """Coexisting versions of a project and the items inside them."""

    def __init__(self, store: ItemStore, config: EngineConfig | None = None):
        self.store = store
        self.config = config if config is not None else get_config().engine

    # Projects

    async def create_project(
        self, code: str, name: str, project_id: str | None = None
    ) -> Project:
        project = Project(id=project_id or str(self.store.mint_id()), code=code, name=name)
        created = await self.store.create_project(project)
        logger.info("Created project %s (%s)", created.code, created.id)
        return created

    async def get_project(self, project_id: str) -> Project:
        return await self.store.get_project(project_id)

    # Versions

    async def create_version(
        self,
        project_id: str,
        mode: VersionMode | str,
        name: str | None = None,
        project_start: date | None = None,
        source_version_id: UUID | None = None,
    ) -> Version:
        mode = VersionMode(mode)
        if name is None:
            existing = await self.store.list_versions(project_id)
            next_no = max((v.version_no for v in existing), default=0) + 1
            name = f"{mode.value.title()} v{next_no}"

        version = Version(
            id=self.store.mint_id(),
            project_id=project_id,
            mode=mode,
            name=name,
            project_start=project_start,
            source_version_id=source_version_id,
        )
        created = await self.store.create_version(version)
        logger.info(
            "Created %s version %s (#%d) for project %s",
            created.mode.value,
            created.id,
            created.version_no,
            project_id,
        )
        return created

    async def list_versions(self, project_id: str) -> list[Version]:
        return await self.store.list_versions(project_id)

    async def get_version(self, version_id: UUID) -> Version:
        return await self.store.get_version(version_id)

    async def delete_version(self, version_id: UUID) -> None:
        await self.store.delete_version(version_id)
        logger.info("Deleted version %s", version_id)

    async def lock_version(self, version_id: UUID, locked: bool = True) -> Version:
        version = await self.store.get_version(version_id)
        updated = await self.store.update_version(version.model_copy(update={"is_locked": locked}))
        logger.info("Version %s %s", version_id, "locked" if locked else "unlocked")
        return updated

    async def clone_version(
        self,
        source_id: UUID,
        new_mode: VersionMode | str,
        name: str | None = None,
    ) -> Version:
        """Deep-copy a version's items and dependencies into a new version.

        Every copied item gets a freshly minted id, so later edits to either
        version never touch the other.
        """
        source = await self.store.get_version(source_id)
        items = await self.store.get_items(source_id)
        dependencies = await self.store.get_dependencies(source_id)

        target = await self.create_version(
            source.project_id,
            new_mode,
            name=name,
            project_start=source.project_start,
            source_version_id=source.id,
        )

        copies = [
            item.model_copy(update={"id": self.store.mint_id(), "revision": 0}, deep=True)
            for item in items
        ]
        await self.store.put_items(target.id, copies)
        await self.store.put_dependencies(target.id, dependencies)

        logger.info(
            "Cloned version %s into %s (%d items, %d dependencies)",
            source_id,
            target.id,
            len(copies),
            len(dependencies),
        )
        return target

    # Items

    async def get_items(self, version_id: UUID) -> list[Item]:
        return await self.store.get_items(version_id)

    async def put_item(self, version_id: UUID, item: Item) -> Item:
        """Validate and write one item (insert or update by code).

        Raises:
            VersionLocked: The version is locked
            InvalidScheduleValue: The item's schedule is malformed
            ReparentRejected: An existing code would change parent
            DanglingParent, CycleDetected: The resulting set is not a forest
            WeightOverflow: Under the strict policy, when the item's sibling
                group would exceed 100
            Conflict: The item's revision is stale
        """
        stored = await self.put_items(version_id, [item])
        return stored[0]

    async def put_items(self, version_id: UUID, items: Sequence[Item]) -> list[Item]:
        """Validate a batch of writes against the version as one change.

        The whole batch is checked before anything is written, with the same
        rules as ``put_item``; a stale revision anywhere in the batch raises
        ``Conflict`` before the first write. Duplicate codes inside the batch
        raise ``DuplicateCode``.
        """
        await self._writable(version_id)
        for item in items:
            parse_schedule(item)

        current = {i.code: i for i in await self.store.get_items(version_id)}
        for item in items:
            existing = current.get(item.code)
            if existing is None:
                if item.revision != 0:
                    raise Conflict(item.code, item.revision, None)
                continue
            if existing.revision != item.revision:
                raise Conflict(item.code, item.revision, existing.revision)
            if existing.parent_code != item.parent_code:
                raise ReparentRejected(item.code, existing.parent_code, item.parent_code)

        incoming = {item.code for item in items}
        candidate = [i for i in current.values() if i.code not in incoming]
        candidate.extend(items)
        self._check_weights(candidate, {item.parent_code for item in items})

        return await self.store.put_items(version_id, items)

    async def move_item(
        self,
        version_id: UUID,
        code: str,
        new_parent_code: str | None,
        new_code: str,
    ) -> list[Item]:
        """Re-parent a subtree by deleting it and re-inserting it recoded.

        Descendant codes that start with ``code`` get the new prefix; other
        descendant codes are kept. Dependencies follow the recoded items.

        Returns:
            The re-inserted items, subtree root first
        """
        await self._writable(version_id)
        items = await self.store.get_items(version_id)
        index = {item.code: item for item in items}
        if code not in index:
            raise NotFound("Item", code)

        moving = subtree_codes(items, code)
        if new_parent_code in moving:
            raise CycleDetected(code)

        remaining = [item for item in items if item.code not in moving]
        if new_parent_code is not None and not any(i.code == new_parent_code for i in remaining):
            raise DanglingParent(new_code, new_parent_code)

        def recode(old: str) -> str:
            if old == code:
                return new_code
            if old.startswith(code + CODE_SEPARATOR):
                return new_code + old[len(code):]
            return old

        moved = []
        for old in [code, *sorted(moving - {code}, key=code_sort_key)]:
            item = index[old]
            parent = new_parent_code if old == code else recode(item.parent_code)
            moved.append(
                item.model_copy(
                    update={
                        "id": self.store.mint_id(),
                        "code": recode(old),
                        "parent_code": parent,
                        "revision": 0,
                    },
                    deep=True,
                )
            )

        candidate = remaining + moved
        check_structure(candidate)
        self._check_weights(candidate, {new_parent_code})

        dependencies = await self.store.get_dependencies(version_id)
        remapped = [
            dep.model_copy(
                update={
                    "predecessor_code": recode(dep.predecessor_code)
                    if dep.predecessor_code in moving
                    else dep.predecessor_code,
                    "successor_code": recode(dep.successor_code)
                    if dep.successor_code in moving
                    else dep.successor_code,
                }
            )
            for dep in dependencies
        ]

        await self.store.delete_items(version_id, moving)
        stored = await self.store.put_items(version_id, moved)
        if remapped != dependencies:
            await self.store.put_dependencies(version_id, remapped)

        logger.info(
            "Moved %s to %s under %s (%d items)",
            code,
            new_code,
            new_parent_code or "<root>",
            len(stored),
        )
        return stored

    async def delete_item(self, version_id: UUID, code: str) -> int:
        """Delete an item with its whole subtree; returns the number removed."""
        await self._writable(version_id)
        items = await self.store.get_items(version_id)
        if not any(item.code == code for item in items):
            raise NotFound("Item", code)

        doomed = subtree_codes(items, code)
        removed = await self.store.delete_items(version_id, doomed)

        dependencies = await self.store.get_dependencies(version_id)
        kept = [
            dep
            for dep in dependencies
            if dep.predecessor_code not in doomed and dep.successor_code not in doomed
        ]
        if len(kept) != len(dependencies):
            await self.store.put_dependencies(version_id, kept)

        logger.info("Deleted %s from version %s (%d items)", code, version_id, removed)
        return removed

    # Dependencies

    async def get_dependencies(self, version_id: UUID) -> list[Dependency]:
        return await self.store.get_dependencies(version_id)

    async def put_dependencies(
        self, version_id: UUID, dependencies: Sequence[Dependency]
    ) -> None:
        """Replace a version's dependencies after checking codes and cycles."""
        version = await self._writable(version_id)
        items = await self.store.get_items(version_id)
        forward_pass(items, dependencies, version.project_start or date.today())
        await self.store.put_dependencies(version_id, list(dependencies))

    async def schedule_from_dependencies(
        self, version_id: UUID, project_start: date | None = None
    ) -> list[Item]:
        """Write forward-pass start dates onto the version's leaf items.

        ``project_start`` overrides (and is saved as) the version's anchor.

        Returns:
            The items whose start date changed, as stored
        """
        version = await self._writable(version_id)
        anchor = project_start or version.project_start
        if anchor is None:
            raise ValueError(
                f"Version {version_id} has no project start; pass one explicitly"
            )
        if anchor != version.project_start:
            await self.store.update_version(version.model_copy(update={"project_start": anchor}))

        items = await self.store.get_items(version_id)
        dependencies = await self.store.get_dependencies(version_id)
        scheduled = apply_forward_pass(items, dependencies, anchor)

        stored = []
        for before, after in zip(items, scheduled):
            if before.schedule != after.schedule:
                stored.append(await self.store.put_item(version_id, after))

        logger.info("Scheduled %d items of version %s from %s", len(stored), version_id, anchor)
        return stored

    # Reads

    async def resolve(self, version_id: UUID) -> ResolvedVersion:
        version = await self.store.get_version(version_id)
        items = await self.store.get_items(version_id)
        return resolve_items(version, items)

    async def project(
        self,
        version_id: UUID,
        view_kind: ViewKind | str,
        *,
        granularity: Granularity | str | None = None,
        places: int | None = None,
    ):
        """Resolve a version and project one read-only view of it."""
        resolved = await self.resolve(version_id)
        return project_view(
            resolved,
            ViewKind(view_kind),
            granularity=Granularity(granularity or self.config.scurve_granularity),
            places=places if places is not None else self.config.progress_places,
        )

    # Helpers

    async def _writable(self, version_id: UUID) -> Version:
        version = await self.store.get_version(version_id)
        if version.is_locked:
            raise VersionLocked(version_id)
        return version

    def _check_weights(self, items: Sequence[Item], groups: set[str | None]) -> None:
        """Apply the weight policy to the sibling groups touched by a write."""
        report = validate_weights(build_tree(items), WeightPolicy.ADVISORY)
        for overflow in report.overflows:
            if overflow.parent_code not in groups:
                continue
            if self.config.weight_policy == WeightPolicy.STRICT:
                raise overflow
            logger.warning("Saving despite weight overflow: %s", overflow)
