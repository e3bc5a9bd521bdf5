"""SQLAlchemy-backed ItemStore.

The store flushes but never commits: the session owner (``get_session`` or a
host application) decides the transaction boundary. A ``Conflict`` raised
from a failed insert leaves the session needing a rollback.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from uuid import UUID

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wbscalc.db.models import DependencyModel, ProjectModel, VersionModel, WbsItemModel
from wbscalc.exceptions import Conflict, DuplicateCode, NotFound
from wbscalc.models import (
    Dependency,
    DependencyType,
    Item,
    Project,
    ScheduleValue,
    Version,
    VersionMode,
)
from wbscalc.store.base import ItemStore
from wbscalc.wbs.schedule import parse_schedule


class SqlItemStore(ItemStore):
    """ItemStore over an AsyncSession."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # Projects

    async def create_project(self, project: Project) -> Project:
        self.session.add(
            ProjectModel(
                id=project.id,
                code=project.code,
                name=project.name,
                created_at=project.created_at,
            )
        )
        await self.session.flush()
        return project

    async def get_project(self, project_id: str) -> Project:
        model = await self.session.get(ProjectModel, project_id)
        if model is None:
            raise NotFound("Project", project_id)
        return Project(id=model.id, code=model.code, name=model.name, created_at=model.created_at)

    # Versions

    async def create_version(self, version: Version) -> Version:
        await self.get_project(version.project_id)

        result = await self.session.execute(
            select(func.max(VersionModel.version_no)).where(
                VersionModel.project_id == version.project_id
            )
        )
        next_no = (result.scalar() or 0) + 1

        model = VersionModel(
            id=version.id,
            project_id=version.project_id,
            mode=version.mode.value,
            name=version.name,
            version_no=next_no,
            is_locked=version.is_locked,
            source_version_id=version.source_version_id,
            project_start=version.project_start,
            created_at=version.created_at,
        )
        self.session.add(model)
        await self.session.flush()
        return _to_version(model)

    async def get_version(self, version_id: UUID) -> Version:
        return _to_version(await self._version_model(version_id))

    async def list_versions(self, project_id: str) -> list[Version]:
        result = await self.session.execute(
            select(VersionModel)
            .where(VersionModel.project_id == project_id)
            .order_by(VersionModel.version_no)
        )
        return [_to_version(model) for model in result.scalars()]

    async def update_version(self, version: Version) -> Version:
        model = await self._version_model(version.id)
        model.name = version.name
        model.mode = version.mode.value
        model.is_locked = version.is_locked
        model.project_start = version.project_start
        await self.session.flush()
        return _to_version(model)

    async def delete_version(self, version_id: UUID) -> None:
        model = await self._version_model(version_id)
        # Engines without the foreign_keys pragma ignore ON DELETE CASCADE
        await self.session.execute(delete(WbsItemModel).where(WbsItemModel.version_id == version_id))
        await self.session.execute(
            delete(DependencyModel).where(DependencyModel.version_id == version_id)
        )
        await self.session.delete(model)
        await self.session.flush()

    # Items

    async def get_items(self, version_id: UUID) -> list[Item]:
        await self._version_model(version_id)
        result = await self.session.execute(
            select(WbsItemModel).where(WbsItemModel.version_id == version_id)
        )
        return [_to_item(model) for model in result.scalars()]

    async def put_item(self, version_id: UUID, item: Item) -> Item:
        await self._version_model(version_id)
        values = _item_values(item)

        result = await self.session.execute(
            select(WbsItemModel).where(
                WbsItemModel.version_id == version_id,
                WbsItemModel.code == item.code,
            )
        )
        existing = result.scalar_one_or_none()

        if existing is None:
            if item.revision != 0:
                raise Conflict(item.code, item.revision, None)
            self.session.add(
                WbsItemModel(id=item.id, version_id=version_id, code=item.code, revision=1, **values)
            )
            try:
                await self.session.flush()
            except IntegrityError as exc:
                # Another writer created the same code first
                raise Conflict(item.code, 0, None) from exc
            return item.model_copy(update={"revision": 1}, deep=True)

        if existing.revision != item.revision:
            raise Conflict(item.code, item.revision, existing.revision)

        updated = await self.session.execute(
            update(WbsItemModel)
            .where(
                WbsItemModel.id == existing.id,
                WbsItemModel.revision == item.revision,
            )
            .values(revision=item.revision + 1, **values)
            .execution_options(synchronize_session=False)
        )
        if updated.rowcount == 0:
            raise Conflict(item.code, item.revision, None)

        await self.session.flush()
        self.session.expire(existing)
        return item.model_copy(update={"id": existing.id, "revision": item.revision + 1}, deep=True)

    async def put_items(self, version_id: UUID, items: Iterable[Item]) -> list[Item]:
        """Write a batch only if every revision and schedule in it is valid.

        The checks run against one read of the stored revisions. A writer that
        slips in between that read and the writes still raises ``Conflict``
        from ``put_item``, and the session owner rolls the batch back.
        """
        await self._version_model(version_id)
        batch = list(items)
        if not batch:
            return []

        # Whole version rather than an IN list, which large imports would overflow
        result = await self.session.execute(
            select(WbsItemModel.code, WbsItemModel.revision).where(
                WbsItemModel.version_id == version_id
            )
        )
        current = {code: revision for code, revision in result.all()}

        seen: set[str] = set()
        for item in batch:
            if item.code in seen:
                raise DuplicateCode(item.code)
            seen.add(item.code)
            parse_schedule(item)
            stored = current.get(item.code)
            if item.revision != (stored if stored is not None else 0):
                raise Conflict(item.code, item.revision, stored)

        return [await self.put_item(version_id, item) for item in batch]

    async def delete_items(self, version_id: UUID, codes: Iterable[str]) -> int:
        await self._version_model(version_id)
        codes = list(codes)
        if not codes:
            return 0
        result = await self.session.execute(
            delete(WbsItemModel).where(
                WbsItemModel.version_id == version_id,
                WbsItemModel.code.in_(codes),
            )
        )
        await self.session.flush()
        return result.rowcount or 0

    # Dependencies

    async def get_dependencies(self, version_id: UUID) -> list[Dependency]:
        await self._version_model(version_id)
        result = await self.session.execute(
            select(DependencyModel)
            .where(DependencyModel.version_id == version_id)
            .order_by(DependencyModel.predecessor_code, DependencyModel.successor_code)
        )
        return [
            Dependency(
                predecessor_code=model.predecessor_code,
                successor_code=model.successor_code,
                dep_type=DependencyType(model.dep_type),
                lag_days=model.lag_days,
            )
            for model in result.scalars()
        ]

    async def put_dependencies(
        self, version_id: UUID, dependencies: Sequence[Dependency]
    ) -> None:
        await self._version_model(version_id)
        await self.session.execute(
            delete(DependencyModel).where(DependencyModel.version_id == version_id)
        )
        self.session.add_all(
            DependencyModel(
                version_id=version_id,
                predecessor_code=dep.predecessor_code,
                successor_code=dep.successor_code,
                dep_type=dep.dep_type.value,
                lag_days=dep.lag_days,
            )
            for dep in dependencies
        )
        await self.session.flush()

    async def _version_model(self, version_id: UUID) -> VersionModel:
        model = await self.session.get(VersionModel, version_id)
        if model is None:
            raise NotFound("Version", version_id)
        return model


def _to_version(model: VersionModel) -> Version:
    return Version(
        id=model.id,
        project_id=model.project_id,
        mode=VersionMode(model.mode),
        name=model.name,
        version_no=model.version_no,
        is_locked=model.is_locked,
        source_version_id=model.source_version_id,
        project_start=model.project_start,
        created_at=model.created_at,
    )


def _item_values(item: Item) -> dict:
    # Rejects malformed dates before they reach a Date column
    parsed = parse_schedule(item)
    raw = item.schedule
    return {
        "name": item.name,
        "parent_code": item.parent_code,
        "weight": item.weight,
        "sort_order": item.sort_order,
        "quantity": item.quantity,
        "unit": item.unit,
        "unit_cost": item.unit_cost,
        "notes": item.notes,
        "start_date": parsed.start,
        "duration_days": raw.duration if raw is not None else None,
        "progress": raw.progress if raw is not None else None,
    }


def _to_item(model: WbsItemModel) -> Item:
    schedule = None
    if any(v is not None for v in (model.start_date, model.duration_days, model.progress)):
        schedule = ScheduleValue(
            start=model.start_date,
            duration=model.duration_days,
            progress=model.progress,
        )
    return Item(
        id=model.id,
        code=model.code,
        name=model.name,
        parent_code=model.parent_code,
        weight=model.weight,
        sort_order=model.sort_order,
        quantity=model.quantity,
        unit=model.unit,
        unit_cost=model.unit_cost,
        notes=model.notes,
        schedule=schedule,
        revision=model.revision,
    )
