"""Pytest configuration and fixtures for WBSCalc tests.

Provides common fixtures for testing.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from wbscalc.config import EngineConfig, reset_config
from wbscalc.models import Item, ScheduleValue, Version, VersionMode, WeightPolicy
from wbscalc.store.memory import InMemoryStore
from wbscalc.versions.manager import VersionManager
from wbscalc.wbs.tree import derive_parent_code


@pytest.fixture(autouse=True)
def app_env(monkeypatch):
    """Minimal environment so get_config() works in every test."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    for name in (
        "WEIGHT_POLICY",
        "PROGRESS_PLACES",
        "SCURVE_GRANULARITY",
        "IMPORT_MAX_FILE_MB",
        "IMPORT_MAX_ROWS",
        "LOG_LEVEL",
        "LOG_FILE",
        "JSON_LOGS",
    ):
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def make_item():
    """Factory for items; the parent defaults to the code prefix."""

    def _make(
        code: str,
        weight: str | int | None = None,
        *,
        name: str | None = None,
        parent: str | None = "",
        start: date | str | None = None,
        duration: int | None = None,
        progress: str | int | None = None,
        **extra,
    ) -> Item:
        schedule = None
        if start is not None or duration is not None or progress is not None:
            schedule = ScheduleValue(
                start=start,
                duration=duration,
                progress=Decimal(str(progress)) if progress is not None else None,
            )
        return Item(
            code=code,
            name=name or f"Item {code}",
            parent_code=derive_parent_code(code) if parent == "" else parent,
            weight=Decimal(str(weight)) if weight is not None else None,
            schedule=schedule,
            **extra,
        )

    return _make


@pytest.fixture
def progress_items(make_item) -> list[Item]:
    """One parent with two weighted leaves at 100% and 50% progress."""
    return [
        make_item("1", 100),
        make_item("1.1", 60, progress=100),
        make_item("1.2", 40, progress=50),
    ]


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(weight_policy=WeightPolicy.STRICT)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def manager(store: InMemoryStore, engine_config: EngineConfig) -> VersionManager:
    return VersionManager(store, engine_config)


@pytest_asyncio.fixture()
async def version(manager: VersionManager) -> Version:
    """Empty ballpark version of a fresh project."""
    project = await manager.create_project("PRJ-001", "Test Tower", project_id="prj-001")
    return await manager.create_version(project.id, VersionMode.BALLPARK)
