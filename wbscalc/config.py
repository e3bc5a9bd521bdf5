"""Settings for the engine, the SQL store, imports and logging.

Everything comes from environment variables (a ``.env`` file in the working
directory is loaded first). Only ``DATABASE_URL`` is required.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from dotenv import load_dotenv

from wbscalc.models import Granularity, WeightPolicy

load_dotenv()

E = TypeVar("E", bound=Enum)

MAX_PROGRESS_PLACES = 6


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, "true" if default else "false").strip().lower() in ("1", "true", "yes")


def _env_enum(name: str, enum_type: type[E], default: E) -> E:
    """Parse an enum setting case-insensitively; unknown values raise ValueError."""
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return enum_type(raw.strip().lower())


@dataclass
class DBConfig:
    """SQL store connection (pool settings are ignored for SQLite)."""

    url: str
    pool_size: int = 10
    pool_max_overflow: int = 20
    pool_timeout: int = 30
    echo: bool = False

    @classmethod
    def from_env(cls) -> DBConfig:
        url = os.environ.get("DATABASE_URL")
        if not url:
            raise KeyError(
                "DATABASE_URL environment variable is required. "
                "Example: sqlite+aiosqlite:///./wbscalc.db"
            )
        return cls(
            url=url,
            pool_size=_env_int("DB_POOL_SIZE", 10),
            pool_max_overflow=_env_int("DB_POOL_MAX_OVERFLOW", 20),
            pool_timeout=_env_int("DB_POOL_TIMEOUT", 30),
            echo=_env_bool("DB_ECHO"),
        )


@dataclass
class EngineConfig:
    """Tree/schedule engine behaviour."""

    weight_policy: WeightPolicy = WeightPolicy.STRICT
    progress_places: int = 2  # decimal places in projected views
    scurve_granularity: Granularity = Granularity.DAY

    def __post_init__(self):
        if not 0 <= self.progress_places <= MAX_PROGRESS_PLACES:
            raise ValueError(
                f"progress_places must be between 0 and {MAX_PROGRESS_PLACES}, "
                f"got {self.progress_places}"
            )

    @classmethod
    def from_env(cls) -> EngineConfig:
        return cls(
            weight_policy=_env_enum("WEIGHT_POLICY", WeightPolicy, WeightPolicy.STRICT),
            progress_places=_env_int("PROGRESS_PLACES", 2),
            scurve_granularity=_env_enum("SCURVE_GRANULARITY", Granularity, Granularity.DAY),
        )


@dataclass
class ImportConfig:
    """Limits for CSV/XLSX item sheets."""

    max_file_size_mb: int = 50
    max_rows: int = 50000

    @classmethod
    def from_env(cls) -> ImportConfig:
        return cls(
            max_file_size_mb=_env_int("IMPORT_MAX_FILE_MB", 50),
            max_rows=_env_int("IMPORT_MAX_ROWS", 50000),
        )


@dataclass
class AppConfig:
    """All settings, built once per process by ``get_config()``."""

    db: DBConfig
    engine: EngineConfig = field(default_factory=EngineConfig)
    imports: ImportConfig = field(default_factory=ImportConfig)

    log_level: str = "INFO"
    log_format: str = "text"  # json or text
    log_file: str | None = None

    @classmethod
    def from_env(cls) -> AppConfig:
        """Read every section from the environment.

        Variables:
        - DATABASE_URL (required), DB_POOL_SIZE, DB_POOL_MAX_OVERFLOW,
          DB_POOL_TIMEOUT, DB_ECHO
        - WEIGHT_POLICY: strict | advisory (default strict)
        - PROGRESS_PLACES: 0-6 (default 2)
        - SCURVE_GRANULARITY: day | week (default day)
        - IMPORT_MAX_FILE_MB, IMPORT_MAX_ROWS
        - LOG_LEVEL, JSON_LOGS, LOG_FILE

        Raises:
            KeyError: DATABASE_URL is missing
            ValueError: An enumerated or numeric setting is out of range
        """
        return cls(
            db=DBConfig.from_env(),
            engine=EngineConfig.from_env(),
            imports=ImportConfig.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format="json" if _env_bool("JSON_LOGS") else "text",
            log_file=os.getenv("LOG_FILE") or None,
        )


_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Process-wide settings, read from the environment on first use.

    Raises:
        KeyError: DATABASE_URL is missing
    """
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def reset_config() -> None:
    """Forget the cached settings so the next ``get_config()`` re-reads them."""
    global _config
    _config = None
