"""WBS/RAB item ingestion for WBSCalc.

Parses CSV/XLSX item sheets into Item records and writes them into a version.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import TYPE_CHECKING
from uuid import UUID

import pandas as pd

from wbscalc.config import ImportConfig, get_config
from wbscalc.exceptions import InvalidScheduleValue
from wbscalc.models import Item, ScheduleValue
from wbscalc.wbs.schedule import parse_schedule
from wbscalc.wbs.tree import code_sort_key, derive_parent_code

if TYPE_CHECKING:
    from wbscalc.versions.manager import VersionManager

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"Code", "Name"}

# Read as text so "1.10" does not become the float 1.1
TEXT_COLUMNS = {"Code": str, "Parent": str, "Unit": str, "Notes": str}


def read_items(
    file_path: Path,
    config: ImportConfig | None = None,
) -> tuple[list[Item], list[str]]:
    """Parse an item sheet from CSV or XLSX.

    Expected columns:
    - Code (required), Name (required)
    - Parent (optional; derived from the code prefix when the column is absent)
    - Weight, Sort Order (optional)
    - Quantity, Unit, Unit Cost (optional, RAB)
    - Start, Duration, Progress (optional, schedule)
    - Notes (optional)

    Args:
        file_path: Path to CSV or XLSX file
        config: Size and row limits (defaults to application config)

    Returns:
        Tuple of (items, error_messages); rows with errors are skipped

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file format, size or columns are invalid
    """
    if config is None:
        config = get_config().imports

    if not file_path.exists():
        raise FileNotFoundError(f"Item file not found: {file_path}")

    file_size_mb = file_path.stat().st_size / (1024 * 1024)
    if file_size_mb > config.max_file_size_mb:
        raise ValueError(
            f"File too large ({file_size_mb:.1f}MB). Maximum allowed: {config.max_file_size_mb}MB"
        )

    suffix = file_path.suffix.lower()
    if suffix == ".csv":
        df = pd.read_csv(file_path, dtype=TEXT_COLUMNS)
    elif suffix in (".xlsx", ".xls"):
        df = pd.read_excel(file_path, dtype=TEXT_COLUMNS)
    else:
        raise ValueError(f"Unsupported file format: {file_path.suffix}. Use CSV or XLSX.")

    if len(df) > config.max_rows:
        raise ValueError(f"Too many rows ({len(df):,}). Maximum allowed: {config.max_rows:,}")

    df.columns = [str(col).strip() for col in df.columns]
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"Missing required columns: {sorted(missing)}")

    has_parent = "Parent" in df.columns
    items: list[Item] = []
    seen: set[str] = set()
    errors: list[str] = []

    for idx, row in df.iterrows():
        line = idx + 2  # 1-based, after the header row
        try:
            code = _get_str(row, "Code")
            name = _get_str(row, "Name")
            if not code or not name:
                errors.append(f"Row {line}: Missing code or name")
                continue
            if code in seen:
                errors.append(f"Row {line}: Duplicate code '{code}' - skipped")
                continue

            parent_code = _get_str(row, "Parent") if has_parent else derive_parent_code(code)

            schedule = None
            start = _get_date(row, "Start")
            duration = _get_int(row, "Duration")
            progress = _get_decimal(row, "Progress")
            if start is not None or duration is not None or progress is not None:
                schedule = ScheduleValue(start=start, duration=duration, progress=progress)

            item = Item(
                code=code,
                name=name,
                parent_code=parent_code,
                weight=_get_decimal(row, "Weight"),
                sort_order=_get_int(row, "Sort Order"),
                quantity=_get_decimal(row, "Quantity"),
                unit=_get_str(row, "Unit"),
                unit_cost=_get_decimal(row, "Unit Cost"),
                notes=_get_str(row, "Notes"),
                schedule=schedule,
            )
            parse_schedule(item)

        except (ValueError, InvalidOperation, InvalidScheduleValue) as e:
            errors.append(f"Row {line}: {e}")
            continue

        seen.add(code)
        items.append(item)

    logger.info("Read %d items from %s (%d rows rejected)", len(items), file_path.name, len(errors))
    return items, errors


async def import_items(
    manager: VersionManager,
    version_id: UUID,
    file_path: Path,
    config: ImportConfig | None = None,
) -> tuple[int, list[str]]:
    """Import an item sheet into a version (insert new codes, update existing).

    Rows whose parent is neither in the sheet nor in the version, and rows
    that would move an existing code under another parent, are reported and
    skipped. The remaining rows are written as one validated batch, so a
    weight overflow under the strict policy rejects the whole import.

    Returns:
        Tuple of (written_count, error_messages)
    """
    items, errors = read_items(file_path, config)
    existing = {item.code: item for item in await manager.get_items(version_id)}

    accepted: list[Item] = []
    for item in items:
        current = existing.get(item.code)
        if current is None:
            accepted.append(item)
        elif current.parent_code != item.parent_code:
            errors.append(
                f"{item.code}: Parent changed from {current.parent_code!r} to "
                f"{item.parent_code!r} - skipped"
            )
        else:
            accepted.append(item.model_copy(update={"id": current.id, "revision": current.revision}))

    ordered, unresolved = _parents_first(accepted, set(existing))
    for item in unresolved:
        errors.append(f"{item.code}: Parent '{item.parent_code}' not found (or cyclic) - skipped")

    stored = await manager.put_items(version_id, ordered)
    logger.info("Imported %d items into version %s", len(stored), version_id)
    return len(stored), errors


def _parents_first(items: list[Item], known: set[str]) -> tuple[list[Item], list[Item]]:
    """Order items so every parent precedes its children.

    Returns the ordered items and those whose parent never resolves.
    """
    known = set(known)
    pending = sorted(items, key=lambda item: code_sort_key(item.code))
    ordered: list[Item] = []
    while pending:
        remaining = []
        for item in pending:
            if item.parent_code is None or item.parent_code in known:
                ordered.append(item)
                known.add(item.code)
            else:
                remaining.append(item)
        if len(remaining) == len(pending):
            return ordered, remaining
        pending = remaining
    return ordered, []


def _get_str(row: pd.Series, col_name: str) -> str | None:
    """Get stripped string value from row, None when blank."""
    if col_name in row and pd.notna(row[col_name]):
        value = str(row[col_name]).strip()
        return value or None
    return None


def _get_decimal(row: pd.Series, col_name: str) -> Decimal | None:
    """Get Decimal value from row ("40", "40.5", "40%")."""
    text = _get_str(row, col_name)
    if text is None:
        return None
    try:
        return Decimal(text.rstrip("%").replace(",", ""))
    except InvalidOperation:
        raise ValueError(f"{col_name} is not a number: {text!r}") from None


def _get_int(row: pd.Series, col_name: str) -> int | None:
    value = _get_decimal(row, col_name)
    if value is None:
        return None
    if value != value.to_integral_value():
        raise ValueError(f"{col_name} must be a whole number: {value}")
    return int(value)


def _get_date(row: pd.Series, col_name: str) -> date | str | None:
    """Excel cells arrive as timestamps, CSV cells as text."""
    if col_name not in row or not pd.notna(row[col_name]):
        return None
    value = row[col_name]
    if isinstance(value, datetime):  # includes pd.Timestamp
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    # Accept "2025-03-03 00:00:00" as written by spreadsheet tools
    return text.split(" ")[0] if text else None
