"""Backup snapshots, restore and CSV / full-state import-export.

The service never keeps its own copy of the parts: every operation goes
through the public ``PartStore`` API.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from werkzeug.utils import secure_filename

from exceptions import InvalidFormatError, NotFoundError, StorageIOError, ValidationError
from modules.backup import csv_format
from modules.spare_parts.models import clean_part_data, format_timestamp, utcnow
from modules.spare_parts.store import PartStore

logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0"
FULL_EXPORT_PREFIX = "sklad_export_"

_LABEL_UNSAFE = re.compile(r"[^a-zA-Z0-9_-]")
_NAME_DATE = re.compile(r"_(\d{4})-(\d{2})-(\d{2})T(\d{2})-(\d{2})-(\d{2})(?:-(\d{3}))?")


def file_timestamp(moment: datetime) -> str:
    """ISO timestamp with ':' and '.' replaced, e.g. 2025-05-11T20-47-48-123Z."""
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H-%M-%S-") + f"{moment.microsecond // 1000:03d}Z"


def date_from_name(name: str) -> datetime | None:
    match = _NAME_DATE.search(name)
    if not match:
        return None
    year, month, day, hour, minute, second, millis = match.groups()
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second),
            int(millis or 0) * 1000, tzinfo=timezone.utc,
        )
    except ValueError:
        return None


@dataclass
class BackupInfo:
    name: str
    path: Path
    date: datetime

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "path": str(self.path), "date": format_timestamp(self.date)}


@dataclass
class ImportResult:
    imported: int
    skipped: int

    def to_dict(self) -> dict[str, int]:
        return {"imported": self.imported, "skipped": self.skipped}


class BackupService:
    """Point-in-time snapshots and tabular exports of a ``PartStore``."""

    def __init__(self, store: PartStore, backup_dir: str | Path):
        self.store = store
        self.backup_dir = Path(backup_dir)

    def initialize(self) -> None:
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.exception("Cannot create backup directory %s", self.backup_dir)
            raise StorageIOError(f"Cannot create backup directory: {exc}") from exc

    # ------------------------------------------------------------------
    # File helpers
    # ------------------------------------------------------------------
    def _new_path(self, stem: str, suffix: str) -> Path:
        self.initialize()
        path = self.backup_dir / f"{stem}{suffix}"
        counter = 1
        while path.exists():
            path = self.backup_dir / f"{stem}_{counter}{suffix}"
            counter += 1
        return path

    def _write(self, path: Path, content: str) -> None:
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            logger.exception("Failed to write %s", path)
            raise StorageIOError(f"Could not write {path.name}: {exc}") from exc

    def _read(self, path: str | Path, encoding: str = "utf-8") -> str:
        path = Path(path)
        if not path.is_file():
            raise NotFoundError(f"File not found: {path.name}")
        try:
            return path.read_text(encoding=encoding)
        except UnicodeDecodeError as exc:
            raise InvalidFormatError(f"{path.name} is not UTF-8 text") from exc
        except OSError as exc:
            logger.exception("Failed to read %s", path)
            raise StorageIOError(f"Could not read {path.name}: {exc}") from exc

    def _read_json(self, path: str | Path) -> Any:
        try:
            return json.loads(self._read(path))
        except json.JSONDecodeError as exc:
            raise InvalidFormatError(f"{Path(path).name} is not valid JSON: {exc}") from exc

    def resolve(self, name: str) -> Path:
        """Map a user-supplied file name to an existing file inside backup_dir."""
        safe = secure_filename(name or "")
        path = self.backup_dir / safe
        if not safe or not path.is_file():
            raise NotFoundError(f"Backup file not found: {name}")
        return path

    # ------------------------------------------------------------------
    # JSON snapshots
    # ------------------------------------------------------------------
    def create_backup(self, label: str = "") -> Path:
        """Snapshot all parts to ``<label>_<timestamp>.json``; returns the path."""
        now = utcnow()
        safe_label = _LABEL_UNSAFE.sub("_", (label or "").strip()).strip("_")
        stem = f"{safe_label or 'backup'}_{file_timestamp(now)}"
        path = self._new_path(stem, ".json")

        parts = self.store.get_all_parts()
        snapshot = {
            "version": BACKUP_VERSION,
            "timestamp": format_timestamp(now),
            "parts": [p.to_dict() for p in parts],
        }
        self._write(path, json.dumps(snapshot, ensure_ascii=False, indent=2))
        logger.info("Created backup %s with %d parts", path.name, len(parts))
        return path

    def get_backups_list(self) -> list[BackupInfo]:
        """JSON snapshots in backup_dir, newest first."""
        self.initialize()
        backups = []
        for path in self.backup_dir.glob("*.json"):
            if path.name.startswith(FULL_EXPORT_PREFIX):
                continue
            date = date_from_name(path.name)
            if date is None:
                try:
                    date = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
                except OSError as exc:
                    raise StorageIOError(f"Could not stat {path.name}: {exc}") from exc
                logger.warning("No timestamp in backup name %s, using file mtime", path.name)
            backups.append(BackupInfo(name=path.name, path=path, date=date))
        backups.sort(key=lambda b: (b.date, b.name), reverse=True)
        return backups

    def restore_from_backup(self, path: str | Path) -> int:
        """Replace the live collection with the snapshot's parts.

        The snapshot is parsed and validated completely before the store is
        touched. Parts get fresh ids; history and favorites are cleared.
        """
        doc = self._read_json(path)
        if not isinstance(doc, dict) or not isinstance(doc.get("parts"), list):
            raise InvalidFormatError("Backup must contain a 'parts' array")
        if not all(isinstance(p, dict) for p in doc["parts"]):
            raise InvalidFormatError("Backup 'parts' must contain objects only")
        try:
            ids = self.store.replace_all(doc["parts"])
        except ValidationError as exc:
            raise InvalidFormatError(f"Backup contains invalid parts: {exc}") from exc
        logger.info("Restored %d parts from %s", len(ids), Path(path).name)
        return len(ids)

    def delete_backup(self, path: str | Path) -> None:
        path = Path(path)
        if not path.is_file():
            raise NotFoundError(f"Backup file not found: {path.name}")
        try:
            path.unlink()
        except OSError as exc:
            logger.exception("Failed to delete %s", path)
            raise StorageIOError(f"Could not delete {path.name}: {exc}") from exc
        logger.info("Deleted backup %s", path.name)

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------
    def export_to_csv(self) -> Path:
        parts = self.store.get_all_parts()
        path = self._new_path(f"parts_export_{file_timestamp(utcnow())}", ".csv")
        self._write(path, csv_format.render_csv(parts))
        logger.info("Exported %d parts to %s", len(parts), path.name)
        return path

    def import_from_csv(self, path: str | Path, replace_existing: bool = False) -> ImportResult:
        """Add (or, with ``replace_existing``, swap in) the parts listed in a CSV file.

        Ids in the file are ignored; every accepted row gets a fresh id.
        """
        parsed = csv_format.parse_csv(self._read(path, encoding="utf-8-sig"))
        for line_no, reason in parsed.skipped:
            logger.warning("CSV row %d skipped: %s", line_no, reason)

        accepted = []
        skipped = len(parsed.skipped)
        for record in parsed.records:
            try:
                clean_part_data(record)
            except ValidationError as exc:
                logger.warning("CSV part %s skipped: %s", record.get("articleNumber"), exc)
                skipped += 1
                continue
            accepted.append(record)

        if replace_existing:
            if skipped and not accepted:
                raise InvalidFormatError(
                    f"No importable rows in {Path(path).name} ({skipped} skipped); existing parts kept"
                )
            ids = self.store.replace_all(accepted)
        else:
            ids = self.store.add_parts(accepted)
        logger.info("Imported %d parts from %s (%d skipped)", len(ids), Path(path).name, skipped)
        return ImportResult(imported=len(ids), skipped=skipped)

    # ------------------------------------------------------------------
    # Full state (parts + history + favorites)
    # ------------------------------------------------------------------
    def export_data(self) -> Path:
        now = utcnow()
        path = self._new_path(f"{FULL_EXPORT_PREFIX}{file_timestamp(now)}", ".json")
        state = self.store.export_state(exported_at=now)
        self._write(path, json.dumps(state, ensure_ascii=False, indent=2))
        logger.info("Exported full state to %s", path.name)
        return path

    def import_data(self, path: str | Path) -> int:
        return self.store.import_state(self._read_json(path))
