"""File-backed record store for parts, view history and favorites.

Layout under ``storage_dir``::

    parts.json      array of part documents
    history.json    array of part ids, most recent first, at most 50
    favorites.json  array of part ids
    meta.json       {"lastId": n} - highest id ever issued

Each mutation builds the new collection, writes it to disk (temp file +
rename) and only then swaps it into memory, so a failed write leaves the
in-memory state equal to what is on disk.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from datetime import datetime
from functools import wraps
from pathlib import Path
from threading import RLock
from typing import Any, Iterable, Mapping

from exceptions import InvalidFormatError, NotFoundError, StorageIOError, ValidationError
from modules.spare_parts import query
from modules.spare_parts.models import Part, clean_part_data, format_timestamp, parse_timestamp, utcnow

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50

PARTS_FILE = "parts.json"
HISTORY_FILE = "history.json"
FAVORITES_FILE = "favorites.json"
META_FILE = "meta.json"


def _copy(part: Part) -> Part:
    return replace(part, compatible_cars=list(part.compatible_cars) if part.compatible_cars else None)


def _synchronized(method):
    """Run a public store method under the lock, after lazy initialization."""

    @wraps(method)
    def wrapped(self, *args, **kwargs):
        with self._lock:
            self.initialize()
            return method(self, *args, **kwargs)

    return wrapped


def _indexed_errors(index: int, errors: Mapping[str, str]) -> dict[str, str]:
    return {f"{index}.{field}": message for field, message in errors.items()}


class PartStore:
    """Authoritative owner of the part collection and its id indexes."""

    def __init__(self, storage_dir: str | Path):
        self.storage_dir = Path(storage_dir)
        self.parts_path = self.storage_dir / PARTS_FILE
        self.history_path = self.storage_dir / HISTORY_FILE
        self.favorites_path = self.storage_dir / FAVORITES_FILE
        self.meta_path = self.storage_dir / META_FILE

        self._lock = RLock()
        self._initialized = False
        self._parts: list[Part] = []
        self._history: list[int] = []
        self._favorites: list[int] = []
        self._last_id = 0

    # ------------------------------------------------------------------
    # Loading / persistence
    # ------------------------------------------------------------------
    def initialize(self) -> None:
        """Create the storage directory and load all documents. Idempotent."""
        with self._lock:
            if self._initialized:
                return
            try:
                self.storage_dir.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                logger.exception("Cannot create storage directory %s", self.storage_dir)
                raise StorageIOError(f"Cannot create storage directory: {exc}") from exc

            parts = []
            for index, raw in enumerate(self._load_list(self.parts_path)):
                if not isinstance(raw, dict):
                    raise StorageIOError(f"{PARTS_FILE}: record {index} is not an object")
                try:
                    parts.append(Part.from_dict(raw))
                except ValidationError as exc:
                    raise StorageIOError(f"{PARTS_FILE}: record {index} is corrupt ({exc})") from exc

            ids = [p.id for p in parts]
            if len(set(ids)) != len(ids):
                raise StorageIOError(f"{PARTS_FILE} contains duplicate ids")

            self._parts = parts
            self._history = list(dict.fromkeys(self._load_ids(self.history_path)))[:HISTORY_LIMIT]
            self._favorites = list(dict.fromkeys(self._load_ids(self.favorites_path)))
            self._last_id = max([self._load_last_id(), *ids, 0])
            self._initialized = True
            logger.info("Part store ready at %s (%d parts)", self.storage_dir, len(parts))

    def _read_json(self, path: Path, default: Any) -> Any:
        if not path.exists():
            self._write_json(path, default)
            return default
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as exc:
            logger.exception("Failed to read %s", path)
            raise StorageIOError(f"Could not read {path.name}: {exc}") from exc
        if not raw.strip():
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Corrupt JSON in %s: %s", path, exc)
            raise StorageIOError(f"{path.name} is not valid JSON: {exc}") from exc

    def _load_list(self, path: Path) -> list:
        doc = self._read_json(path, [])
        if not isinstance(doc, list):
            raise StorageIOError(f"{path.name} must contain a JSON array")
        return doc

    def _load_ids(self, path: Path) -> list[int]:
        ids = self._load_list(path)
        if not all(isinstance(i, int) and not isinstance(i, bool) for i in ids):
            raise StorageIOError(f"{path.name} must contain integer ids only")
        return ids

    def _load_last_id(self) -> int:
        doc = self._read_json(self.meta_path, {"lastId": 0})
        last_id = doc.get("lastId", 0) if isinstance(doc, dict) else None
        if not isinstance(last_id, int):
            raise StorageIOError(f"{META_FILE} has no integer lastId")
        return last_id

    def _write_json(self, path: Path, payload: Any) -> None:
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
            temp_path.replace(path)
        except OSError as exc:
            logger.exception("Failed to write %s", path)
            raise StorageIOError(f"Could not write {path.name}: {exc}") from exc

    def _commit(
        self,
        parts: list[Part] | None = None,
        history: list[int] | None = None,
        favorites: list[int] | None = None,
        last_id: int | None = None,
    ) -> None:
        """Write each given collection, swapping it into memory once it is on disk."""
        if last_id is not None and last_id != self._last_id:
            self._write_json(self.meta_path, {"lastId": last_id})
            self._last_id = last_id
        if parts is not None:
            self._write_json(self.parts_path, [p.to_dict() for p in parts])
            self._parts = parts
        if history is not None:
            self._write_json(self.history_path, history)
            self._history = history
        if favorites is not None:
            self._write_json(self.favorites_path, favorites)
            self._favorites = favorites

    def _index_of(self, part_id: int) -> int:
        for index, part in enumerate(self._parts):
            if part.id == part_id:
                return index
        raise NotFoundError(f"Part with id {part_id} not found")

    def _resolve(self, ids: Iterable[int]) -> list[Part]:
        by_id = {p.id: p for p in self._parts}
        return [_copy(by_id[i]) for i in ids if i in by_id]

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------
    @_synchronized
    def get_all_parts(self) -> list[Part]:
        return [_copy(p) for p in self._parts]

    @_synchronized
    def get_part(self, part_id: int) -> Part:
        return _copy(self._parts[self._index_of(part_id)])

    @_synchronized
    def add_part(self, data: Mapping[str, Any]) -> int:
        """Validate and append a new part; returns its id (never reused)."""
        cleaned = clean_part_data(data)
        now = utcnow()
        part_id = self._last_id + 1
        part = Part.from_clean(part_id, cleaned, now, now)
        self._commit(parts=self._parts + [part], last_id=part_id)
        logger.info("Added part %s (%s)", part_id, part.article_number)
        return part_id

    @_synchronized
    def add_parts(self, records: Iterable[Mapping[str, Any]]) -> list[int]:
        """Add several parts with one write. All records are validated first."""
        new_parts = self._build_parts(records, self._last_id)
        if new_parts:
            self._commit(parts=self._parts + new_parts, last_id=new_parts[-1].id)
        logger.info("Added %d parts in bulk", len(new_parts))
        return [p.id for p in new_parts]

    def _build_parts(self, records: Iterable[Mapping[str, Any]], last_id: int) -> list[Part]:
        errors: dict[str, str] = {}
        built: list[Part] = []
        now = utcnow()
        for index, record in enumerate(records):
            try:
                cleaned = clean_part_data(record)
            except ValidationError as exc:
                errors.update(_indexed_errors(index, exc.errors))
                continue
            created_at = parse_timestamp(record.get("createdAt")) or now
            updated_at = parse_timestamp(record.get("updatedAt")) or created_at
            last_id += 1
            built.append(Part.from_clean(last_id, cleaned, created_at, updated_at))
        if errors:
            raise ValidationError(errors)
        return built

    @_synchronized
    def update_part(self, part: Part) -> Part:
        """Replace the stored record with ``part.id``; createdAt is kept, updatedAt refreshed."""
        index = self._index_of(part.id)
        stored = self._parts[index]
        cleaned = clean_part_data(part.to_dict())
        updated = Part.from_clean(part.id, cleaned, stored.created_at, utcnow())
        parts = list(self._parts)
        parts[index] = updated
        self._commit(parts=parts)
        logger.info("Updated part %s", part.id)
        return _copy(updated)

    @_synchronized
    def delete_part(self, part_id: int) -> None:
        """Remove a part and drop its id from history and favorites."""
        index = self._index_of(part_id)
        parts = self._parts[:index] + self._parts[index + 1:]
        self._commit(
            parts=parts,
            history=[i for i in self._history if i != part_id],
            favorites=[i for i in self._favorites if i != part_id],
        )
        logger.info("Deleted part %s", part_id)

    @_synchronized
    def clear_all_parts(self) -> None:
        """Remove every part; history and favorites are emptied with them."""
        self._commit(parts=[], history=[], favorites=[])
        logger.info("Cleared all parts")

    @_synchronized
    def replace_all(self, records: Iterable[Mapping[str, Any]]) -> list[int]:
        """Swap in a new collection built from ``records`` with fresh ids.

        The new collection is fully validated before anything is written, so
        there is never an empty-store window on failure.
        """
        new_parts = self._build_parts(records, self._last_id)
        last_id = new_parts[-1].id if new_parts else self._last_id
        self._commit(parts=new_parts, history=[], favorites=[], last_id=last_id)
        logger.info("Replaced store contents with %d parts", len(new_parts))
        return [p.id for p in new_parts]

    # ------------------------------------------------------------------
    # Lookup / search
    # ------------------------------------------------------------------
    @_synchronized
    def find_by_article(self, article_number: str) -> Part | None:
        """Exact article match, ignoring case and surrounding whitespace."""
        wanted = (article_number or "").strip().casefold()
        if not wanted:
            return None
        for part in self._parts:
            if part.article_number.casefold() == wanted:
                return _copy(part)
        return None

    @_synchronized
    def search_parts(self, params: query.SearchParams) -> list[Part]:
        return [_copy(p) for p in query.search(self._parts, params)]

    @_synchronized
    def get_unique_categories(self) -> list[str]:
        return query.unique_values(p.category for p in self._parts)

    @_synchronized
    def get_unique_manufacturers(self) -> list[str]:
        return query.unique_values(p.manufacturer for p in self._parts)

    @_synchronized
    def get_unique_car_models(self) -> list[str]:
        cars = (car for p in self._parts for car in p.compatible_cars or ())
        return sorted(query.unique_values(cars), key=str.casefold)

    @_synchronized
    def get_analogs(self, part: Part) -> list[Part]:
        return [_copy(p) for p in query.find_analogs(self._parts, part)]

    @_synchronized
    def find_compatible_parts(self, part: Part) -> list[Part]:
        return [_copy(p) for p in query.find_compatible(self._parts, part)]

    @_synchronized
    def get_inventory_summary(self) -> query.InventorySummary:
        return query.summarize([_copy(p) for p in self._parts])

    # ------------------------------------------------------------------
    # View history
    # ------------------------------------------------------------------
    @_synchronized
    def add_to_view_history(self, part_id: int) -> None:
        self._index_of(part_id)
        history = [part_id] + [i for i in self._history if i != part_id]
        self._commit(history=history[:HISTORY_LIMIT])

    @_synchronized
    def get_view_history(self) -> list[Part]:
        return self._resolve(self._history)

    @_synchronized
    def clear_view_history(self) -> None:
        self._commit(history=[])

    # ------------------------------------------------------------------
    # Favorites
    # ------------------------------------------------------------------
    @_synchronized
    def add_to_favorites(self, part_id: int) -> None:
        self._index_of(part_id)
        if part_id not in self._favorites:
            self._commit(favorites=self._favorites + [part_id])

    @_synchronized
    def remove_from_favorites(self, part_id: int) -> None:
        if part_id in self._favorites:
            self._commit(favorites=[i for i in self._favorites if i != part_id])

    @_synchronized
    def get_favorites(self) -> list[Part]:
        return self._resolve(self._favorites)

    @_synchronized
    def is_favorite(self, part_id: int) -> bool:
        return part_id in self._favorites

    # ------------------------------------------------------------------
    # Full-state export / import
    # ------------------------------------------------------------------
    @_synchronized
    def export_state(self, exported_at: datetime | None = None) -> dict[str, Any]:
        return {
            "parts": [p.to_dict() for p in self._parts],
            "viewHistory": list(self._history),
            "favorites": list(self._favorites),
            "exportedAt": format_timestamp(exported_at or utcnow()),
        }

    @_synchronized
    def import_state(self, doc: Any) -> int:
        """Replace parts, history and favorites from an ``export_state`` document.

        Part ids are kept so history and favorites stay meaningful; ids that
        do not resolve to an imported part are dropped.
        """
        if not isinstance(doc, dict) or not isinstance(doc.get("parts"), list):
            raise InvalidFormatError("Export document must contain a 'parts' array")

        parts: list[Part] = []
        for index, raw in enumerate(doc["parts"]):
            if not isinstance(raw, dict):
                raise InvalidFormatError(f"Part {index} is not an object")
            try:
                parts.append(Part.from_dict(raw))
            except ValidationError as exc:
                raise InvalidFormatError(f"Part {index} is invalid: {exc}") from exc
        ids = [p.id for p in parts]
        if len(set(ids)) != len(ids):
            raise InvalidFormatError("Export document contains duplicate part ids")

        known = set(ids)

        def id_list(key: str) -> list[int]:
            value = doc.get(key)
            if not isinstance(value, list):
                return []
            return list(dict.fromkeys(
                i for i in value if isinstance(i, int) and not isinstance(i, bool) and i in known
            ))

        self._commit(
            parts=parts,
            history=id_list("viewHistory")[:HISTORY_LIMIT],
            favorites=id_list("favorites"),
            last_id=max([self._last_id, *ids]),
        )
        logger.info("Imported full state with %d parts", len(parts))
        return len(parts)
