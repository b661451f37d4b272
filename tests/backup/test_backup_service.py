import json
import os

import pytest

from exceptions import InvalidFormatError, NotFoundError
from modules.backup.service import FULL_EXPORT_PREFIX, date_from_name, file_timestamp
from modules.spare_parts.models import utcnow

COMPARED = ("articleNumber", "name", "manufacturer", "category", "quantity", "price", "compatibleCars")


def _fingerprint(parts):
    return sorted(tuple(str(p.to_dict()[key]) for key in COMPARED) for p in parts)


def test_create_backup_writes_snapshot(backup_service, store, sample_parts):
    path = backup_service.create_backup("before update!")
    assert path.parent == backup_service.backup_dir
    assert path.name.startswith("before_update_")
    doc = json.loads(path.read_text(encoding="utf-8"))
    assert doc["version"] == "1.0"
    assert len(doc["parts"]) == len(sample_parts)
    assert date_from_name(path.name) is not None


def test_backup_then_restore_round_trip(backup_service, store, sample_parts, part_data):
    before = _fingerprint(store.get_all_parts())
    path = backup_service.create_backup()
    store.add_part(part_data(articleNumber="EXTRA-1"))
    store.delete_part(sample_parts[0])
    store.add_to_favorites(sample_parts[1])

    restored = backup_service.restore_from_backup(path)

    assert restored == len(sample_parts)
    assert _fingerprint(store.get_all_parts()) == before
    assert store.get_favorites() == []


def test_restore_rejects_bad_snapshots(backup_service, store, sample_parts, tmp_path):
    no_parts = tmp_path / "no_parts.json"
    no_parts.write_text(json.dumps({"version": "1.0"}), encoding="utf-8")
    broken = tmp_path / "broken.json"
    broken.write_text("{", encoding="utf-8")
    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps({"parts": [{"name": "x"}]}), encoding="utf-8")

    for path in (no_parts, broken, invalid):
        with pytest.raises(InvalidFormatError):
            backup_service.restore_from_backup(path)
    with pytest.raises(NotFoundError):
        backup_service.restore_from_backup(tmp_path / "missing.json")
    assert len(store.get_all_parts()) == len(sample_parts)


def test_backups_list_is_newest_first(backup_service):
    backup_dir = backup_service.backup_dir
    backup_dir.mkdir(parents=True, exist_ok=True)
    (backup_dir / "a_2024-01-01T10-00-00-000Z.json").write_text("{}", encoding="utf-8")
    (backup_dir / "b_2025-06-01T10-00-00-000Z.json").write_text("{}", encoding="utf-8")
    undated = backup_dir / "manual.json"
    undated.write_text("{}", encoding="utf-8")
    os.utime(undated, (0, 0))
    (backup_dir / f"{FULL_EXPORT_PREFIX}2025-01-01T00-00-00-000Z.json").write_text("{}", encoding="utf-8")
    (backup_dir / "parts_export.csv").write_text("", encoding="utf-8")

    names = [b.name for b in backup_service.get_backups_list()]
    assert names == ["b_2025-06-01T10-00-00-000Z.json", "a_2024-01-01T10-00-00-000Z.json", "manual.json"]


def test_delete_backup(backup_service, sample_parts):
    path = backup_service.create_backup()
    backup_service.delete_backup(path)
    assert not path.exists()
    with pytest.raises(NotFoundError):
        backup_service.delete_backup(path)


def test_resolve_stays_inside_backup_dir(backup_service):
    path = backup_service.create_backup("x")
    assert backup_service.resolve(path.name) == path
    with pytest.raises(NotFoundError):
        backup_service.resolve("../storage/parts.json")
    with pytest.raises(NotFoundError):
        backup_service.resolve("")


def test_csv_round_trip(backup_service, store, sample_parts):
    before = _fingerprint(store.get_all_parts())
    path = backup_service.export_to_csv()
    assert path.name.startswith("parts_export_")
    assert path.suffix == ".csv"

    result = backup_service.import_from_csv(path, replace_existing=True)

    assert result.imported == len(sample_parts)
    assert result.skipped == 0
    assert _fingerprint(store.get_all_parts()) == before
    assert min(p.id for p in store.get_all_parts()) > max(sample_parts)


def test_csv_import_appends_and_skips_invalid_rows(backup_service, store, sample_parts, tmp_path):
    path = tmp_path / "import.csv"
    path.write_text(
        "Артикул,Назва,Ціна,Кількість\n"
        "N-1,New filter,120,2\n"
        "N-2,Free part,0,1\n"
        ",Nameless,5,1\n",
        encoding="utf-8",
    )
    result = backup_service.import_from_csv(path)
    assert result.to_dict() == {"imported": 1, "skipped": 2}
    assert len(store.get_all_parts()) == len(sample_parts) + 1
    assert store.find_by_article("N-1").manufacturer == "Невідомий"


def test_full_state_export_and_import(backup_service, store, sample_parts):
    store.add_to_favorites(sample_parts[0])
    path = backup_service.export_data()
    assert path.name.startswith(FULL_EXPORT_PREFIX)

    store.clear_all_parts()
    assert backup_service.import_data(path) == len(sample_parts)
    assert store.is_favorite(sample_parts[0])


def test_file_timestamp_round_trips_through_name():
    now = utcnow().replace(microsecond=123000)
    assert date_from_name(f"backup_{file_timestamp(now)}.json") == now


def test_csv_replace_with_no_importable_rows_keeps_parts(backup_service, store, sample_parts, tmp_path):
    path = tmp_path / "names_only.csv"
    path.write_text("Артикул,Назва\nN-1,Filter\nN-2,Pump\n", encoding="utf-8")

    with pytest.raises(InvalidFormatError):
        backup_service.import_from_csv(path, replace_existing=True)

    assert [p.id for p in store.get_all_parts()] == sample_parts


def test_csv_append_with_no_importable_rows_reports_skips(backup_service, store, sample_parts, tmp_path):
    path = tmp_path / "names_only.csv"
    path.write_text("Артикул,Назва\nN-1,Filter\n", encoding="utf-8")

    result = backup_service.import_from_csv(path)

    assert result.to_dict() == {"imported": 0, "skipped": 1}
    assert len(store.get_all_parts()) == len(sample_parts)
