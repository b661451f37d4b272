"""CSV layout for part exports and imports.

Export writes a fixed 12-column header. Import locates columns by name
substring, so column order does not matter and optional columns may be
missing.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from typing import Iterable

from exceptions import InvalidFormatError
from modules.spare_parts.models import Part, format_timestamp

HEADER = [
    "ID",
    "Артикул",
    "Назва",
    "Виробник",
    "Категорія",
    "Нова",
    "Кількість",
    "Ціна",
    "Опис",
    "Сумісні автомобілі",
    "Дата створення",
    "Дата оновлення",
]

YES = "Так"
NO = "Ні"

DEFAULT_MANUFACTURER = "Невідомий"
DEFAULT_CATEGORY = "інше"

# record key -> header substring used to find the column
COLUMN_KEYS = {
    "articleNumber": "Артикул",
    "name": "Назва",
    "manufacturer": "Виробник",
    "category": "Категорія",
    "isNew": "Нова",
    "quantity": "Кількість",
    "price": "Ціна",
    "description": "Опис",
    "compatibleCars": "Сумісні",
    "createdAt": "Дата створення",
    "updatedAt": "Дата оновлення",
}
REQUIRED_COLUMNS = ("articleNumber", "name")


def part_row(part: Part) -> list:
    return [
        part.id,
        part.article_number,
        part.name,
        part.manufacturer,
        part.category or "",
        YES if part.is_new else NO,
        part.quantity,
        part.price,
        part.description or "",
        ", ".join(part.compatible_cars) if part.compatible_cars else "",
        format_timestamp(part.created_at),
        format_timestamp(part.updated_at),
    ]


def render_csv(parts: Iterable[Part]) -> str:
    """Header plus one row per part; strings quoted, inner quotes doubled."""
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n", quoting=csv.QUOTE_NONNUMERIC)
    writer.writerow(HEADER)
    for part in parts:
        writer.writerow(part_row(part))
    return "\ufeff" + out.getvalue()


@dataclass
class ParsedCSV:
    records: list[dict] = field(default_factory=list)
    skipped: list[tuple[int, str]] = field(default_factory=list)


def _locate_columns(header: list[str]) -> dict[str, int]:
    columns = {}
    for key, needle in COLUMN_KEYS.items():
        for index, title in enumerate(header):
            if needle in title:
                columns[key] = index
                break
    return columns


def _parse_int(raw: str) -> int:
    try:
        return int(float(raw.replace(",", ".")))
    except (ValueError, OverflowError):
        return 0


def _parse_float(raw: str) -> float:
    try:
        return float(raw.replace(",", "."))
    except ValueError:
        return 0.0


def parse_csv(text: str) -> ParsedCSV:
    """Parse exported CSV text into part payloads (camelCase keys).

    Rows without an article number or a name are reported in ``skipped``
    with their row number (the header is row 1). Blank lines are ignored.
    """
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")))
    rows = [row for row in reader if any(cell.strip() for cell in row)]
    if not rows:
        raise InvalidFormatError("CSV file contains no data")

    header = [title.strip() for title in rows[0]]
    columns = _locate_columns(header)
    missing = [COLUMN_KEYS[key] for key in REQUIRED_COLUMNS if key not in columns]
    if missing:
        raise InvalidFormatError(f"CSV file is missing required columns: {', '.join(missing)}")

    parsed = ParsedCSV()
    for line_no, row in enumerate(rows[1:], start=2):

        def cell(key: str) -> str:
            index = columns.get(key)
            if index is None or index >= len(row):
                return ""
            return row[index].strip()

        article, name = cell("articleNumber"), cell("name")
        if not article or not name:
            parsed.skipped.append((line_no, "missing article number or name"))
            continue

        cars = [car.strip() for car in cell("compatibleCars").split(",") if car.strip()]
        record = {
            "articleNumber": article,
            "name": name,
            "manufacturer": cell("manufacturer") or DEFAULT_MANUFACTURER,
            "category": cell("category") or DEFAULT_CATEGORY,
            "isNew": YES.casefold() in cell("isNew").casefold(),
            "quantity": _parse_int(cell("quantity")),
            "price": _parse_float(cell("price")),
            "description": cell("description") or None,
            "compatibleCars": cars or None,
        }
        for key in ("createdAt", "updatedAt"):
            if cell(key):
                record[key] = cell(key)
        parsed.records.append(record)
    return parsed
