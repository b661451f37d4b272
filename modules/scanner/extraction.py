"""Best-effort part fields from OCR text.

``extract_part_info`` is a pure function of its input. Each field is either
absent (``None``) or an ``ExtractedField`` with the value and the line it
came from. Callers decide how to fill the gaps; ``ExtractedPart.to_draft``
applies the usual placeholders.

Passes, per field, first match wins:
  1. a labeled line ("Артикул: ...", "Price: ...") for that field;
  2. the field's pattern over the unlabeled lines, top to bottom.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Callable

from modules.spare_parts.models import utcnow

CATEGORIES = (
    "двигун",
    "трансмісія",
    "гальма",
    "підвіска",
    "кузов",
    "електрика",
    "освітлення",
    "інтер'єр",
)
DEFAULT_CATEGORY = "інше"
DEFAULT_MANUFACTURER = "Невідомий"

LABELS = {
    "article_number": ("артикул", "article", "art", "part no", "part number", "sku"),
    "name": ("назва", "name"),
    "manufacturer": ("виробник", "manufacturer", "brand"),
    "price": ("ціна", "price"),
    "category": ("категорія", "category"),
}

CURRENCY_TOKENS = {"UAH", "USD", "EUR", "ГРН"}

_LABELED_LINE = re.compile(r"^\s*([^:]{2,20}?)\s*:\s*(.+?)\s*$")
ARTICLE_PATTERN = re.compile(
    r"(?<![\w-])(?=[A-Z0-9-]*\d)[A-Z0-9][A-Z0-9-]{4,14}(?![\w-])", re.IGNORECASE
)
NAME_PATTERN = re.compile(
    r"[A-ZА-ЯІЇЄҐ][a-zа-яіїєґ0-9\s\-.']{2,}(?:\s[A-ZА-ЯІЇЄҐ][a-zа-яіїєґ0-9\s\-.']{2,})*"
)
MANUFACTURER_PATTERN = re.compile(r"\b[A-Z][A-Z0-9]{2,19}\b")
_NUMBER = r"(\d+(?:[.,]\d{1,2})?)"
PRICE_WITH_CURRENCY = (
    re.compile(_NUMBER + r"\s?(?:грн|₴|uah|eur|€|usd|\$)", re.IGNORECASE),
    re.compile(r"(?:₴|€|\$)\s?" + _NUMBER),
)
PRICE_PLAIN = re.compile(r"(?<![\w.,-])" + _NUMBER + r"(?![\w,-]|\.\d)")
CATEGORY_PATTERN = re.compile("|".join(re.escape(c) for c in CATEGORIES), re.IGNORECASE)

TextRecognizer = Callable[[str], str]


@dataclass(frozen=True)
class ExtractedField:
    value: Any
    line: str


@dataclass(frozen=True)
class ExtractedPart:
    article_number: ExtractedField | None = None
    name: ExtractedField | None = None
    manufacturer: ExtractedField | None = None
    price: ExtractedField | None = None
    category: ExtractedField | None = None

    def found_fields(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]

    def value(self, field_name: str) -> Any:
        found = getattr(self, field_name)
        return found.value if found is not None else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "articleNumber": self.value("article_number"),
            "name": self.value("name"),
            "manufacturer": self.value("manufacturer"),
            "price": self.value("price"),
            "category": self.value("category"),
            "found": self.found_fields(),
        }

    def to_draft(self, now: datetime | None = None) -> dict[str, Any]:
        """Form defaults for a new part; missing fields get placeholders."""
        now = now or utcnow()
        return {
            "articleNumber": self.value("article_number") or f"TEMP-{now:%Y%m%d%H%M%S}",
            "name": self.value("name") or "",
            "manufacturer": self.value("manufacturer") or DEFAULT_MANUFACTURER,
            "category": self.value("category") or DEFAULT_CATEGORY,
            "price": self.value("price"),
            "quantity": 1,
            "isNew": True,
            "description": None,
            "photoPath": None,
            "compatibleCars": None,
        }


def _label_field(label: str) -> str | None:
    label = label.strip().casefold().rstrip(".")
    for field_name, names in LABELS.items():
        if label in names:
            return field_name
    return None


def _split_lines(text: str) -> tuple[dict[str, tuple[str, str]], list[str]]:
    labeled: dict[str, tuple[str, str]] = {}
    free: list[str] = []
    for raw in (text or "").splitlines():
        line = raw.strip()
        if not line:
            continue
        match = _LABELED_LINE.match(line)
        field_name = _label_field(match.group(1)) if match else None
        if field_name is None:
            free.append(line)
        elif field_name not in labeled:
            labeled[field_name] = (match.group(2), line)
    return labeled, free


def _first(lines: list[str], finder: Callable[[str], Any]) -> ExtractedField | None:
    for line in lines:
        value = finder(line)
        if value is not None:
            return ExtractedField(value, line)
    return None


def _find_article(line: str) -> str | None:
    match = ARTICLE_PATTERN.search(line)
    return match.group(0) if match else None


def _name_finder(article: str | None) -> Callable[[str], str | None]:
    def find(line: str) -> str | None:
        if article and article.casefold() in line.casefold():
            return None
        match = NAME_PATTERN.search(line)
        return match.group(0).strip() if match else None

    return find


def _manufacturer_finder(article: str | None) -> Callable[[str], str | None]:
    def find(line: str) -> str | None:
        if article and article.casefold() in line.casefold():
            return None
        for match in MANUFACTURER_PATTERN.finditer(line):
            token = match.group(0)
            if token in CURRENCY_TOKENS:
                continue
            if article and (token in article or article in token):
                continue
            return token
        return None

    return find


def _to_price(raw: str) -> float | None:
    value = float(raw.replace(",", "."))
    return value if value > 0 else None


def _find_price_with_currency(line: str) -> float | None:
    for pattern in PRICE_WITH_CURRENCY:
        match = pattern.search(line)
        if match:
            return _to_price(match.group(1))
    return None


def _plain_price_finder(article: str | None) -> Callable[[str], float | None]:
    def find(line: str) -> float | None:
        if article and article.casefold() in line.casefold():
            return None
        match = PRICE_PLAIN.search(line)
        return _to_price(match.group(1)) if match else None

    return find


def _find_category(line: str) -> str | None:
    match = CATEGORY_PATTERN.search(line)
    return match.group(0).lower() if match else None


def extract_part_info(text: str) -> ExtractedPart:
    """Pull article number, name, manufacturer, price and category out of OCR text."""
    labeled, free = _split_lines(text)

    def from_label(field_name: str, finder: Callable[[str], Any]) -> ExtractedField | None:
        if field_name not in labeled:
            return None
        value, line = labeled[field_name]
        found = finder(value)
        return ExtractedField(found, line) if found is not None else None

    article = from_label("article_number", _find_article) or _first(free, _find_article)
    article_value = article.value if article else None

    name = from_label("name", lambda v: v.strip() or None) or _first(free, _name_finder(article_value))
    manufacturer = (
        from_label("manufacturer", lambda v: v.strip() or None)
        or _first(free, _manufacturer_finder(article_value))
    )
    price = (
        from_label("price", lambda v: _find_price_with_currency(v) or _plain_price_finder(None)(v))
        or _first(free, _find_price_with_currency)
        or _first(free, _plain_price_finder(article_value))
    )
    category = from_label("category", _find_category) or _first(free, _find_category)

    return ExtractedPart(
        article_number=article,
        name=name,
        manufacturer=manufacturer,
        price=price,
        category=category,
    )


def process_image(recognizer: TextRecognizer, image_path: str) -> tuple[str, ExtractedPart]:
    """Run the OCR collaborator on an image and extract fields from its text."""
    text = recognizer(image_path) or ""
    return text, extract_part_info(text)
