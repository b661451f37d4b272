"""In-memory filtering, sorting and aggregation over loaded parts.

Everything here is a pure function of its arguments: no storage access,
no clock, no module state.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from exceptions import ValidationError
from modules.spare_parts.models import Part

SORT_FIELDS = ("price", "name", "updatedAt", "quantity")
SORT_ORDERS = ("ASC", "DESC")

ANALOGS_LIMIT = 10
LOW_STOCK_THRESHOLD = 3

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class PriceRange:
    """Inclusive price bounds; a ``None`` bound is open."""

    min: float | None = None
    max: float | None = None

    def contains(self, price: float) -> bool:
        if self.min is not None and price < self.min:
            return False
        if self.max is not None and price > self.max:
            return False
        return True


@dataclass(frozen=True)
class SearchParams:
    query: str | None = None
    category: str | None = None
    manufacturer: str | None = None
    price_range: PriceRange | None = None
    is_new: bool | None = None
    in_stock: bool = False
    car_model: str | None = None
    sort_by: str | None = None
    sort_order: str = "ASC"

    @classmethod
    def from_args(cls, args: Mapping[str, str]) -> "SearchParams":
        """Build params from query-string style values (``minPrice``, ``isNew``...)."""
        errors: dict[str, str] = {}

        def number(key: str) -> float | None:
            raw = (args.get(key) or "").strip()
            if not raw:
                return None
            try:
                return float(raw.replace(",", "."))
            except ValueError:
                errors[key] = f"{key} must be a number"
                return None

        def flag(key: str) -> bool | None:
            raw = (args.get(key) or "").strip().lower()
            if not raw:
                return None
            if raw in _TRUE_VALUES:
                return True
            if raw in _FALSE_VALUES:
                return False
            errors[key] = f"{key} must be true or false"
            return None

        min_price = number("minPrice")
        max_price = number("maxPrice")
        is_new = flag("isNew")
        in_stock = flag("inStock")

        sort_by = (args.get("sortBy") or "").strip() or None
        if sort_by is not None and sort_by not in SORT_FIELDS:
            errors["sortBy"] = f"sortBy must be one of: {', '.join(SORT_FIELDS)}"
        sort_order = (args.get("sortOrder") or "ASC").strip().upper()
        if sort_order not in SORT_ORDERS:
            errors["sortOrder"] = "sortOrder must be ASC or DESC"

        if errors:
            raise ValidationError(errors)

        price_range = None
        if min_price is not None or max_price is not None:
            price_range = PriceRange(min_price, max_price)

        return cls(
            query=(args.get("query") or "").strip() or None,
            category=(args.get("category") or "").strip() or None,
            manufacturer=(args.get("manufacturer") or "").strip() or None,
            price_range=price_range,
            is_new=is_new,
            in_stock=bool(in_stock),
            car_model=(args.get("carModel") or "").strip() or None,
            sort_by=sort_by,
            sort_order=sort_order,
        )


def _contains(haystack: str | None, needle: str) -> bool:
    return bool(haystack) and needle in haystack.casefold()


def _same(a: str | None, b: str | None) -> bool:
    return (a or "").strip().casefold() == (b or "").strip().casefold()


def matches(part: Part, params: SearchParams) -> bool:
    """True when ``part`` satisfies every filter set in ``params``."""
    if params.query:
        needle = params.query.casefold()
        if not any(
            _contains(value, needle)
            for value in (part.article_number, part.name, part.manufacturer, part.description)
        ):
            return False
    if params.category and not _same(part.category, params.category):
        return False
    if params.manufacturer and not _same(part.manufacturer, params.manufacturer):
        return False
    if params.price_range is not None and not params.price_range.contains(part.price):
        return False
    if params.is_new is not None and part.is_new != params.is_new:
        return False
    if params.in_stock and part.quantity <= 0:
        return False
    if params.car_model:
        needle = params.car_model.casefold()
        if not any(_contains(car, needle) for car in part.compatible_cars or ()):
            return False
    return True


def filter_parts(parts: Iterable[Part], params: SearchParams) -> list[Part]:
    return [p for p in parts if matches(p, params)]


def sort_parts(parts: Iterable[Part], sort_by: str, order: str = "ASC") -> list[Part]:
    """Sort by one of SORT_FIELDS; ties fall back to id so output is stable."""
    if sort_by not in SORT_FIELDS:
        raise ValidationError({"sortBy": f"sortBy must be one of: {', '.join(SORT_FIELDS)}"})
    if order.upper() not in SORT_ORDERS:
        raise ValidationError({"sortOrder": "sortOrder must be ASC or DESC"})

    keys = {
        "price": lambda p: p.price,
        "name": lambda p: p.name.casefold(),
        "updatedAt": lambda p: p.updated_at,
        "quantity": lambda p: p.quantity,
    }
    key = keys[sort_by]
    reverse = order.upper() == "DESC"
    # id ascending inside equal keys regardless of direction
    ordered = sorted(parts, key=lambda p: p.id)
    return sorted(ordered, key=key, reverse=reverse)


def search(parts: Iterable[Part], params: SearchParams) -> list[Part]:
    found = filter_parts(parts, params)
    if params.sort_by:
        found = sort_parts(found, params.sort_by, params.sort_order)
    return found


def find_analogs(parts: Iterable[Part], part: Part, limit: int = ANALOGS_LIMIT) -> list[Part]:
    """Other parts in the same category or whose name contains / is contained in ours."""
    name = part.name.casefold()
    analogs = []
    for other in parts:
        if other.id == part.id:
            continue
        other_name = other.name.casefold()
        if _same(other.category, part.category) or name in other_name or other_name in name:
            analogs.append(other)
            if len(analogs) >= limit:
                break
    return analogs


def find_compatible(parts: Iterable[Part], part: Part) -> list[Part]:
    """Same category and manufacturer, sharing a car when both list any."""
    own_cars = {c.casefold() for c in part.compatible_cars or ()}
    found = []
    for other in parts:
        if other.id == part.id:
            continue
        if not (_same(other.category, part.category) and _same(other.manufacturer, part.manufacturer)):
            continue
        other_cars = {c.casefold() for c in other.compatible_cars or ()}
        if own_cars and other_cars and not own_cars & other_cars:
            continue
        found.append(other)
    return found


def unique_values(values: Iterable[str | None]) -> list[str]:
    """Distinct non-empty values in first-seen order."""
    seen: dict[str, None] = {}
    for value in values:
        if value and value.strip():
            seen.setdefault(value, None)
    return list(seen)


@dataclass
class InventorySummary:
    total_parts: int = 0
    total_quantity: int = 0
    total_value: float = 0.0
    low_stock: list[Part] = field(default_factory=list)
    by_category: dict[str, dict[str, float]] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "totalParts": self.total_parts,
            "totalQuantity": self.total_quantity,
            "totalValue": round(self.total_value, 2),
            "lowStock": [p.to_dict() for p in self.low_stock],
            "byCategory": {
                name: {"count": int(row["count"]), "value": round(row["value"], 2)}
                for name, row in self.by_category.items()
            },
        }


def summarize(parts: Sequence[Part], low_stock_threshold: int = LOW_STOCK_THRESHOLD) -> InventorySummary:
    summary = InventorySummary(total_parts=len(parts))
    for part in parts:
        value = part.price * part.quantity
        summary.total_quantity += part.quantity
        summary.total_value += value
        if part.quantity < low_stock_threshold:
            summary.low_stock.append(part)
        row = summary.by_category.setdefault(part.category, {"count": 0, "value": 0.0})
        row["count"] += 1
        row["value"] += value
    return summary
