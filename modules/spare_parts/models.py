"""Part record and validation for the spare parts domain.

Records are persisted as camelCase JSON documents (``articleNumber``,
``compatibleCars``, ...); in Python they are ``Part`` dataclasses.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

from exceptions import ValidationError

REQUIRED_TEXT_FIELDS = {
    "articleNumber": "Article number is required",
    "name": "Name is required",
    "manufacturer": "Manufacturer is required",
    "category": "Category is required",
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat()


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _finite_float(value: Any) -> float | None:
    """``value`` as a finite float, or None for non-numbers and out-of-range values."""
    if not _is_number(value):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def clean_part_data(data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate a camelCase part payload and return normalized values.

    Raises:
        ValidationError: with one message per offending field. Nothing is
            returned (or persisted) for a partially valid payload.
    """
    errors: dict[str, str] = {}
    cleaned: dict[str, Any] = {}

    for key, message in REQUIRED_TEXT_FIELDS.items():
        value = data.get(key)
        text = value.strip() if isinstance(value, str) else ""
        if not text:
            errors[key] = message
        cleaned[key] = text

    quantity = _finite_float(data.get("quantity"))
    if quantity is not None and quantity.is_integer() and quantity >= 0:
        cleaned["quantity"] = int(data["quantity"])
    else:
        errors["quantity"] = "Quantity must be a non-negative integer"

    price = _finite_float(data.get("price"))
    if price is not None and price > 0:
        cleaned["price"] = price
    else:
        errors["price"] = "Price must be a positive number"

    is_new = data.get("isNew", False)
    if not isinstance(is_new, bool):
        errors["isNew"] = "isNew must be a boolean"
    cleaned["isNew"] = bool(is_new)

    for key in ("description", "photoPath"):
        value = data.get(key)
        if value is not None and not isinstance(value, str):
            errors[key] = f"{key} must be a string or null"
        cleaned[key] = _optional_text(value)

    cars = data.get("compatibleCars")
    if cars is None:
        cleaned["compatibleCars"] = None
    elif isinstance(cars, list) and all(isinstance(car, str) for car in cars):
        stripped = [car.strip() for car in cars if car.strip()]
        cleaned["compatibleCars"] = stripped or None
    else:
        errors["compatibleCars"] = "compatibleCars must be a list of strings or null"

    if errors:
        raise ValidationError(errors)
    return cleaned


@dataclass
class Part:
    """A single inventory record (an automotive component)."""

    id: int
    article_number: str
    name: str
    manufacturer: str
    category: str
    is_new: bool
    quantity: int
    price: float
    description: str | None = None
    photo_path: str | None = None
    compatible_cars: list[str] | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_clean(
        cls,
        part_id: int,
        cleaned: Mapping[str, Any],
        created_at: datetime,
        updated_at: datetime,
    ) -> "Part":
        cars = cleaned.get("compatibleCars")
        return cls(
            id=part_id,
            article_number=cleaned["articleNumber"],
            name=cleaned["name"],
            manufacturer=cleaned["manufacturer"],
            category=cleaned["category"],
            is_new=cleaned["isNew"],
            quantity=cleaned["quantity"],
            price=cleaned["price"],
            description=cleaned.get("description"),
            photo_path=cleaned.get("photoPath"),
            compatible_cars=list(cars) if cars else None,
            created_at=created_at,
            updated_at=updated_at,
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Part":
        """Rebuild a stored record; ``id`` is required, timestamps default to now."""
        part_id = data.get("id")
        if not isinstance(part_id, int) or isinstance(part_id, bool):
            raise ValidationError({"id": "id must be an integer"})
        now = utcnow()
        created_at = parse_timestamp(data.get("createdAt")) or now
        updated_at = parse_timestamp(data.get("updatedAt")) or created_at
        return cls.from_clean(part_id, clean_part_data(data), created_at, updated_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "articleNumber": self.article_number,
            "name": self.name,
            "manufacturer": self.manufacturer,
            "category": self.category,
            "isNew": self.is_new,
            "quantity": self.quantity,
            "price": self.price,
            "description": self.description,
            "photoPath": self.photo_path,
            "compatibleCars": list(self.compatible_cars) if self.compatible_cars else None,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
        }

    def merged(self, changes: Mapping[str, Any]) -> "Part":
        """Return a validated copy with camelCase ``changes`` applied.

        ``id`` and the timestamps cannot be changed this way.
        """
        payload = self.to_dict()
        payload.update({k: v for k, v in changes.items() if k not in ("id", "createdAt", "updatedAt")})
        return Part.from_clean(self.id, clean_part_data(payload), self.created_at, self.updated_at)

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<Part {self.id} {self.article_number}: {self.name}>"
