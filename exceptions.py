"""Error hierarchy for the parts inventory.

Every store and backup failure derives from ``InventoryError`` so the HTTP
layer can map them to responses in one place.
"""


class InventoryError(Exception):
    """Base exception for all inventory errors."""


class ValidationError(InventoryError):
    """A part (or request payload) failed field validation."""

    def __init__(self, errors: dict[str, str], message: str | None = None):
        self.errors = dict(errors)
        if message is None:
            message = "; ".join(f"{field}: {text}" for field, text in self.errors.items())
        super().__init__(message)


class NotFoundError(InventoryError):
    """Referenced part, backup or file does not exist."""


class StorageIOError(InventoryError):
    """Reading or writing a storage document failed (I/O or corrupt JSON)."""


class InvalidFormatError(InventoryError):
    """A backup, export or CSV file does not have the expected structure."""
