"""Per-application services: the part store, backup engine and OCR hook.

``init_app`` builds one ``PartStore`` and one ``BackupService`` for an app and
keeps them in ``app.extensions``; views reach them through the getters below
while an app context is active.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import Flask, current_app

if TYPE_CHECKING:
    from modules.backup.service import BackupService
    from modules.scanner.extraction import TextRecognizer
    from modules.spare_parts.store import PartStore

STORE_KEY = "parts_store"
BACKUP_KEY = "backup_service"
RECOGNIZER_KEY = "text_recognizer"


def init_app(app: Flask) -> None:
    from modules.backup.service import BackupService
    from modules.spare_parts.store import PartStore

    store = PartStore(app.config["STORAGE_DIR"])
    app.extensions[STORE_KEY] = store
    app.extensions[BACKUP_KEY] = BackupService(store, app.config["BACKUP_DIR"])
    # OCR collaborator is optional; register a callable(image_path) -> str
    app.extensions.setdefault(RECOGNIZER_KEY, None)


def get_store() -> "PartStore":
    return current_app.extensions[STORE_KEY]


def get_backup_service() -> "BackupService":
    return current_app.extensions[BACKUP_KEY]


def get_text_recognizer() -> "TextRecognizer | None":
    return current_app.extensions.get(RECOGNIZER_KEY)
