"""Backup and import/export module package."""

from flask import Blueprint

bp = Blueprint("backups", __name__, url_prefix="/backups")

from . import routes  # noqa: E402  pylint: disable=wrong-import-position

__all__ = ["bp", "routes"]
