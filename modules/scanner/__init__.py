"""Label scanner (OCR text extraction) module package."""

from flask import Blueprint

bp = Blueprint("scanner", __name__, url_prefix="/scanner")

from . import routes  # noqa: E402  pylint: disable=wrong-import-position

__all__ = ["bp", "routes"]
