# ui_routes.py: home endpoint with the dashboard KPIs
from flask import Blueprint, jsonify

from extensions import get_backup_service, get_store

ui = Blueprint("ui", __name__)


@ui.route("/")
def home():
    store = get_store()
    summary = store.get_inventory_summary()

    return jsonify(
        ok=True,
        parts_count=summary.total_parts,
        total_quantity=summary.total_quantity,
        low_stock_count=len(summary.low_stock),
        favorites_count=len(store.get_favorites()),
        recent_views=[p.to_dict() for p in store.get_view_history()[:5]],
        backups_count=len(get_backup_service().get_backups_list()),
    )
