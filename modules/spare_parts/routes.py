"""HTTP routes for the spare parts domain."""

from flask import current_app, jsonify, request

from exceptions import NotFoundError, ValidationError
from extensions import get_store
from modules.spare_parts.query import SearchParams
from utils import ALLOWED_EXTENSIONS, allowed_file, as_bool, handle_file_upload, json_body

from . import bp


def _dump(parts):
    return [p.to_dict() for p in parts]


@bp.route('/', methods=['GET'])
def index():
    params = SearchParams.from_args(request.args)
    parts = get_store().search_parts(params)
    return jsonify(ok=True, count=len(parts), parts=_dump(parts))


@bp.route('/', methods=['POST'])
def add_part():
    store = get_store()
    part_id = store.add_part(json_body())
    return jsonify(ok=True, id=part_id, part=store.get_part(part_id).to_dict()), 201


@bp.route('/', methods=['DELETE'])
def clear_parts():
    get_store().clear_all_parts()
    return jsonify(ok=True)


@bp.route('/<int:part_id>', methods=['GET'])
def view_part(part_id):
    store = get_store()
    part = store.get_part(part_id)
    if as_bool(request.args.get('view')):
        store.add_to_view_history(part_id)
    return jsonify(ok=True, part=part.to_dict(), favorite=store.is_favorite(part_id))


@bp.route('/<int:part_id>', methods=['PUT', 'PATCH'])
def edit_part(part_id):
    store = get_store()
    part = store.get_part(part_id).merged(json_body())
    return jsonify(ok=True, part=store.update_part(part).to_dict())


@bp.route('/<int:part_id>', methods=['DELETE'])
def delete_part(part_id):
    get_store().delete_part(part_id)
    return jsonify(ok=True)


@bp.route('/<int:part_id>/photo', methods=['POST'])
def upload_photo(part_id):
    store = get_store()
    part = store.get_part(part_id)
    photo = request.files.get('photo')
    if not photo or not photo.filename or not allowed_file(photo.filename):
        allowed = ', '.join(sorted(ALLOWED_EXTENSIONS))
        raise ValidationError({'photo': f'Invalid file format. Allowed: {allowed}'})
    path = handle_file_upload(photo, current_app.config['UPLOAD_FOLDER'])
    if path is None:
        raise ValidationError({'photo': 'Invalid file name'})
    updated = store.update_part(part.merged({'photoPath': path}))
    return jsonify(ok=True, part=updated.to_dict())


@bp.route('/article/<path:article_number>', methods=['GET'])
def find_by_article(article_number):
    part = get_store().find_by_article(article_number)
    if part is None:
        raise NotFoundError(f'No part with article number {article_number}')
    return jsonify(ok=True, part=part.to_dict())


@bp.route('/<int:part_id>/analogs', methods=['GET'])
def analogs(part_id):
    store = get_store()
    return jsonify(ok=True, parts=_dump(store.get_analogs(store.get_part(part_id))))


@bp.route('/<int:part_id>/compatible', methods=['GET'])
def compatible(part_id):
    store = get_store()
    return jsonify(ok=True, parts=_dump(store.find_compatible_parts(store.get_part(part_id))))


@bp.route('/categories', methods=['GET'])
def categories():
    return jsonify(ok=True, values=get_store().get_unique_categories())


@bp.route('/manufacturers', methods=['GET'])
def manufacturers():
    return jsonify(ok=True, values=get_store().get_unique_manufacturers())


@bp.route('/car-models', methods=['GET'])
def car_models():
    return jsonify(ok=True, values=get_store().get_unique_car_models())


@bp.route('/summary', methods=['GET'])
def summary():
    return jsonify(ok=True, summary=get_store().get_inventory_summary().to_dict())


# --- view history ---

@bp.route('/history', methods=['GET'])
def history():
    return jsonify(ok=True, parts=_dump(get_store().get_view_history()))


@bp.route('/history/<int:part_id>', methods=['POST'])
def record_view(part_id):
    get_store().add_to_view_history(part_id)
    return jsonify(ok=True)


@bp.route('/history', methods=['DELETE'])
def clear_history():
    get_store().clear_view_history()
    return jsonify(ok=True)


# --- favorites ---

@bp.route('/favorites', methods=['GET'])
def favorites():
    return jsonify(ok=True, parts=_dump(get_store().get_favorites()))


@bp.route('/favorites/<int:part_id>', methods=['POST'])
def add_favorite(part_id):
    get_store().add_to_favorites(part_id)
    return jsonify(ok=True)


@bp.route('/favorites/<int:part_id>', methods=['DELETE'])
def remove_favorite(part_id):
    get_store().remove_from_favorites(part_id)
    return jsonify(ok=True)
