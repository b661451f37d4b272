"""HTTP routes for backups and CSV / full-state import-export."""

import logging
import os

from flask import current_app, jsonify, request, send_file

from exceptions import ValidationError
from extensions import get_backup_service
from utils import as_bool, handle_file_upload

from . import bp

logger = logging.getLogger(__name__)


def _uploaded(field, extension):
    """Path of an uploaded file saved to UPLOAD_FOLDER, or None if none was sent."""
    upload = request.files.get(field)
    if upload is None or not upload.filename:
        return None
    path = handle_file_upload(upload, current_app.config['UPLOAD_FOLDER'], {extension})
    if path is None:
        raise ValidationError({field: f'Expected a .{extension} file'})
    return path


def _discard(path):
    """Remove an uploaded import file once it has been consumed."""
    try:
        os.remove(path)
    except OSError as exc:
        logger.warning("Could not remove upload %s: %s", path, exc)


def _named(data):
    name = (data.get('name') or '').strip()
    if not name:
        raise ValidationError({'name': 'File name is required'})
    return get_backup_service().resolve(name)


@bp.route('/', methods=['GET'])
def index():
    backups = get_backup_service().get_backups_list()
    return jsonify(ok=True, backups=[b.to_dict() for b in backups])


@bp.route('/', methods=['POST'])
def create_backup():
    data = request.get_json(silent=True) or {}
    path = get_backup_service().create_backup(str(data.get('label') or ''))
    return jsonify(ok=True, name=path.name, path=str(path)), 201


@bp.route('/<name>/restore', methods=['POST'])
def restore_backup(name):
    service = get_backup_service()
    restored = service.restore_from_backup(service.resolve(name))
    return jsonify(ok=True, restored=restored)


@bp.route('/<name>', methods=['DELETE'])
def delete_backup(name):
    service = get_backup_service()
    service.delete_backup(service.resolve(name))
    return jsonify(ok=True)


@bp.route('/download/<name>', methods=['GET'])
def download(name):
    path = get_backup_service().resolve(name)
    return send_file(path, as_attachment=True, download_name=path.name)


@bp.route('/export/csv', methods=['POST'])
def export_csv():
    path = get_backup_service().export_to_csv()
    return jsonify(ok=True, name=path.name, path=str(path)), 201


@bp.route('/import/csv', methods=['POST'])
def import_csv():
    service = get_backup_service()
    upload = _uploaded('file', 'csv')
    if upload is None:
        data = request.get_json(silent=True) or {}
        result = service.import_from_csv(_named(data), replace_existing=as_bool(data.get('replaceExisting')))
        return jsonify(ok=True, **result.to_dict())

    try:
        result = service.import_from_csv(upload, replace_existing=as_bool(request.form.get('replaceExisting')))
    finally:
        _discard(upload)
    return jsonify(ok=True, **result.to_dict())


@bp.route('/export/full', methods=['POST'])
def export_full():
    path = get_backup_service().export_data()
    return jsonify(ok=True, name=path.name, path=str(path)), 201


@bp.route('/import/full', methods=['POST'])
def import_full():
    service = get_backup_service()
    upload = _uploaded('file', 'json')
    if upload is None:
        path = _named(request.get_json(silent=True) or {})
        imported = service.import_data(path)
    else:
        path = upload
        try:
            imported = service.import_data(upload)
        finally:
            _discard(upload)
    logger.info("Full-state import of %s done", path)
    return jsonify(ok=True, imported=imported)
