"""HTTP routes for the label scanner."""

import logging

from flask import current_app, jsonify, request

from exceptions import ValidationError
from extensions import get_store, get_text_recognizer
from modules.scanner.extraction import extract_part_info, process_image
from utils import allowed_file, handle_file_upload, json_body

from . import bp

logger = logging.getLogger(__name__)


def _text_from_body():
    text = json_body().get('text')
    if not isinstance(text, str):
        raise ValidationError({'text': 'text must be a string'})
    return text


def scan_lookup(store, extracted):
    """Existing part for the scanned article number, else a draft for a new one."""
    article = extracted.value('article_number')
    part = store.find_by_article(article) if article else None
    if part is not None:
        return {'found': True, 'part': part.to_dict(), 'extracted': extracted.to_dict()}
    return {'found': False, 'draft': extracted.to_draft(), 'extracted': extracted.to_dict()}


@bp.route('/extract', methods=['POST'])
def extract():
    extracted = extract_part_info(_text_from_body())
    return jsonify(ok=True, extracted=extracted.to_dict(), draft=extracted.to_draft())


@bp.route('/lookup', methods=['POST'])
def lookup():
    extracted = extract_part_info(_text_from_body())
    return jsonify(ok=True, **scan_lookup(get_store(), extracted))


@bp.route('/recognize', methods=['POST'])
def recognize():
    recognizer = get_text_recognizer()
    if recognizer is None:
        return jsonify(ok=False, error='Text recognition is not configured'), 503

    image = request.files.get('image')
    if not image or not image.filename or not allowed_file(image.filename):
        raise ValidationError({'image': 'An image file (png, jpg, jpeg, gif) is required'})
    path = handle_file_upload(image, current_app.config['UPLOAD_FOLDER'])
    if path is None:
        raise ValidationError({'image': 'Invalid file name'})

    text, extracted = process_image(recognizer, path)
    logger.info("Recognized %d characters from %s; found %s", len(text), path, extracted.found_fields())
    return jsonify(ok=True, text=text, **scan_lookup(get_store(), extracted))
