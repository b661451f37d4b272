import os
from uuid import uuid4

from flask import request
from werkzeug.utils import secure_filename

from exceptions import ValidationError

ALLOWED_EXTENSIONS = {'png', 'jpg', 'jpeg', 'gif'}


def allowed_file(filename, extensions=ALLOWED_EXTENSIONS):
    """Check if the file has an allowed extension."""
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in extensions


def handle_file_upload(file, upload_folder, extensions=ALLOWED_EXTENSIONS):
    """Save uploaded file to upload folder and return the file path, or None."""
    if file and file.filename and allowed_file(file.filename, extensions):
        filename = secure_filename(file.filename)
        if not filename:
            return None
        os.makedirs(upload_folder, exist_ok=True)
        # same name uploaded twice must not overwrite the first file
        filepath = os.path.join(upload_folder, f"{uuid4().hex[:8]}_{filename}")
        file.save(filepath)
        return filepath
    return None


def json_body():
    """Request body as a dict; anything else is a validation error."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError({'body': 'JSON object expected'})
    return data


def as_bool(value):
    if isinstance(value, bool):
        return value
    return str(value or '').strip().lower() in {'1', 'true', 'yes', 'on'}
