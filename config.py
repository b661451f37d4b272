import os

_DATA_DIR = os.getenv('DATA_DIR', 'data')


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev_secret_key')
    DATA_DIR = _DATA_DIR
    STORAGE_DIR = os.getenv('STORAGE_DIR', os.path.join(_DATA_DIR, 'storage'))
    BACKUP_DIR = os.getenv('BACKUP_DIR', os.path.join(_DATA_DIR, 'backups'))
    UPLOAD_FOLDER = os.getenv('UPLOAD_FOLDER', os.path.join(_DATA_DIR, 'uploads'))
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024
