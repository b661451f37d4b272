# tests/conftest.py
import os
import sys
import pytest

# чтобы import create_app работал при запуске из корня
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from app import create_app
from config import Config
from extensions import get_backup_service, get_store


@pytest.fixture()
def app(tmp_path):
    class TestConfig(Config):
        TESTING = True
        SECRET_KEY = "test-secret"
        DATA_DIR = str(tmp_path)
        STORAGE_DIR = str(tmp_path / "storage")
        BACKUP_DIR = str(tmp_path / "backups")
        UPLOAD_FOLDER = str(tmp_path / "uploads")
        LOG_LEVEL = "DEBUG"

    app = create_app(TestConfig)
    with app.app_context():
        yield app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def store(app):
    return get_store()


@pytest.fixture()
def backup_service(app):
    return get_backup_service()


def make_part(**overrides):
    data = {
        "articleNumber": "BP-1001",
        "name": "Brake pad set",
        "manufacturer": "BOSCH",
        "category": "гальма",
        "isNew": True,
        "quantity": 4,
        "price": 850.0,
        "description": None,
        "photoPath": None,
        "compatibleCars": ["VW Golf 7", "Skoda Octavia A7"],
    }
    data.update(overrides)
    return data


@pytest.fixture()
def sample_parts(store):
    """Four parts across two categories; returns their ids in insertion order."""
    records = [
        make_part(),
        make_part(
            articleNumber="BD-2002", name="Brake disc", price=1450.0, quantity=2,
            description="Front, ventilated", compatibleCars=["VW Golf 7"],
        ),
        make_part(
            articleNumber="OF-3003", name="Oil filter", manufacturer="MANN",
            category="двигун", price=220.5, quantity=0, isNew=False, compatibleCars=None,
        ),
        make_part(
            articleNumber="SP-4004", name="Spark plug", manufacturer="NGK",
            category="двигун", price=180.0, quantity=12, compatibleCars=["Toyota Corolla"],
        ),
    ]
    return [store.add_part(r) for r in records]


@pytest.fixture()
def part_data():
    """Factory for valid camelCase part payloads."""
    return make_part
