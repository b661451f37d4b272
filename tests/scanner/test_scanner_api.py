"""HTTP tests for the /scanner blueprint."""

from io import BytesIO

from extensions import RECOGNIZER_KEY


def test_extract_returns_fields_and_draft(client):
    resp = client.post("/scanner/extract", json={"text": "NGK\nBKR6E-11\nSpark plug\n180 грн"})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["extracted"]["articleNumber"] == "BKR6E-11"
    assert "price" in body["extracted"]["found"]
    assert body["draft"]["manufacturer"] == "NGK"
    assert body["draft"]["category"] == "інше"


def test_extract_requires_text(client):
    resp = client.post("/scanner/extract", json={"text": 42})
    assert resp.status_code == 400
    assert "text" in resp.get_json()["errors"]


def test_lookup_finds_existing_part(client, sample_parts):
    resp = client.post("/scanner/lookup", json={"text": "BOSCH\nbp-1001\nBrake pad"})
    body = resp.get_json()
    assert body["found"] is True
    assert body["part"]["id"] == sample_parts[0]


def test_lookup_returns_draft_for_unknown_article(client, sample_parts):
    body = client.post("/scanner/lookup", json={"text": "Unknown\n???"}).get_json()
    assert body["found"] is False
    assert body["draft"]["articleNumber"].startswith("TEMP-")
    assert body["draft"]["quantity"] == 1


def test_recognize_without_recognizer_is_unavailable(client):
    resp = client.post(
        "/scanner/recognize",
        data={"image": (BytesIO(b"img"), "label.png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 503
    assert resp.get_json()["ok"] is False


def test_recognize_runs_registered_recognizer(app, client, sample_parts):
    calls = []

    def recognizer(path):
        calls.append(path)
        return "SP-4004\nSpark plug"

    app.extensions[RECOGNIZER_KEY] = recognizer
    resp = client.post(
        "/scanner/recognize",
        data={"image": (BytesIO(b"img"), "label.png")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["text"].startswith("SP-4004")
    assert body["found"] is True
    assert body["part"]["id"] == sample_parts[3]
    assert calls and calls[0].startswith(app.config["UPLOAD_FOLDER"])

    resp = client.post(
        "/scanner/recognize",
        data={"image": (BytesIO(b"img"), "label.txt")},
        content_type="multipart/form-data",
    )
    assert resp.status_code == 400
