import json

from .. import models
from ..encoder import render_data_uri

CSV = b"name,email\nAda,ada@example.com\nAlan,alan@example.com\n"


def _upload(client, headers, data=CSV, filename="people.csv", content_type="text/csv"):
    return client.post(
        "/api/qr/generate/csv",
        files={"csvFile": (filename, data, content_type)},
        headers=headers,
    )


def test_csv_rows_become_records(client, db_session, headers, settings):
    res = _upload(client, headers)
    assert res.status_code == 200
    data = res.json()
    assert data["success"] is True
    assert data["message"] == "QR Codes generated successfully from CSV"
    assert len(data["qrCodes"]) == 2

    rows = [
        {"name": "Ada", "email": "ada@example.com"},
        {"name": "Alan", "email": "alan@example.com"},
    ]
    for item, row in zip(data["qrCodes"], rows):
        qr = db_session.get(models.QRCode, item["id"])
        assert qr.type == models.QRCodeType.csv
        assert qr.content == json.dumps(row, separators=(",", ":"))
        assert qr.image_url == item["qrCode"] == render_data_uri(qr.content)
        assert qr.csv_headers == ["name", "email"]
        assert qr.csv_data == rows

    assert db_session.query(models.QRCode).count() == 2
    assert list(settings.UPLOAD_DIR.iterdir()) == []


def test_csv_response_keeps_row_order(client, headers):
    body = "n\n" + "\n".join(str(i) for i in range(12)) + "\n"
    data = _upload(client, headers, data=body.encode()).json()
    ids = [item["id"] for item in data["qrCodes"]]
    assert ids == sorted(ids)
    history = client.get("/api/qr/history?limit=50", headers=headers).json()
    by_id = {qr["id"]: qr["content"] for qr in history["qrCodes"]}
    assert [by_id[i] for i in ids] == [f'{{"n":"{i}"}}' for i in range(12)]


def test_csv_history_records(client, headers):
    _upload(client, headers)
    history = client.get("/api/qr/history", headers=headers).json()
    assert history["total"] == 2
    assert {qr["type"] for qr in history["qrCodes"]} == {"csv"}
    assert all(qr["csvHeaders"] == ["name", "email"] for qr in history["qrCodes"])


def test_non_csv_upload_is_rejected_before_parsing(client, db_session, headers, monkeypatch, settings):
    from ..routers import qr as qr_router

    def boom(*args, **kwargs):
        raise AssertionError("parser should not run")

    monkeypatch.setattr(qr_router, "CsvRows", boom)
    res = _upload(client, headers, filename="notes.txt", content_type="text/plain")
    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "Only CSV files are allowed"}
    assert db_session.query(models.QRCode).count() == 0
    assert list(settings.UPLOAD_DIR.iterdir()) == []


def test_missing_file_is_invalid_input(client, headers):
    res = client.post("/api/qr/generate/csv", headers=headers)
    assert res.status_code == 400
    assert res.json() == {"success": False, "message": "No CSV file uploaded"}


def test_headers_only_csv_yields_no_codes(client, headers):
    res = _upload(client, headers, data=b"name,email\n")
    assert res.status_code == 200
    assert res.json()["qrCodes"] == []


def test_one_failing_row_fails_the_whole_batch(client, db_session, headers, monkeypatch, settings):
    from ..encoder import EncodingError
    from ..routers import qr as qr_router

    real = qr_router.render_data_uri

    def flaky(content):
        if "Alan" in content:
            raise EncodingError("row too large")
        return real(content)

    monkeypatch.setattr(qr_router, "render_data_uri", flaky)
    res = _upload(client, headers)
    assert res.status_code == 500
    body = res.json()
    assert body["success"] is False
    assert body["message"] == "Failed to generate QR Codes from CSV"
    assert body["error"] == "row too large"
    assert db_session.query(models.QRCode).count() == 0
    assert list(settings.UPLOAD_DIR.iterdir()) == []


def test_unreadable_csv_is_internal_error(client, db_session, headers, settings):
    res = _upload(client, headers, data="name\nJos\xe9\n".encode("latin-1"))
    assert res.status_code == 500
    assert res.json()["message"] == "Failed to generate QR Codes from CSV"
    assert db_session.query(models.QRCode).count() == 0
    assert list(settings.UPLOAD_DIR.iterdir()) == []
