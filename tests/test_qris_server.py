"""Tests for the QRIS Flask service, driven through the Flask test client."""

import pytest

import qris_server
from qris import build_payload, calculate_crc
from qris_generator import QRIS_BASE
from qris_image import QRRenderError
from schema_validation import schema_errors

OTHER_BASE = "000201" + "010211" + "5303360" + "5802ID" + "5904TEST" + "6007JAKARTA" + "6304ABCD"


@pytest.fixture
def client():
    app = qris_server.create_app()
    app.config["TESTING"] = True
    return app.test_client()


class TestHealth:

    def test_health(self, client):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.get_json() == {"status": "ok", "service": "qris-calculator"}


class TestGenerate:

    def test_generate_with_configured_base(self, client):
        resp = client.post("/generate-qris", json={"amount": 50000, "domain": "toko.id"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["success"] is True
        assert body["qris_string"] == build_payload(QRIS_BASE, 50000)
        assert body["crc"] == body["qris_string"][-4:]
        assert body["image"].startswith("data:image/png;base64,")
        assert body["transaction"]["qrisData"] == body["qris_string"]
        assert body["transaction"]["domain"] == "toko.id"
        assert body["transaction"]["status"] == "PENDING"
        assert schema_errors(body, "GenerateResponse") == []

    def test_generate_with_request_base(self, client):
        resp = client.post("/generate-qris", json={"amount": 1500, "base_string": OTHER_BASE, "image": False})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["qris_string"] == build_payload(OTHER_BASE, 1500)
        assert "image" not in body

    def test_injected_base_payload(self):
        app = qris_server.create_app(base_payload=OTHER_BASE)
        resp = app.test_client().post("/generate-qris", json={"amount": 10, "image": False})
        assert resp.get_json()["qris_string"] == build_payload(OTHER_BASE, 10)

    def test_integral_float_amount(self, client):
        resp = client.post("/generate-qris", json={"amount": 10000.0, "image": False})
        assert resp.status_code == 200
        assert resp.get_json()["amount"] == 10000

    @pytest.mark.parametrize("body", [
        {},
        {"amount": -1},
        {"amount": "10000"},
        {"amount": True},
        {"amount": 100, "unexpected": 1},
        {"amount": 100, "base_string": "abc"},
    ])
    def test_schema_rejections(self, client, body):
        resp = client.post("/generate-qris", json=body)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid request"

    def test_fractional_amount(self, client):
        resp = client.post("/generate-qris", json={"amount": 12.5})
        assert resp.status_code == 400
        assert "whole number" in resp.get_json()["error"]

    def test_malformed_base(self, client):
        resp = client.post("/generate-qris", json={"amount": 100, "base_string": "0002010102115303360630412AB"})
        assert resp.status_code == 400
        assert "Country Code" in resp.get_json()["error"]

    @pytest.mark.parametrize("base_string", [
        "000201010211" + "5303360" + "5802ID" + "5904CAF\u2615" + "6007JAKARTA" + "6304ABCD",
        "00\u00b21" + "0102115802ID6304ABCD",
    ])
    def test_unencodable_base(self, client, base_string):
        resp = client.post("/generate-qris", json={"amount": 100, "base_string": base_string, "image": False})
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    def test_not_json(self, client):
        resp = client.post("/generate-qris", data="amount=5", content_type="text/plain")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid JSON"

    def test_render_failure(self, client, monkeypatch):
        def broken(payload, **kwargs):
            raise QRRenderError("backend unavailable")

        monkeypatch.setattr(qris_server, "render_qr_data_uri", broken)
        resp = client.post("/generate-qris", json={"amount": 10000})
        assert resp.status_code == 502
        body = resp.get_json()
        assert body["success"] is False
        assert body["qris_string"] == build_payload(QRIS_BASE, 10000)

    def test_cors_header(self, client):
        resp = client.get("/health", headers={"Origin": "http://shop.example"})
        assert resp.headers.get("Access-Control-Allow-Origin") == "*"


class TestValidate:

    def test_valid(self, client):
        payload = build_payload(QRIS_BASE, 10000)
        resp = client.post("/validate-qris", json={"qris_string": payload})
        assert resp.get_json() == {
            "valid": True,
            "provided_crc": payload[-4:],
            "calculated_crc": payload[-4:],
        }

    def test_invalid(self, client):
        payload = build_payload(QRIS_BASE, 10000)
        tampered = payload[:-4] + ("0000" if payload[-4:] != "0000" else "1111")
        body = client.post("/validate-qris", json={"qris_string": tampered}).get_json()
        assert body["valid"] is False
        assert body["calculated_crc"] == calculate_crc(payload[:-4])

    def test_missing_crc(self, client):
        body = client.post("/validate-qris", json={"qris_string": "000201"}).get_json()
        assert body == {"valid": False, "provided_crc": None, "calculated_crc": None}

    def test_non_latin_text(self, client):
        resp = client.post("/validate-qris", json={"qris_string": "00020101021€6304ABCD"})
        assert resp.status_code == 400

    def test_missing_field(self, client):
        resp = client.post("/validate-qris", json={"qris": "x"})
        assert resp.status_code == 400


class TestParse:

    def test_parse(self, client):
        resp = client.post("/parse-qris", json={"qris_string": build_payload(QRIS_BASE, 10000)})
        assert resp.status_code == 200
        fields = resp.get_json()["fields"]
        amount = next(f for f in fields if f["tag"] == "54")
        assert amount["value"] == "10000"
        assert amount["description"] == "Transaction Amount"
