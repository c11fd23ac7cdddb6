"""Tests for the QR image encoder."""

import base64
import pytest

import qris_image
from qris_image import render_qr_image, render_qr_png, render_qr_data_uri, QRRenderError
from qris import build_payload
from qris_generator import QRIS_BASE

PAYLOAD = build_payload(QRIS_BASE, 10000)
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


class TestRender:

    def test_png_bytes(self):
        assert render_qr_png(PAYLOAD).startswith(PNG_MAGIC)

    def test_data_uri(self):
        uri = render_qr_data_uri(PAYLOAD)
        prefix = "data:image/png;base64,"
        assert uri.startswith(prefix)
        assert base64.b64decode(uri[len(prefix):]).startswith(PNG_MAGIC)

    @pytest.mark.parametrize("width", [150, 300, 512])
    def test_image_fits_requested_width(self, width):
        img = render_qr_image(PAYLOAD, width=width)
        assert img.pixel_size <= width

    def test_tiny_width_still_renders(self):
        img = render_qr_image(PAYLOAD, width=1)
        assert img.box_size == 1

    def test_same_payload_same_image(self):
        assert render_qr_png(PAYLOAD) == render_qr_png(PAYLOAD)


class TestRenderFailures:

    def test_capacity_overflow(self):
        with pytest.raises(QRRenderError) as excinfo:
            render_qr_png("A" * 8000)
        assert excinfo.value.retryable is False

    def test_invalid_colour(self):
        with pytest.raises(QRRenderError) as excinfo:
            render_qr_png(PAYLOAD, light="not-a-colour")
        assert excinfo.value.retryable is False

    def test_negative_margin(self):
        with pytest.raises(QRRenderError):
            render_qr_image(PAYLOAD, margin=-1)

    def test_transient_failure_retried(self, monkeypatch):
        calls = []

        def flaky(payload, **options):
            calls.append(payload)
            if len(calls) == 1:
                raise QRRenderError("backend unavailable")
            return b"png"

        monkeypatch.setattr(qris_image, "render_qr_png", flaky)
        assert render_qr_data_uri(PAYLOAD, attempts=2) == "data:image/png;base64," + base64.b64encode(b"png").decode()
        assert len(calls) == 2

    def test_permanent_failure_not_retried(self, monkeypatch):
        calls = []

        def broken(payload, **options):
            calls.append(payload)
            raise QRRenderError("too big", retryable=False)

        monkeypatch.setattr(qris_image, "render_qr_png", broken)
        with pytest.raises(QRRenderError):
            render_qr_data_uri(PAYLOAD, attempts=3)
        assert len(calls) == 1

    def test_retries_exhausted(self, monkeypatch):
        def down(payload, **options):
            raise QRRenderError("backend unavailable")

        monkeypatch.setattr(qris_image, "render_qr_png", down)
        with pytest.raises(QRRenderError, match="backend unavailable"):
            render_qr_data_uri(PAYLOAD, attempts=2)
