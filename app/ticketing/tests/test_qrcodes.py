"""
Tests for ticket QR code rendering.
"""

import base64
import io

from PIL import Image

from ticketing.qrcodes import render_qr_data_url, render_qr_png

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestRenderQr:
    def test_png_bytes(self):
        png = render_qr_png("a" * 64)

        assert png.startswith(PNG_SIGNATURE)

    def test_different_values_render_differently(self):
        assert render_qr_png("credential-one") != render_qr_png("credential-two")

    def test_box_size_scales_image(self):
        small = Image.open(io.BytesIO(render_qr_png("abc", box_size=2, border=0)))
        large = Image.open(io.BytesIO(render_qr_png("abc", box_size=4, border=0)))

        assert large.size == (small.size[0] * 2, small.size[1] * 2)

    def test_data_url(self):
        data_url = render_qr_data_url("abc")

        prefix = "data:image/png;base64,"
        assert data_url.startswith(prefix)
        assert base64.b64decode(data_url[len(prefix):]).startswith(PNG_SIGNATURE)
