"""Tests for barcode decoding."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from labelguard.barcode import decoder
from labelguard.barcode.decoder import DecodedBarcode, decode_barcode, decode_barcode_async


class _Symbol:
    def __init__(self, data: bytes, type_: str):
        self.data = data
        self.type = type_


def _png(mode="RGB") -> bytes:
    buffer = io.BytesIO()
    Image.new(mode, (40, 40), color=255 if mode == "L" else (255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


class TestDecodeBarcode:
    def test_garbage_bytes_give_none(self):
        assert decode_barcode(b"not an image") is None

    def test_empty_bytes_give_none(self):
        assert decode_barcode(b"") is None

    def test_blank_image_has_no_symbol(self):
        assert decode_barcode(_png()) is None

    def test_first_symbol_returned(self, monkeypatch):
        monkeypatch.setattr(
            decoder.pyzbar,
            "decode",
            lambda image: [_Symbol(b"8901030865278", "EAN13"), _Symbol(b"https://x", "QRCODE")],
        )
        assert decode_barcode(_png()) == DecodedBarcode(data="8901030865278", symbology="EAN13")

    def test_palette_image_converted(self, monkeypatch):
        modes = []

        def fake_decode(image):
            modes.append(image.mode)
            return []

        monkeypatch.setattr(decoder.pyzbar, "decode", fake_decode)
        buffer = io.BytesIO()
        Image.new("RGBA", (10, 10)).save(buffer, format="PNG")
        decode_barcode(buffer.getvalue())
        assert modes == ["RGB"]

    @pytest.mark.asyncio
    async def test_async_variant(self, monkeypatch):
        monkeypatch.setattr(decoder.pyzbar, "decode", lambda image: [_Symbol(b"12345678", "EAN8")])
        result = await decode_barcode_async(_png("L"))
        assert result.data == "12345678"
