"""Barcode decode: QR and linear symbologies via zbar."""

from __future__ import annotations

import asyncio
import io
import logging
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError
from pyzbar import pyzbar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecodedBarcode:
    data: str
    symbology: str


def decode_barcode(image_bytes: bytes) -> DecodedBarcode | None:
    """Return the first symbol found in the image, or None.

    Bytes that are not a decodable image also yield None.
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.info("barcode decode: unreadable image: %s", e)
        return None

    if image.mode not in ("L", "RGB"):
        image = image.convert("RGB")

    symbols = pyzbar.decode(image)
    if not symbols:
        return None
    first = symbols[0]
    return DecodedBarcode(
        data=first.data.decode("utf-8", errors="replace"),
        symbology=str(first.type),
    )


async def decode_barcode_async(image_bytes: bytes) -> DecodedBarcode | None:
    return await asyncio.to_thread(decode_barcode, image_bytes)
