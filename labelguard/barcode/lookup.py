"""Barcode catalog lookup against the UPCitemdb trial API."""

from __future__ import annotations

import logging
import re
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from labelguard.config.settings import BarcodeConfig, TimeoutConfig
from labelguard.telemetry.errors import ErrorCode, InvalidInput, emit_structured_error

logger = logging.getLogger(__name__)

_BARCODE = re.compile(r"^\d{8,14}$")


def is_catalog_code(code: str) -> bool:
    return bool(_BARCODE.match(code.strip()))


def validate_barcode(code: str) -> str:
    code = code.strip()
    if not is_catalog_code(code):
        raise InvalidInput("Invalid barcode format")
    return code


class BarcodeProductInfo(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    barcode: str
    found: bool
    product_name: str | None = None
    brand: str | None = None
    category: str | None = None
    description: str | None = None
    image: str | None = None
    upc: str | None = None
    ean: str | None = None
    error: str | None = None


class BarcodeLookup:
    """Never raises for upstream trouble: a miss and a failure both return found=False."""

    def __init__(
        self,
        config: BarcodeConfig,
        timeouts: TimeoutConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._timeouts = timeouts
        self._transport = transport

    async def lookup(self, code: str) -> BarcodeProductInfo:
        barcode = validate_barcode(code)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeouts.barcode_lookup_timeout_s,
                transport=self._transport,
            ) as client:
                response = await client.get(self._config.lookup_url, params={"upc": barcode})
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            emit_structured_error(
                logger,
                code=ErrorCode.BARCODE_LOOKUP_FAILED,
                message=str(exc),
                suppressed=True,
                details={"barcode": barcode},
            )
            return BarcodeProductInfo(barcode=barcode, found=False, error=str(exc) or type(exc).__name__)

        if not isinstance(payload, dict) or payload.get("code") != "OK" or not payload.get("items"):
            return BarcodeProductInfo(barcode=barcode, found=False)

        items = payload["items"]
        item = items[0] if isinstance(items, list) else None
        if not isinstance(item, dict):
            return BarcodeProductInfo(barcode=barcode, found=False)

        return BarcodeProductInfo(
            barcode=barcode,
            found=True,
            product_name=_text(item.get("title")),
            brand=_text(item.get("brand")),
            category=_text(item.get("category")),
            description=_text(item.get("description")),
            image=_first_image(item.get("images")),
            upc=str(item["upc"]) if item.get("upc") else None,
            ean=str(item["ean"]) if item.get("ean") else None,
        )


def _first_image(value: Any) -> str | None:
    if isinstance(value, list):
        value = value[0] if value else None
    return value if isinstance(value, str) and value else None


def _text(value: Any) -> str | None:
    return value.strip() or None if isinstance(value, str) else None
