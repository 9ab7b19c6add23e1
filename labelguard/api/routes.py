"""REST API routes for LabelGuard.

Provides endpoints for:
- Product extraction from retail URLs
- Label OCR with field detection and a compliance summary
- Barcode decode and catalog lookup
- Proxying product images for the dashboard
"""

from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from labelguard.api.dependencies import ServiceContainer, get_container
from labelguard.api.validators import parse_flag, read_image_input
from labelguard.barcode.decoder import decode_barcode_async
from labelguard.barcode.lookup import BarcodeProductInfo, is_catalog_code
from labelguard.ocr.base import OCROptions
from labelguard.ocr.preprocess import preprocess_async
from labelguard.parsing.compliance import ComplianceReport, summarize
from labelguard.parsing.fields import DetectedFieldSet, parse_fields
from labelguard.pipeline.extraction import ExtractionRequest

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Request/Response Models ---


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OCRResponse(_CamelModel):
    """OCR text, detected declarations and their compliance summary."""

    provider: str
    confidence: float
    extracted_text: list[str]
    detected_fields: DetectedFieldSet
    compliance: ComplianceReport
    elapsed_ms: int
    fast: bool


class BarcodeDecodeResponse(_CamelModel):
    found: bool
    barcode: str | None = None
    type: str | None = None
    product_info: BarcodeProductInfo | None = None
    message: str | None = None


# --- Extraction ---


@router.get("/extraction")
async def get_extraction(
    url: str = Query(...),
    mode: str | None = Query(None),
    container: ServiceContainer = Depends(get_container),
) -> dict[str, Any]:
    """Extract a product record. Mode defaults to auto (html, then browser)."""
    request = ExtractionRequest.build(url, mode)
    logger.info("extraction request", extra={"url": request.url, "mode": request.mode.value})
    record = await container.extraction_controller().run(request)
    return record.model_dump(by_alias=True)


# --- OCR ---


@router.post("/ocr", response_model=OCRResponse, response_model_by_alias=True)
async def run_ocr(
    image: UploadFile | None = File(None),
    url: str | None = Form(None),
    provider: str | None = Form(None),
    lang: str = Form("eng"),
    fast: str | None = Form(None),
    provider_query: str | None = Query(None, alias="provider"),
    fast_query: str | None = Query(None, alias="fast"),
    container: ServiceContainer = Depends(get_container),
) -> OCRResponse:
    started = time.monotonic()
    fast_mode = parse_flag(fast, fast_query)
    requested = provider_query or provider

    raw = await read_image_input(image, url, container.image_fetcher)
    prepared = await preprocess_async(raw, fast=fast_mode)
    result = await container.ocr.recognize(
        prepared, OCROptions(language=lang or "eng", fast_mode=fast_mode), requested=requested
    )

    fields = parse_fields(result.text)
    return OCRResponse(
        provider=result.provider_used.value,
        confidence=result.confidence,
        extracted_text=[line for line in result.text.splitlines() if line.strip()],
        detected_fields=fields,
        compliance=summarize(fields),
        elapsed_ms=int((time.monotonic() - started) * 1000),
        fast=fast_mode,
    )


# --- Barcode ---


@router.post("/barcode/decode", response_model=BarcodeDecodeResponse, response_model_by_alias=True)
async def decode_barcode_route(
    image: UploadFile | None = File(None),
    url: str | None = Form(None),
    lookup: str | None = Form(None),
    lookup_query: str | None = Query(None, alias="lookup"),
    container: ServiceContainer = Depends(get_container),
) -> BarcodeDecodeResponse:
    raw = await read_image_input(image, url, container.image_fetcher)
    decoded = await decode_barcode_async(raw)
    if decoded is None:
        return BarcodeDecodeResponse(found=False, message="No barcode detected in image")

    product_info = None
    if parse_flag(lookup, lookup_query):
        # QR payloads and other non-numeric symbols have no catalog entry
        if is_catalog_code(decoded.data):
            product_info = await container.barcode_lookup.lookup(decoded.data)
        else:
            product_info = BarcodeProductInfo(barcode=decoded.data, found=False)
    return BarcodeDecodeResponse(
        found=True,
        barcode=decoded.data,
        type=decoded.symbology,
        product_info=product_info,
    )


@router.get("/barcode/lookup/{code}")
async def lookup_barcode(
    code: str,
    container: ServiceContainer = Depends(get_container),
) -> dict[str, Any]:
    info = await container.barcode_lookup.lookup(code)
    payload = info.model_dump(by_alias=True)
    if payload.get("error") is None:
        payload.pop("error", None)
    return payload


# --- Image proxy ---


@router.get("/proxy-image")
async def proxy_image(
    url: str = Query(...),
    container: ServiceContainer = Depends(get_container),
) -> Response:
    """Relay an upstream image; a non-2xx upstream status is mirrored with an empty body."""
    image = await container.image_fetcher.fetch(url)
    if not image.ok:
        return Response(status_code=image.status_code)
    return Response(content=image.content, media_type=image.content_type)
