"""Validation helpers for API request payloads."""

from __future__ import annotations

from fastapi import UploadFile

from labelguard.api.images import ImageFetcher
from labelguard.telemetry.errors import InvalidInput

_TRUTHY = {"1", "true", "yes", "on"}


def parse_flag(*values: str | None) -> bool:
    """True if any of the given form/query values is a truthy flag."""
    return any(value is not None and value.strip().lower() in _TRUTHY for value in values)


async def read_image_input(
    image: UploadFile | None,
    url: str | None,
    fetcher: ImageFetcher,
) -> bytes:
    """Return image bytes from an upload, or from a URL fetched through the SSRF policy."""
    if image is not None:
        content = await image.read()
        if not content:
            raise InvalidInput("Uploaded image is empty")
        return content
    if url:
        return await fetcher.fetch_bytes(url)
    raise InvalidInput("Provide an image file or url")
