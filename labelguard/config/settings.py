"""LabelGuard configuration settings."""

from __future__ import annotations

import os

from pydantic import BaseModel, Field, field_validator

DEFAULT_ALLOWED_DOMAINS = [
    "amazon.in",
    "flipkart.com",
    "myntra.com",
    "bigbasket.com",
    "grofers.com",
    "1mg.com",
    "nykaa.com",
]


def _csv_env(var_name: str) -> list[str]:
    raw = os.getenv(var_name, "")
    return [item.strip().lower().rstrip(".") for item in raw.split(",") if item.strip()]


class VertexConfig(BaseModel):
    """Vertex AI configuration for the generative OCR provider."""

    project_id: str = Field(default_factory=lambda: os.getenv("VERTEX_PROJECT_ID", ""))
    location: str = Field(default_factory=lambda: os.getenv("VERTEX_LOCATION", "us-central1"))
    model: str = Field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.5-pro"))


class VisionConfig(BaseModel):
    """Google Cloud Vision configuration."""

    credentials_path: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_APPLICATION_CREDENTIALS", "")
    )

    @property
    def enabled(self) -> bool:
        return bool(self.credentials_path)


class OCRConfig(BaseModel):
    """OCR provider preference and local recognizer settings."""

    provider_order: list[str] = Field(default_factory=lambda: _csv_env("OCR_PROVIDERS"))
    default_language: str = "eng"
    tesseract_cmd: str = Field(default_factory=lambda: os.getenv("TESSERACT_CMD", ""))


class TimeoutConfig(BaseModel):
    """Timeout budgets for every suspension point, in seconds."""

    fetch_timeout_s: float = 12
    page_load_timeout_s: float = 30
    browser_extraction_timeout_s: float = 60
    html_extraction_timeout_s: float = 20
    ocr_timeout_s: float = 90
    barcode_lookup_timeout_s: float = 10
    image_fetch_timeout_s: float = 12

    @field_validator("*")
    @classmethod
    def _validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeouts must be > 0")
        return value


class BrowserConfig(BaseModel):
    """Browser layer configuration."""

    headless: bool = True
    viewport_width: int = 1366
    viewport_height: int = 900
    locale: str = "en-IN"
    timezone_id: str = "Asia/Kolkata"


class AllowlistConfig(BaseModel):
    """Retail domains that product extraction may touch."""

    allowed_domains: list[str] = Field(
        default_factory=lambda: _csv_env("LABELGUARD_ALLOWED_DOMAINS") or list(DEFAULT_ALLOWED_DOMAINS)
    )

    @field_validator("allowed_domains")
    @classmethod
    def _validate_domains(cls, value: list[str]) -> list[str]:
        domains = [d.strip().lower().rstrip(".") for d in value if d.strip()]
        if not domains:
            raise ValueError("allowed_domains cannot be empty")
        return domains


class URLPolicyConfig(BaseModel):
    """SSRF policy for caller-supplied image URLs."""

    allowed_schemes: list[str] = Field(default_factory=lambda: ["http", "https"])
    block_local_hostnames: bool = True
    block_private_ips: bool = True


class BarcodeConfig(BaseModel):
    """External barcode catalog."""

    lookup_url: str = Field(
        default_factory=lambda: os.getenv(
            "BARCODE_API_BASE", "https://api.upcitemdb.com/prod/trial/lookup"
        )
    )


class ServiceConfig(BaseModel):
    """Root configuration, read once at process startup."""

    vertex: VertexConfig = Field(default_factory=VertexConfig)
    vision: VisionConfig = Field(default_factory=VisionConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    allowlist: AllowlistConfig = Field(default_factory=AllowlistConfig)
    url_policy: URLPolicyConfig = Field(default_factory=URLPolicyConfig)
    barcode: BarcodeConfig = Field(default_factory=BarcodeConfig)
    log_level: str = Field(default_factory=lambda: os.getenv("LABELGUARD_LOG_LEVEL", "INFO"))
