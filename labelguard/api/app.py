"""FastAPI application entry point for LabelGuard."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Final

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from labelguard.api.dependencies import ServiceContainer, build_container
from labelguard.api.routes import router
from labelguard.ocr.base import OCRProviderName
from labelguard.telemetry.errors import ErrorCode, LabelGuardError, emit_structured_error

logger = logging.getLogger(__name__)

SERVICE_NAME: Final[str] = "labelguard"
SERVICE_VERSION: Final[str] = "1.0.0"

_DEVELOPMENT_ENVIRONMENTS: Final[set[str]] = {"dev", "development", "local"}


def _is_truthy_env(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _resolve_cors_origins() -> list[str]:
    environment = os.getenv("LABELGUARD_ENV", "development").strip().lower()
    origins_raw = os.getenv("LABELGUARD_ALLOWED_ORIGINS", "")
    origins = [origin.strip() for origin in origins_raw.split(",") if origin.strip()]
    allow_all_in_dev = _is_truthy_env(os.getenv("LABELGUARD_DEV_ALLOW_ALL_ORIGINS", ""))

    if origins:
        return origins

    if environment in _DEVELOPMENT_ENVIRONMENTS and allow_all_in_dev:
        return ["*"]

    if environment not in _DEVELOPMENT_ENVIRONMENTS:
        raise RuntimeError(
            "Production CORS configuration error: LABELGUARD_ALLOWED_ORIGINS must be set "
            "to a comma-separated list of trusted origins when LABELGUARD_ENV is not "
            "development/local/dev."
        )

    return []


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _labelguard_error_handler(request: Request, exc: LabelGuardError) -> JSONResponse:
    if exc.status_code >= 500:
        emit_structured_error(
            logger,
            code=exc.code,
            message=exc.message,
            suppressed=False,
            details={"path": request.url.path},
        )
    else:
        logger.info(
            "request rejected",
            extra={"path": request.url.path, "error_code": exc.code, "status": exc.status_code},
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error.get('loc', ()))}: {error.get('msg', 'invalid')}"
        for error in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {problems}"})


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    emit_structured_error(
        logger,
        code=ErrorCode.UNHANDLED_EXCEPTION,
        message=str(exc),
        suppressed=False,
        details={"path": request.url.path, "exception_type": type(exc).__name__},
    )
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    """Factory function for creating the FastAPI application.

    A container passed in is used as is; otherwise one is built from the
    environment when the application starts.
    """
    cors_origins = _resolve_cors_origins()
    cors_credentials = (
        _is_truthy_env(os.getenv("LABELGUARD_CORS_ALLOW_CREDENTIALS", ""))
        and "*" not in cors_origins
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "container", None) is None:
            built = build_container()
            _configure_logging(built.config.log_level)
            app.state.container = built
        yield

    app = FastAPI(
        title="LabelGuard",
        description="Retail product extraction and label compliance detection",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_credentials=cors_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LabelGuardError, _labelguard_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)

    app.include_router(router, prefix="/api/v1")

    @app.get("/health")
    async def health_check(request: Request) -> dict[str, Any]:
        ocr = request.app.state.container.ocr.availability()
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "providers": {
                name.value: ocr[name.value]
                for name in (
                    OCRProviderName.LOCAL,
                    OCRProviderName.CLOUD_VISION,
                    OCRProviderName.GENERATIVE,
                )
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "3001")))
