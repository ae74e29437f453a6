"""Generation relay: FastAPI application.

This module defines the application factory, all REST routes, and the
``main()`` CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** comes from :class:`~genrelay.core.config.RelayConfig`,
  loaded once per process.  :func:`create_app` accepts any instance, so tests
  build apps around their own configuration.
- **Upstream access** goes through one ``httpx.AsyncClient`` opened in the
  application lifespan and shared by all requests (connection pooling only,
  no per-request state).
- **Generation** is delegated to
  :class:`~genrelay.core.relay.GenerationRelay`, stored on ``app.state``.
- **Errors** raised by the relay are :class:`~genrelay.core.errors.RelayError`
  subclasses and are rendered by a single exception handler.
- **Static files** from ``config.public_dir`` are mounted at ``/`` when that
  directory exists.

Endpoints
---------
========  ==================  ==========================================
Method    Path                Purpose
========  ==================  ==========================================
POST      ``/api/generate``   Submit, poll and fetch one generation
GET       ``/api/test``       Validate the configured credential
GET       ``/health``         Liveness check with a UTC timestamp
========  ==================  ==========================================

Usage
-----
CLI (installed entry point)::

    genrelay

Direct invocation::

    python -m genrelay.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from genrelay import __version__
from genrelay.api.models import GenerateRequest, GenerateResponse, HealthResponse, ProbeResponse
from genrelay.core.config import RelayConfig, config
from genrelay.core.errors import RelayError
from genrelay.core.relay import GenerationRelay
from genrelay.core.upstream import InferenceClient

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

router = APIRouter()


def _utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and ``Z``."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@router.post("/api/generate", response_model=GenerateResponse)
async def generate_image(request: Request, body: GenerateRequest | None = None) -> dict:
    """Relay one image generation to the inference API.

    Blocks (asynchronously) until the upstream job finishes, fails, or
    exhausts the attempt ceiling.  Polling stops early if the caller
    disconnects.

    Args:
        body: Validated :class:`GenerateRequest` payload.  An absent or empty
            body is treated as a request without a prompt.
        request: The raw request, used to detect client disconnects.

    Returns:
        ``{"success": True, "data": <upstream result payload>}``.

    Raises:
        RelayError: Rendered by the application's exception handler as 400,
            408 or 500 depending on the failure.
    """
    if body is None:
        body = GenerateRequest()
    relay: GenerationRelay = request.app.state.relay
    result = await relay.generate(
        body.to_generation_request(),
        disconnected=request.is_disconnected,
    )
    return result.to_response()


@router.get("/api/test", response_model=ProbeResponse)
async def probe_credential(request: Request):
    """Validate the configured credential with a minimal upstream submit.

    Returns:
        ``{"success": True, "message", "request_id"}`` on success, otherwise
        a JSON error body with ``success: False`` and the relay's status code.
    """
    relay: GenerationRelay = request.app.state.relay
    try:
        return await relay.probe()
    except RelayError as exc:
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, **exc.to_response()},
        )


@router.get("/health", response_model=HealthResponse)
async def health_check() -> dict:
    """Liveness check.  Has no side effects."""
    return {"status": "healthy", "timestamp": _utc_timestamp()}


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


async def _relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_response())


def create_app(
    app_config: RelayConfig | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        app_config: Configuration to run with.  Defaults to the global
            :data:`~genrelay.core.config.config`.
        transport: Optional httpx transport for upstream calls.  Tests pass
            an ``httpx.MockTransport`` here; production leaves it ``None``.

    Returns:
        A configured :class:`FastAPI` instance.
    """
    cfg = app_config or config

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # --- Startup -------------------------------------------------------
        async with httpx.AsyncClient(
            timeout=cfg.request_timeout_seconds,
            transport=transport,
        ) as http:
            app.state.relay = GenerationRelay(cfg, InferenceClient(http, cfg))
            logger.info(
                f"Relay ready: upstream={cfg.api_base_url} model={cfg.model_id} "
                f"max_poll_attempts={cfg.max_poll_attempts} "
                f"poll_interval={cfg.poll_interval_seconds}s"
            )
            if not cfg.has_credential:
                logger.warning("MODEL_ACCESS_KEY is not configured; generation requests will fail")

            yield  # Application runs here.

        # --- Shutdown ------------------------------------------------------
        logger.info("Upstream HTTP client closed on shutdown.")

    app = FastAPI(
        title="Generation Relay",
        description="Relays image generation prompts to an asynchronous inference API.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RelayError, _relay_error_handler)
    app.include_router(router)

    # Mounted last: a mount at "/" would otherwise shadow the API routes.
    if cfg.public_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(cfg.public_dir), html=True), name="public")
        logger.info(f"Serving static files from {cfg.public_dir}")

    return app


app = create_app()


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Host and port come from :data:`~genrelay.core.config.config`
    (``SERVER_HOST`` and ``PORT``).  Defaults to ``0.0.0.0:3000``.

    Registered as the ``genrelay`` console script in ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)
    uvicorn.run(
        "genrelay.api.main:app",
        host=config.server_host,
        port=config.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
