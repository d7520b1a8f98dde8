"""HTTP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState in the Starlette lifespan (initial load is fatal on failure)
- Register routes
- Start uvicorn
"""

from __future__ import annotations

import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.applications import Starlette
from starlette.requests import ClientDisconnect
from starlette.responses import JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from jetpacks import __version__
from jetpacks.config import Settings
from jetpacks.errors import ErrorCode, JetpacksError
from jetpacks.fetcher import Fetcher, build_http_client
from jetpacks.refresh import fetch_document, refresh_document
from jetpacks.schedulers import run_refresh_scheduler
from jetpacks.state import AppState
from jetpacks.store import DocumentStore
from jetpacks.webhook import load_webhook_secret, verify_signature

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

log = structlog.get_logger()

ARTICLES_PATH = "/api/jetpack/articles"


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


async def build_state(settings: Settings) -> AppState:
    """Wire every shared component and load the first Document.

    Raises if the initial fetch or parse fails: the server never starts
    without a document to serve.
    """
    http_client = build_http_client(settings.source)
    fetcher = Fetcher(http_client, max_redirects=settings.source.max_redirects)
    parser_config = settings.parser.to_parser_config()

    try:
        webhook_secret = load_webhook_secret(settings.webhook)
        document = await fetch_document(fetcher, settings.source.url, parser_config)
    except Exception:
        log.error("initial_load_failed", url=settings.source.url, exc_info=True)
        await http_client.aclose()
        raise

    return AppState(
        settings=settings,
        parser_config=parser_config,
        fetcher=fetcher,
        store=DocumentStore(document),
        webhook_secret=webhook_secret,
        http_client=http_client,
    )


@asynccontextmanager
async def lifespan(app: Starlette) -> AsyncGenerator[None, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings: Settings = app.state.settings

    log.info("server_starting", version=__version__, source=settings.source.url)

    state = await build_state(settings)
    app.state.jetpacks = state

    refresh_task: asyncio.Task[None] | None = None
    if settings.refresh.poll_interval_minutes > 0:
        refresh_task = asyncio.create_task(run_refresh_scheduler(state))

    document = await state.store.get()
    log.info(
        "server_started",
        version=__version__,
        articles=len(document.sections),
        polling=refresh_task is not None,
    )

    try:
        yield
    finally:
        if refresh_task is not None:
            refresh_task.cancel()
            with suppress(asyncio.CancelledError):
                await refresh_task
        if state.http_client is not None:
            await state.http_client.aclose()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

_ERROR_STATUS: dict[ErrorCode, int] = {
    ErrorCode.INVALID_REQUEST: 400,
    ErrorCode.SIGNATURE_MISMATCH: 403,
    ErrorCode.SOURCE_NOT_FOUND: 502,
    ErrorCode.SOURCE_FETCH_FAILED: 502,
    ErrorCode.DOCUMENT_MALFORMED: 502,
}


def _serialise_update_error(error: JetpacksError) -> JSONResponse:
    """Convert a JetpacksError to the webhook error envelope."""
    payload = error.to_dict()
    payload["error"]["message"] = f"Articles Update Failed: {error.message}"
    return JSONResponse(payload, status_code=_ERROR_STATUS.get(error.code, 500))


async def get_articles(request: Request) -> Response:
    state: AppState = request.app.state.jetpacks
    document = await state.store.get()
    return JSONResponse(document.to_payload())


async def update_articles(request: Request) -> Response:
    """Webhook: verify the payload signature, then re-fetch and swap the Document."""
    state: AppState = request.app.state.jetpacks
    header = state.settings.webhook.signature_header
    try:
        try:
            body = await request.body()
        except ClientDisconnect as exc:
            raise JetpacksError(
                code=ErrorCode.INVALID_REQUEST,
                message="Request body could not be read",
                suggestion="Resend the webhook.",
                recoverable=True,
            ) from exc

        if not verify_signature(state.webhook_secret, body, request.headers.get(header)):
            log.warning("webhook_signature_mismatch", header=header)
            raise JetpacksError(
                code=ErrorCode.SIGNATURE_MISMATCH,
                message="Signature sent and signature generated do not match",
                suggestion=f"Sign the raw body with HMAC-SHA1 and send it in {header}.",
                recoverable=False,
            )

        document = await refresh_document(state)
    except JetpacksError as exc:
        log.warning(
            "webhook_error",
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _serialise_update_error(exc)
    except Exception:
        log.error("webhook_unexpected_error", exc_info=True)
        raise

    log.info("webhook_refresh_complete", articles=len(document.sections))
    return PlainTextResponse("Articles Updated Successfully", status_code=202)


async def healthz(request: Request) -> Response:
    state: AppState = request.app.state.jetpacks
    document = await state.store.get()
    return JSONResponse(
        {"status": "ok", "version": __version__, "articles": len(document.sections)}
    )


def create_app(settings: Settings | None = None, state: AppState | None = None) -> Starlette:
    """Build the Starlette application.

    With *state* given the lifespan is skipped and the state is used as-is.
    """
    routes = [
        Route(ARTICLES_PATH, get_articles, methods=["GET"]),
        Route(ARTICLES_PATH, update_articles, methods=["POST"]),
        Route("/healthz", healthz, methods=["GET"]),
    ]

    if state is not None:
        app = Starlette(routes=routes)
        app.state.settings = state.settings
        app.state.jetpacks = state
        return app

    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.settings = settings or Settings()
    return app


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()
    _setup_logging(settings)

    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_config=None,  # Disable uvicorn's default logging; structlog handles it
    )


if __name__ == "__main__":
    main()
