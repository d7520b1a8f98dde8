"""Application state container.

AppState is created once at server startup (inside the Starlette lifespan)
and read by every request handler through ``request.app.state.jetpacks``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import httpx

    from jetpacks.config import Settings
    from jetpacks.models.document import ParserConfig
    from jetpacks.protocols import FetcherProtocol
    from jetpacks.store import DocumentStore


@dataclass
class AppState:
    """Holds all shared runtime state. Passed to every handler."""

    settings: Settings
    parser_config: ParserConfig
    fetcher: FetcherProtocol
    store: DocumentStore
    webhook_secret: bytes
    http_client: httpx.AsyncClient | None = None
