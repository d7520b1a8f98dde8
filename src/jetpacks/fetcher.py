"""HTTP fetcher for the source README.

All network I/O goes through a single Fetcher instance. The Fetcher receives
an httpx.AsyncClient via constructor injection — the server lifespan owns the
client lifecycle.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import urljoin

import httpx
import structlog

from jetpacks import __version__
from jetpacks.errors import ErrorCode, JetpacksError

if TYPE_CHECKING:
    from jetpacks.config import SourceSettings

log = structlog.get_logger()


def build_http_client(settings: SourceSettings) -> httpx.AsyncClient:
    """Create the shared httpx client. Called once at startup."""
    return httpx.AsyncClient(
        follow_redirects=False,
        timeout=httpx.Timeout(settings.timeout_seconds),
        headers={"User-Agent": f"jetpacks/{__version__}"},
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


class Fetcher:
    """Fetches the source README, following a bounded number of redirects."""

    def __init__(self, client: httpx.AsyncClient, max_redirects: int = 3) -> None:
        self._client = client
        self._max_redirects = max_redirects

    async def fetch(self, url: str) -> str:
        """Fetch a URL and return its text content.

        Raises JetpacksError on network errors, redirect loops and non-2xx
        responses.
        """
        current_url = url

        try:
            for hop in range(self._max_redirects + 1):
                response = await self._client.get(current_url)

                if response.is_redirect and "location" in response.headers:
                    if hop == self._max_redirects:
                        raise JetpacksError(
                            code=ErrorCode.SOURCE_FETCH_FAILED,
                            message=f"Too many redirects fetching {url}",
                            suggestion="The source URL has an unusually long redirect chain.",
                            recoverable=False,
                        )
                    current_url = urljoin(current_url, response.headers["location"])
                    continue

                if not response.is_success:
                    if response.status_code == 404:
                        raise JetpacksError(
                            code=ErrorCode.SOURCE_NOT_FOUND,
                            message=f"HTTP 404 fetching {url}",
                            suggestion="Check source.url; the README does not exist there.",
                            recoverable=False,
                        )
                    raise JetpacksError(
                        code=ErrorCode.SOURCE_FETCH_FAILED,
                        message=f"HTTP {response.status_code} fetching {url}",
                        suggestion="The source host may be temporarily unavailable.",
                        recoverable=True,
                    )

                log.info(
                    "fetch_complete",
                    url=url,
                    status_code=response.status_code,
                    content_length=len(response.text),
                )
                return response.text

        except JetpacksError:
            raise
        except httpx.HTTPError as exc:
            raise JetpacksError(
                code=ErrorCode.SOURCE_FETCH_FAILED,
                message=f"Network error fetching {url}: {exc}",
                suggestion="The source host may be temporarily unavailable.",
                recoverable=True,
            ) from exc

        # Unreachable but satisfies the type checker
        raise JetpacksError(
            code=ErrorCode.SOURCE_FETCH_FAILED,
            message="Redirect loop",
            suggestion="",
            recoverable=False,
        )
