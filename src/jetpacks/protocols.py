"""Protocol interfaces for swappable components.

AppState and the refresh pipeline reference these protocols, not the concrete
implementations, so tests can use lightweight in-memory fetchers.
"""

from __future__ import annotations

from typing import Protocol


class FetcherProtocol(Protocol):
    """Interface for the source README fetcher."""

    async def fetch(self, url: str) -> str: ...
