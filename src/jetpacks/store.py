"""Single-slot holder for the currently served Document."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jetpacks.models.document import Document


class DocumentStore:
    """Owns the current Document behind a lock.

    Documents are immutable, so readers only hold the lock long enough to take
    a reference. Writers build the replacement outside the lock and hold it
    only for the swap.

    Overlapping refreshes are ordered by ticket: a writer takes a ticket from
    ``reserve()`` before it starts fetching, and a swap carrying an older
    ticket than the last applied one is discarded.
    """

    def __init__(self, document: Document) -> None:
        self._document = document
        self._lock = asyncio.Lock()
        self._issued = 0
        self._applied = 0

    async def get(self) -> Document:
        async with self._lock:
            return self._document

    def reserve(self) -> int:
        """Return a ticket that orders this refresh after all earlier ones."""
        self._issued += 1
        return self._issued

    async def replace(self, document: Document, ticket: int | None = None) -> Document | None:
        """Swap in *document* and return the one it replaced.

        Returns None without swapping when *ticket* is older than the ticket of
        the document currently held.
        """
        async with self._lock:
            if ticket is not None:
                if ticket < self._applied:
                    return None
                self._applied = ticket
            previous = self._document
            self._document = document
            return previous
