"""Fetch → parse → swap pipeline for the served Document."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from jetpacks.parser import parse_document_text

if TYPE_CHECKING:
    from jetpacks.models.document import Document, ParserConfig
    from jetpacks.protocols import FetcherProtocol
    from jetpacks.state import AppState

log = structlog.get_logger()


async def fetch_document(
    fetcher: FetcherProtocol,
    url: str,
    config: ParserConfig,
) -> Document:
    """Download the source README and parse it into a fresh Document.

    Raises JetpacksError (StructuralError included) on failure.
    """
    text = await fetcher.fetch(url)
    document = parse_document_text(text, config)
    log.info(
        "document_parsed",
        url=url,
        title=document.title,
        articles=len(document.sections),
    )
    return document


async def refresh_document(state: AppState) -> Document:
    """Replace the current Document with a freshly fetched one.

    The new Document is built before the store lock is taken; on any failure
    the store is left untouched and the error propagates. When a refresh that
    started later has already been applied, the fetched Document is discarded
    and the newer one stays current.
    """
    url = state.settings.source.url
    ticket = state.store.reserve()
    try:
        document = await fetch_document(state.fetcher, url, state.parser_config)
    except Exception:
        log.warning("document_refresh_failed", url=url, exc_info=True)
        raise

    previous = await state.store.replace(document, ticket)
    if previous is None:
        log.info("document_refresh_superseded", ticket=ticket)
        return await state.store.get()

    log.info(
        "document_refreshed",
        articles=len(document.sections),
        previous_articles=len(previous.sections),
    )
    return document
