"""Shared test fixtures for the jetpacks test suite."""

from __future__ import annotations

import pytest

from jetpacks.config import Settings
from jetpacks.models.document import Document, ParserConfig
from jetpacks.parser import parse_document_text
from jetpacks.state import AppState
from jetpacks.store import DocumentStore

SAMPLE_README = """\
# Jetpacks

Small, self-contained guides.

## Jetpacks

## Installing Go

Download the tarball.

```sh
## not a heading, just a comment
tar -C /usr/local -xzf go.tar.gz
```

## Writing a Dockerfile

Start from scratch.
"""


@pytest.fixture()
def parser_config() -> ParserConfig:
    return ParserConfig()


@pytest.fixture()
def sample_readme() -> str:
    return SAMPLE_README


@pytest.fixture()
def sample_document(parser_config: ParserConfig) -> Document:
    """SAMPLE_README parsed with the default layout."""
    return parse_document_text(SAMPLE_README, parser_config)


class FakeFetcher:
    """In-memory FetcherProtocol: replays queued responses, repeating the last one."""

    def __init__(self, *responses: str | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[str] = []

    async def fetch(self, url: str) -> str:
        self.calls.append(url)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


WEBHOOK_SECRET = b"s3cret"


@pytest.fixture()
def make_state(sample_document: Document, parser_config: ParserConfig):
    """Factory for an AppState serving sample_document with a FakeFetcher."""

    def _make(*responses: str | Exception, **settings_overrides: object) -> AppState:
        return AppState(
            settings=Settings(**settings_overrides),
            parser_config=parser_config,
            fetcher=FakeFetcher(*(responses or (SAMPLE_README,))),
            store=DocumentStore(sample_document),
            webhook_secret=WEBHOOK_SECRET,
        )

    return _make
