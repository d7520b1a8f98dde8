"""Integration test fixtures.

Provides the Starlette app wired to an in-memory AppState (see make_state in
tests/conftest.py) and an httpx client speaking to it over ASGITransport, so
no real server is started.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from jetpacks.server import create_app

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from jetpacks.state import AppState


@pytest.fixture()
def app_state(make_state: Callable[..., AppState]) -> AppState:
    return make_state()


@pytest.fixture()
async def client(app_state: AppState) -> AsyncIterator[httpx.AsyncClient]:
    app = create_app(state=app_state)
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    ) as http_client:
        yield http_client
