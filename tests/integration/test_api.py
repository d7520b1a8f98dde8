"""HTTP-level tests for the articles API and the refresh webhook."""

from __future__ import annotations

import base64
import hashlib
import hmac
from typing import TYPE_CHECKING

import httpx

from jetpacks import __version__
from jetpacks.errors import ErrorCode, JetpacksError
from jetpacks.server import ARTICLES_PATH, create_app
from jetpacks.webhook import sign_payload

if TYPE_CHECKING:
    from collections.abc import Callable

    from jetpacks.models.document import Document
    from jetpacks.state import AppState

UPDATED_README = "# Jetpacks v2\n\nNew intro.\n\n## Jetpacks\n\n## Only article\n\nbody\n"
PAYLOAD = b'{"ref": "refs/heads/master"}'


def _signed_headers(state: AppState, body: bytes = PAYLOAD) -> dict[str, str]:
    return {"X-Hub-Signature": sign_payload(state.webhook_secret, body)}


# ---------------------------------------------------------------------------
# GET /api/jetpack/articles
# ---------------------------------------------------------------------------


class TestGetArticles:
    async def test_returns_current_document(
        self, client: httpx.AsyncClient, sample_document: Document
    ) -> None:
        response = await client.get(ARTICLES_PATH)
        assert response.status_code == 200
        assert response.json() == sample_document.to_payload()

    async def test_json_shape(self, client: httpx.AsyncClient) -> None:
        data = (await client.get(ARTICLES_PATH)).json()
        assert set(data) == {"mainTitle", "mainDescription", "articles"}
        assert set(data["articles"][0]) == {"title", "bodyMarkdown"}
        assert data["mainTitle"] == "Jetpacks"

    async def test_unsupported_method(self, client: httpx.AsyncClient) -> None:
        response = await client.put(ARTICLES_PATH)
        assert response.status_code == 405


# ---------------------------------------------------------------------------
# POST /api/jetpack/articles
# ---------------------------------------------------------------------------


class TestUpdateWebhook:
    async def test_signed_request_refreshes(
        self, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        app_state.fetcher.responses = [UPDATED_README]  # type: ignore[attr-defined]

        headers = _signed_headers(app_state)
        response = await client.post(ARTICLES_PATH, content=PAYLOAD, headers=headers)

        assert response.status_code == 202
        assert response.text == "Articles Updated Successfully"
        data = (await client.get(ARTICLES_PATH)).json()
        assert data["mainTitle"] == "Jetpacks v2"
        assert data["articles"] == [{"title": "Only article", "bodyMarkdown": "body\n"}]

    async def test_base64_signature_accepted(
        self, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        digest = hmac.new(app_state.webhook_secret, PAYLOAD, hashlib.sha1).digest()
        headers = {"X-Hub-Signature": base64.b64encode(digest).decode("ascii")}
        response = await client.post(ARTICLES_PATH, content=PAYLOAD, headers=headers)
        assert response.status_code == 202

    async def test_bad_signature_rejected_without_fetch(
        self, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        headers = {"X-Hub-Signature": sign_payload(b"wrong", PAYLOAD)}
        response = await client.post(ARTICLES_PATH, content=PAYLOAD, headers=headers)

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == ErrorCode.SIGNATURE_MISMATCH
        assert error["message"].startswith("Articles Update Failed:")
        assert app_state.fetcher.calls == []  # type: ignore[attr-defined]

    async def test_missing_signature_rejected(self, client: httpx.AsyncClient) -> None:
        response = await client.post(ARTICLES_PATH, content=PAYLOAD)
        assert response.status_code == 403

    async def test_signature_over_different_body_rejected(
        self, client: httpx.AsyncClient, app_state: AppState
    ) -> None:
        response = await client.post(
            ARTICLES_PATH, content=PAYLOAD + b"x", headers=_signed_headers(app_state)
        )
        assert response.status_code == 403

    async def test_malformed_source_keeps_previous_document(
        self,
        client: httpx.AsyncClient,
        app_state: AppState,
        sample_document: Document,
    ) -> None:
        malformed = "# Title\n\nno divider anywhere\n"
        app_state.fetcher.responses = [malformed]  # type: ignore[attr-defined]

        headers = _signed_headers(app_state)
        response = await client.post(ARTICLES_PATH, content=PAYLOAD, headers=headers)

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == ErrorCode.DOCUMENT_MALFORMED
        assert error["recoverable"] is False
        assert (await client.get(ARTICLES_PATH)).json() == sample_document.to_payload()

    async def test_fetch_failure_keeps_previous_document(
        self,
        client: httpx.AsyncClient,
        app_state: AppState,
        sample_document: Document,
    ) -> None:
        app_state.fetcher.responses = [  # type: ignore[attr-defined]
            JetpacksError(
                code=ErrorCode.SOURCE_FETCH_FAILED,
                message="HTTP 503 fetching README",
                suggestion="",
                recoverable=True,
            )
        ]

        headers = _signed_headers(app_state)
        response = await client.post(ARTICLES_PATH, content=PAYLOAD, headers=headers)

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == ErrorCode.SOURCE_FETCH_FAILED
        assert error["message"] == "Articles Update Failed: HTTP 503 fetching README"
        assert (await client.get(ARTICLES_PATH)).json() == sample_document.to_payload()

    async def test_custom_signature_header(
        self, make_state: Callable[..., AppState]
    ) -> None:
        state = make_state(webhook={"signature_header": "X-Jetpacks-Signature"})
        app = create_app(state=state)
        async with httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app), base_url="http://testserver"
        ) as custom_client:
            signature = sign_payload(state.webhook_secret, PAYLOAD)
            rejected = await custom_client.post(
                ARTICLES_PATH, content=PAYLOAD, headers={"X-Hub-Signature": signature}
            )
            accepted = await custom_client.post(
                ARTICLES_PATH, content=PAYLOAD, headers={"X-Jetpacks-Signature": signature}
            )
        assert rejected.status_code == 403
        assert accepted.status_code == 202


# ---------------------------------------------------------------------------
# GET /healthz
# ---------------------------------------------------------------------------


async def test_healthz(client: httpx.AsyncClient) -> None:
    response = await client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "version": __version__, "articles": 2}
