"""Webhook authentication: shared-secret loading and HMAC-SHA1 verification."""

from __future__ import annotations

import base64
import hashlib
import hmac
import secrets
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from jetpacks.config import WebhookSettings

log = structlog.get_logger()

_GITHUB_PREFIX = "sha1="


def load_webhook_secret(settings: WebhookSettings) -> bytes:
    """Return the shared secret used to sign webhook payloads.

    ``secret_file`` wins over an inline ``secret``. When neither is configured
    a random secret is generated, so no webhook can be authenticated until an
    operator sets one.
    """
    if settings.secret_file:
        path = Path(settings.secret_file).expanduser()
        secret = path.read_text(encoding="utf-8").strip()
        if not secret:
            raise ValueError(f"Webhook secret file is empty: {path}")
        log.info("webhook_secret_loaded", source="file", path=str(path))
        return secret.encode("utf-8")

    if settings.secret is not None and settings.secret.get_secret_value():
        log.info("webhook_secret_loaded", source="settings")
        return settings.secret.get_secret_value().encode("utf-8")

    log.warning(
        "webhook_secret_missing",
        message=(
            "No webhook secret configured; generated a random one. "
            "Set JETPACKS__WEBHOOK__SECRET_FILE to accept refresh webhooks."
        ),
    )
    return secrets.token_urlsafe(32).encode("utf-8")


def sign_payload(secret: bytes, body: bytes) -> str:
    """Return the GitHub-style ``sha1=<hex>`` signature of *body*."""
    return _GITHUB_PREFIX + hmac.new(secret, body, hashlib.sha1).hexdigest()


def verify_signature(secret: bytes, body: bytes, signature: str | None) -> bool:
    """Check a webhook signature header against HMAC-SHA1 of the raw *body*.

    Accepts ``sha1=<hex digest>`` as sent by GitHub, and a bare base64 digest
    as sent by older clients of this service.
    """
    if not signature:
        return False

    digest = hmac.new(secret, body, hashlib.sha1).digest()
    if signature.startswith(_GITHUB_PREFIX):
        expected = digest.hex()
        provided = signature[len(_GITHUB_PREFIX) :].lower()
    else:
        expected = base64.b64encode(digest).decode("ascii")
        provided = signature

    return hmac.compare_digest(expected.encode("ascii"), provided.encode("utf-8"))
