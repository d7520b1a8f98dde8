"""Background refresh scheduler.

Only started when ``refresh.poll_interval_minutes`` is positive; otherwise the
webhook is the sole refresh trigger.
"""

from __future__ import annotations

import asyncio
import random
from typing import TYPE_CHECKING

import structlog

from jetpacks.errors import JetpacksError
from jetpacks.refresh import refresh_document

if TYPE_CHECKING:
    from jetpacks.state import AppState

log = structlog.get_logger()

REFRESH_INITIAL_BACKOFF_SECONDS = 60
REFRESH_MAX_BACKOFF_SECONDS = 60 * 60
REFRESH_MAX_TRANSIENT_BACKOFF_ATTEMPTS = 8


def _jittered_delay(base_seconds: int) -> float:
    return base_seconds * random.uniform(0.8, 1.2)


async def run_refresh_scheduler(state: AppState) -> None:
    """Refresh the document every poll interval, backing off on transient failures."""
    poll_interval_seconds = state.settings.refresh.poll_interval_minutes * 60

    while True:
        await asyncio.sleep(poll_interval_seconds)
        backoff_seconds = REFRESH_INITIAL_BACKOFF_SECONDS
        consecutive_transient_failures = 0

        while True:
            try:
                await refresh_document(state)
                break
            except JetpacksError as exc:
                if not exc.recoverable:
                    log.warning("refresh_scheduler_failed", code=exc.code, recoverable=False)
                    break

                consecutive_transient_failures += 1
                if consecutive_transient_failures >= REFRESH_MAX_TRANSIENT_BACKOFF_ATTEMPTS:
                    log.warning(
                        "refresh_transient_retry_suspended",
                        consecutive_failures=consecutive_transient_failures,
                        cooldown_seconds=poll_interval_seconds,
                    )
                    break

                delay = _jittered_delay(backoff_seconds)
                log.warning(
                    "refresh_scheduler_retry",
                    code=exc.code,
                    retry_in_seconds=round(delay, 1),
                )
                await asyncio.sleep(delay)
                backoff_seconds = min(backoff_seconds * 2, REFRESH_MAX_BACKOFF_SECONDS)
            except Exception:
                log.warning("refresh_scheduler_error", exc_info=True)
                break
