"""Bounded retry with exponential backoff for transient ingress failures."""

import time

import structlog
from protean.exceptions import ExpectedVersionError

from medstock.lot.errors import EventProcessingError
from medstock.utils.settings import get_setting

logger = structlog.get_logger(__name__)

TRANSIENT_ERRORS = (EventProcessingError, ExpectedVersionError, ConnectionError, TimeoutError)


def run_with_retry(operation, description: str, attempts: int | None = None, base_delay: float | None = None):
    """Call ``operation`` until it succeeds or the attempts run out.

    Only transient errors are retried. After the last attempt the failure is
    re-raised as an EventProcessingError so the event stays unacknowledged.
    """
    attempts = attempts or get_setting("event_retry_attempts")
    if base_delay is None:
        base_delay = get_setting("event_retry_base_delay_seconds")

    for attempt in range(1, attempts + 1):
        try:
            return operation()
        except TRANSIENT_ERRORS as exc:
            if attempt == attempts:
                logger.error("Giving up after transient failures", operation=description, attempts=attempts)
                if isinstance(exc, EventProcessingError):
                    raise
                raise EventProcessingError(f"{description} failed after {attempts} attempts: {exc}") from exc

            delay = base_delay * 2 ** (attempt - 1)
            logger.warning(
                "Transient failure, retrying",
                operation=description,
                attempt=attempt,
                delay=delay,
                error=str(exc),
            )
            time.sleep(delay)
