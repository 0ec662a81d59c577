from __future__ import annotations

from typing import Optional

from fanout.core.config import Settings, settings as default_settings

from .nodes import Schedule, exponential, recurs, spaced


def default_retry_schedule(settings: Optional[Settings] = None) -> Schedule:
    """
    Build the configured retry policy.

    Exponential backoff, never slower than the spaced interval, bounded by the
    elapsed-time budget and by the maximum number of retries.
    """
    cfg = default_settings if settings is None else settings
    backoff = exponential(
        cfg.RETRY_BACKOFF_BASE_SECONDS,
        cfg.RETRY_BACKOFF_MULTIPLIER,
        max_delay=cfg.RETRY_BACKOFF_MAX_SECONDS,
    )
    policy = backoff.either(spaced(cfg.RETRY_SPACED_INTERVAL_SECONDS)).up_to(
        cfg.RETRY_MAX_ELAPSED_SECONDS
    )
    return policy & recurs(cfg.RETRY_MAX_ATTEMPTS)
