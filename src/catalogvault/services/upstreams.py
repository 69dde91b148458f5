"""Scheduler registry: one independent FetchScheduler per upstream."""

from __future__ import annotations

import logging

from catalogvault.config.models import SchedulerSettings, UpstreamsSettings
from catalogvault.services.fetch_scheduler import FetchExecutor, FetchScheduler
from catalogvault.services.rate_limiter import ReservoirRateLimiter
from catalogvault.shared.constants import UpstreamNames

logger = logging.getLogger(__name__)


def build_scheduler(
    name: str,
    settings: SchedulerSettings,
    executor: FetchExecutor,
) -> FetchScheduler:
    """Create a scheduler from its settings.

    A reservoir of 0 or None produces a scheduler limited only by concurrency
    and min_time.
    """
    limiter = (
        ReservoirRateLimiter(settings.reservoir, settings.refresh_interval)
        if settings.reservoir
        else None
    )
    return FetchScheduler(
        name=name,
        executor=executor,
        limiter=limiter,
        max_concurrent=settings.max_concurrent,
        min_time=settings.min_time,
    )


def build_schedulers(
    upstreams: UpstreamsSettings,
    executor: FetchExecutor,
) -> dict[str, FetchScheduler]:
    """Build the scheduler registry keyed by upstream name."""
    schedulers = {
        name: build_scheduler(name, getattr(upstreams, name).scheduler, executor)
        for name in UpstreamNames.ALL
    }
    logger.debug("Built schedulers for upstreams: %s", ", ".join(schedulers))
    return schedulers
