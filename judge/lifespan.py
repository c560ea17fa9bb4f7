"""Startup and shutdown of the judging service's shared resources."""

import asyncio
import logging
from dataclasses import dataclass, field

from judge import db, state
from judge.config import get_settings
from judge.sandbox import register_cleanup, run_periodic_cleanup

logger = logging.getLogger(__name__)


@dataclass
class LifespanResources:
    """Container for resources initialized during lifespan."""

    repository: db.PostgresRepository | None = None
    stop_event: asyncio.Event | None = None
    background_tasks: list[asyncio.Task] = field(default_factory=list)
    db_enabled: bool = False


async def init_database() -> bool:
    """Initialize the database pool if persistence is enabled.

    Returns:
        True if the pool is open, False otherwise.
    """
    if not get_settings().postgres.enabled:
        return False
    try:
        await db.init_pool()
        return True
    except Exception as e:
        logger.warning("Failed to initialize database: %s", e)
    return False


def start_cleanup_task(resources: LifespanResources) -> None:
    settings = get_settings().cleanup
    if not settings.enabled or settings.interval_sec <= 0:
        return
    resources.stop_event = asyncio.Event()
    resources.background_tasks.append(
        asyncio.create_task(run_periodic_cleanup(resources.stop_event, settings.interval_sec))
    )


async def setup_resources() -> LifespanResources:
    """Set up all shared resources."""
    resources = LifespanResources()

    register_cleanup()
    start_cleanup_task(resources)

    resources.db_enabled = await init_database()
    if resources.db_enabled:
        resources.repository = db.PostgresRepository()

    state.repository = resources.repository
    return resources


async def cleanup_resources(resources: LifespanResources) -> None:
    """Clean up all resources on shutdown."""
    if resources.background_tasks and resources.stop_event:
        resources.stop_event.set()
        try:
            await asyncio.wait_for(
                asyncio.gather(*resources.background_tasks, return_exceptions=True),
                timeout=5,
            )
        except asyncio.TimeoutError:
            for t in resources.background_tasks:
                t.cancel()

    if resources.db_enabled:
        try:
            await db.close_pool()
        except Exception as e:
            logger.warning("Failed to close database pool: %s", e)

    state.repository = None
