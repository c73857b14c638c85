"""loopguard entry point.

Initializes the session and serves the REST decision surface:
  Settings -> LoopGuardSession -> App -> Uvicorn

Uses Starlette lifespan so the event bus runs on the same event loop
as uvicorn.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from starlette.applications import Starlette

from loopguard.api.rest import create_app
from loopguard.config import Settings
from loopguard.session import LoopGuardSession

logger = logging.getLogger(__name__)


def build_app(settings: Settings, session: LoopGuardSession | None = None) -> Starlette:
    """Build the REST app with session lifecycle bound to the lifespan."""
    session = session or LoopGuardSession(settings)

    @asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        await session.start()
        app.state.session = session
        logger.info("loopguard serving session %s", session.session_id)
        yield
        await session.close()

    return create_app(session, lifespan=lifespan)


def main() -> None:
    """Entry point — parse settings, build app, run server."""
    settings = Settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    logger.info("Oracle: %s (%s)", settings.oracle_base_url, settings.oracle_model)
    logger.info(
        "Health gate: threshold=%d every %d turns",
        settings.health_threshold,
        settings.check_interval_turns,
    )
    if not settings.oracle_api_key:
        logger.warning("GROK_API_KEY is not set — /assess will fail against the oracle")
    if settings.decision_timeout is None:
        logger.info("Interruptions wait for an operator without timeout")

    app = build_app(settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


if __name__ == "__main__":
    main()
