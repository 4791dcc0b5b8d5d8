"""FastAPI application factory with lifespan management."""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI

from tether.config import TetherConfig, config
from tether.logging_setup import configure_logging
from tether.runtime import Runtime, build_runtime
from tether.version import __version__

logger = logging.getLogger(__name__)


def create_app(runtime: Optional[Runtime] = None, cfg: Optional[TetherConfig] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    A prebuilt *runtime* replaces the default wiring (tests pass fakes here).
    """
    cfg = cfg or config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # ── Startup ──
        configure_logging(cfg.log_level)
        logger.info(f"tether v{__version__} starting...")
        app.state.runtime = runtime or build_runtime(cfg)

        yield

        # ── Shutdown ──
        logger.info("tether shutting down...")
        close = getattr(app.state.runtime.store, "close", None)
        if close is not None:
            await close()

    app = FastAPI(
        title="tether",
        description="Self-healing API step execution.",
        version=__version__,
        lifespan=lifespan,
    )

    from tether.api.routes import call, steps, runs, health
    app.include_router(call.router, prefix="/v1")
    app.include_router(steps.router, prefix="/v1")
    app.include_router(runs.router, prefix="/v1")
    app.include_router(health.router, prefix="/v1")

    return app

app = create_app()
