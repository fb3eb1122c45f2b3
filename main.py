# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI

from core.providers import init_gateway
from core.settings import Settings, get_settings
from providers.storage import ObjectStore

# Routers
from health.router import router as health_router
from reports.router import router as reports_router

log = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None, store: Optional[ObjectStore] = None) -> FastAPI:
    """
    Build the gateway app.

    `settings` and `store` default to the environment and the configured
    backend; tests pass their own. Configuration errors raised while the
    gateway is built abort startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        s = settings or get_settings()
        gateway = init_gateway(app, s, store)
        log.info("Report file gateway ready (strategy=%s, backend=%s)", gateway.strategy_name, s.store.backend)
        try:
            yield
        finally:
            st = getattr(app.state, "store", None)
            if st is not None:
                st.close()

    app = FastAPI(title="Report File Gateway", lifespan=lifespan)

    app.include_router(health_router)
    app.include_router(reports_router)

    return app


# ---------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------

if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    uvicorn.run(
        create_app(),
        host="0.0.0.0",
        port=9090,
    )
