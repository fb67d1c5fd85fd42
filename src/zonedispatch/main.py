"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import drivers, health, orders, routes, zones
from .config import settings
from .errors import TransportError
from .persistence import ZoneStore, get_store
from .services.cache import ZoneAssignmentCoordinator, ZoneCache
from .services.routing.sequencing import RouteSequencingClient
from .services.zoning.builder import ZoneBuilder

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(level=level or settings.log_level, format=LOG_FORMAT)


def _make_sequencer() -> RouteSequencingClient | None:
    if not (settings.route_sequencing_url or settings.backend_base_url):
        return None
    return RouteSequencingClient()


def create_app(store: ZoneStore | None = None, sequencer: RouteSequencingClient | None = None) -> FastAPI:
    configure_logging()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cache = ZoneCache()
        zone_store = store or get_store()
        coordinator = ZoneAssignmentCoordinator(
            cache,
            zone_store,
            builder=ZoneBuilder(),
            sequencer=sequencer or _make_sequencer(),
        )
        app.state.cache = cache
        app.state.coordinator = coordinator
        logger.info(f"Started with '{zone_store.name}' persistence backend")
        try:
            await coordinator.refresh()
        except TransportError as exc:
            logger.warning(f"Initial cache load failed, starting empty: {exc}")
        try:
            yield
        finally:
            await coordinator.aclose()
            if coordinator.sequencer is not None:
                await coordinator.sequencer.aclose()
            await zone_store.aclose()
            cache.reset()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(zones.router, prefix=settings.api_prefix)
    app.include_router(orders.router, prefix=settings.api_prefix)
    app.include_router(drivers.router, prefix=settings.api_prefix)
    app.include_router(routes.router, prefix=settings.api_prefix)
    return app


app = create_app()
