"""FastAPI application - ledger gateway."""

import asyncio
import logging
import random
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gateway.app.api.routes.assets import router as assets_router
from gateway.app.api.routes.events import router as events_router
from gateway.app.api.routes.health import router as health_router
from gateway.app.api.routes.metrics import router as metrics_router
from gateway.app.api.routes.users import router as users_router
from gateway.app.background.generator import BackgroundTransactionGenerator
from gateway.app.config import Settings, get_settings
from gateway.app.dispatch.dispatcher import RequestDispatcher
from gateway.app.errors import install_error_handlers, unhandled_error_response
from gateway.app.ledger.client import LedgerClient, create_ledger_client
from gateway.app.ledger.events import BlockEventBridge, create_block_event_bridge
from gateway.app.ledger.inmemory import InMemoryLedgerNetwork
from gateway.app.session import IdentityStore
from gateway.app.streaming.broadcast import EventBroadcastGateway
from gateway.app.utils.logging import configure_logging
from gateway.app.utils.metrics import PrometheusLedgerMetrics

logger = logging.getLogger(__name__)


def create_ledger_network(settings: Settings) -> tuple[LedgerClient, BlockEventBridge]:
    """Ledger bridge when ``ledger_url`` is set, in-memory network otherwise."""
    if settings.ledger_url:
        return create_ledger_client(settings), create_block_event_bridge(settings)

    logger.warning("No ledger_url configured, using in-memory ledger network")
    network = InMemoryLedgerNetwork()
    network.seed_donations(settings.channel_name, settings.chaincode_name, settings.demo_donations)
    return network, network


async def _close(resources: list[object]) -> None:
    closed: set[int] = set()
    for resource in resources:
        aclose = getattr(resource, "aclose", None)
        if aclose is not None and id(resource) not in closed:
            closed.add(id(resource))
            await aclose()


def create_app(
    settings: Settings | None = None,
    ledger: LedgerClient | None = None,
    bridge: BlockEventBridge | None = None,
    rng: random.Random | None = None,
) -> FastAPI:
    """Build the gateway application.

    Args:
        settings: Settings (default: cached environment settings)
        ledger: Ledger client (default: chosen from settings)
        bridge: Block event bridge (default: chosen from settings)
        rng: Random source for the spend generator

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    # Only resources built here are closed on shutdown
    owned: list[object] = []
    if ledger is None or bridge is None:
        default_ledger, default_bridge = create_ledger_network(settings)
        if ledger is None:
            ledger = default_ledger
            owned.append(default_ledger)
        if bridge is None:
            bridge = default_bridge
            owned.append(default_bridge)

    metrics = PrometheusLedgerMetrics()
    identities = IdentityStore()
    broadcaster = EventBroadcastGateway(bridge, metrics=metrics)
    dispatcher = RequestDispatcher(ledger, identities, broadcaster, settings, metrics=metrics)
    generator = BackgroundTransactionGenerator(
        dispatcher, identities, settings, rng=rng, metrics=metrics
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("****************** SERVER STARTED ************************")
        logger.info("Listening on: http://%s:%s", settings.host, settings.port)
        if settings.generator_enabled:
            generator.start()
        yield
        await generator.stop()
        await _close(owned)

    app = FastAPI(title="Ledger Gateway API", version="0.1.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.identities = identities
    app.state.broadcaster = broadcaster
    app.state.dispatcher = dispatcher
    app.state.generator = generator

    timeout_sec = settings.request_timeout_ms / 1000

    @app.middleware("http")
    async def log_and_time_out(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        logger.info("New request for URL %s", request.url.path)
        try:
            return await asyncio.wait_for(call_next(request), timeout=timeout_sec)
        except TimeoutError:
            logger.error("Request %s %s timed out", request.method, request.url.path)
            return JSONResponse(status_code=500, content={"error": "Request timed out"})
        except Exception as e:
            return unhandled_error_response(request, e)

    # Added last so it wraps every error response, including the ones above
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    # Register routes
    app.include_router(health_router, tags=["health"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(users_router, tags=["users"])
    app.include_router(assets_router, tags=["assets"])
    app.include_router(events_router, tags=["events"])

    return app


app = create_app()


def run() -> None:
    """Serve the gateway with uvicorn."""
    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
