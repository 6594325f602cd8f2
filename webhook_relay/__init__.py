# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webhook_relay.logging import logger
from webhook_relay.middlewares.correlation_id import CorrelationIDMiddleware
from webhook_relay.middlewares.prometheus import PrometheusMiddleware
from webhook_relay.routing import collect_subrouters
from webhook_relay.settings import app_settings

__version__ = "1.0.0"


async def startup() -> None:
    """
    Log the listening banner and initialize the app info metric.
    """
    from webhook_relay.utils.metrics import app_info

    app_info.labels(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        environment=app_settings.ENVIRONMENT,
    ).set(1)

    logger.info(
        f"{app_settings.SERVICE_NAME} listening on "
        f"{app_settings.HOST}:{app_settings.PORT} "
        "(POST /alert, POST /alert/{webhook_id}, GET /status, "
        "GET /test, WS /)"
    )


async def shutdown() -> None:
    """
    Close every live subscriber session so their registry entries and
    writer tasks are gone before the loop stops.
    """
    from webhook_relay.api.ws.session import shutdown_sessions

    logger.info("Application shutdown initiated")
    closed = await shutdown_sessions()
    if closed:
        logger.info(f"Closed {closed} subscriber connections")
    logger.info("Application shutdown complete")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: `startup()` before serving, `shutdown()` after."""
    await startup()
    try:
        yield
    finally:
        await shutdown()


def application() -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    - Lifespan: app info metric on startup, live sessions closed on shutdown
    - Routers collected from `api/http` and `api/ws/consumers`
    - Middleware: CORS, Prometheus, correlation IDs
    """
    app = FastAPI(
        title=app_settings.SERVICE_NAME,
        description="Relays webhook alerts to WebSocket subscribers",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(collect_subrouters())

    # Middlewares (execute in REVERSE order of registration)
    # Execution flow: CorrelationIDMiddleware → PrometheusMiddleware → CORSMiddleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.CORS_ALLOW_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(CorrelationIDMiddleware)

    return app


app = application()  # Need for fastapi cli
