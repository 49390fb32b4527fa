import asyncio
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from points_service.models.enum import RewardError
from points_service.routers.reward_router import router
from points_service.middleware import (
    RequestIDMiddleware,
    RequestIDLogFilter,
    TimingMiddleware,
    LoggingMiddleware,
    SecurityHeadersMiddleware,
)
from points_service.services.token_verifier import TokenVerifier
from points_service.store.store_manager import get_store
from points_service.utils.config_loader import get_config, has_config_changed, reload_config

logger = logging.getLogger(__name__)

CONFIG_RELOAD_INTERVAL = 3600


def configure_logging(config: dict) -> None:
    log_config = config.get("logging", {})
    handler = logging.StreamHandler()
    handler.addFilter(RequestIDLogFilter())
    handler.setFormatter(logging.Formatter(log_config.get("format", "%(asctime)s [%(levelname)s] %(name)s: %(message)s")))
    root = logging.getLogger("points_service")
    root.setLevel(log_config.get("level", "INFO"))
    root.handlers = [handler]


async def config_hot_reload_task():
    """Reload config.yaml when it changes; checks every hour."""
    while True:
        await asyncio.sleep(CONFIG_RELOAD_INTERVAL)
        try:
            if has_config_changed():
                logger.info("Config file change detected, reloading")
                configure_logging(reload_config())
        except Exception:
            logger.exception("Error in config hot-reload task")


@asynccontextmanager
async def lifespan(app: FastAPI):
    config = get_config()
    configure_logging(config)

    app.state.store = await get_store(config)
    app.state.token_verifier = TokenVerifier.from_config(config)
    logger.info("Store initialized: %s", type(app.state.store).__name__)

    app.state.config_reload_task = asyncio.create_task(config_hot_reload_task())

    try:
        yield
    finally:
        app.state.config_reload_task.cancel()
        try:
            await app.state.config_reload_task
        except asyncio.CancelledError:
            pass
        finally:
            await app.state.store.close()
            logger.info("Store closed")


def create_app() -> FastAPI:
    config = get_config()
    server_config = config.get("server", {})

    app = FastAPI(
        title="Points Award Service",
        description="Awards daily ad rewards and game points to verified users",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_config.get("cors_origins", ["*"]),
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Process-Time"],
    )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"ok": False, "error": RewardError.SERVER_ERROR.value},
        )

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint with store status."""
        store_healthy = False
        store = getattr(request.app.state, "store", None)
        if store is not None:
            store_healthy = await store.ping()

        return {
            "status": "healthy" if store_healthy else "degraded",
            "service": "Points Award Service",
            "store": "connected" if store_healthy else "disconnected",
        }

    app.include_router(router)
    app.include_router(router, prefix="/api", include_in_schema=False)
    return app


app = create_app()
