"""Main FastAPI application for Pulseo."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Config, load_config, resolve_jwt_secret
from .errors import install_error_handlers
from .models.database import Database
from .routers import auth_router, columns_router, tasks_router
from .services.password import PasswordHasher
from .services.refresh_token import RefreshTokenStore
from .services.task import TaskService
from .services.tokens import TokenService
from .utils.logging import setup_logging

logger = logging.getLogger(__name__)


async def purge_once(database: Database, grace_seconds: int) -> tuple[int, int]:
    """Permanently remove expired soft-deleted tasks and expired refresh tokens."""
    async for db in database.session():
        purged_tasks = await TaskService(db).purge_deleted_tasks(grace_seconds)
        purged_tokens = await RefreshTokenStore(db).purge_expired()
    return purged_tasks, purged_tokens


async def purge_task(database: Database, config: Config):
    """Background task for soft-delete and refresh-token cleanup."""
    logger.info("Purge task started")

    while True:
        try:
            await asyncio.sleep(config.tasks.purge_interval_seconds)

            purged_tasks, purged_tokens = await purge_once(
                database, config.tasks.soft_delete_grace_seconds
            )
            if purged_tasks > 0:
                logger.info(f"Permanently deleted {purged_tasks} soft-deleted tasks")
            if purged_tokens > 0:
                logger.info(f"Removed {purged_tokens} expired refresh tokens")

        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.error(f"Purge task error: {e}")
            await asyncio.sleep(10)


def create_app(config: Optional[Config] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the application. Missing arguments are taken from the loaded config."""
    config = config or load_config()
    database = database or Database.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(config)
        logger.info("Starting Pulseo...")
        logger.info(f"Environment: {config.environment}")

        await database.open()

        background = asyncio.create_task(purge_task(database, config))

        yield

        logger.info("Shutting down Pulseo...")
        background.cancel()
        try:
            await background
        except asyncio.CancelledError:
            pass
        await database.close()

    app = FastAPI(
        title="Pulseo",
        description="Personal task board with cookie-based JWT sessions",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Fails fast in production when no signing secret is configured
    app.state.config = config
    app.state.database = database
    app.state.token_service = TokenService(
        resolve_jwt_secret(config),
        algorithm=config.auth.jwt_algorithm,
        access_ttl=config.auth.access_token_ttl_seconds,
        refresh_ttl=config.auth.refresh_token_ttl_seconds,
    )
    app.state.password_hasher = PasswordHasher()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    app.include_router(auth_router)
    app.include_router(tasks_router)
    app.include_router(columns_router)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint for monitoring."""
        return {"status": "ok"}

    return app


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    import uvicorn

    config = load_config()
    uvicorn.run(
        "pulseo.main:create_app",
        factory=True,
        host=config.server.host,
        port=config.server.port,
        reload=config.server.debug,
    )
