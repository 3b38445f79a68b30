"""
Ladder Rankings API Server

FastAPI server for players, seasons, season rankings and the statistics
built on them.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os
import uvicorn
from slowapi import _rate_limit_exceeded_handler  # type: ignore
from slowapi.errors import RateLimitExceeded  # type: ignore

from ladder.api.routes import router, limiter as routes_limiter
from ladder.database import db
from ladder.database.init_defaults import init_defaults
from ladder.services import data_service

# Set up logging
# Log level comes from LOG_LEVEL (default: INFO); a "log_level" setting in
# the database overrides it once the database is up
log_level = os.getenv("LOG_LEVEL", "INFO").upper()
numeric_level = getattr(logging, log_level, logging.INFO)
logging.basicConfig(
    level=numeric_level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


async def apply_log_level_setting() -> None:
    """Apply the "log_level" setting from the database to the root logger, if set."""
    async with db.AsyncSessionLocal() as session:
        log_level_setting = await data_service.get_setting(session, "log_level")
    if log_level_setting:
        log_level_name = log_level_setting.upper()
        logging.getLogger().setLevel(getattr(logging, log_level_name, logging.INFO))
        logger.info(f"Log level set from database: {log_level_name}")
    else:
        logger.info(f"Log level set from environment: {log_level}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler for startup and shutdown events."""
    logger.info("Starting up Ladder Rankings API...")

    # Create tables if they don't exist (fallback when migrations haven't run)
    try:
        await db.init_database()
        logger.info("Database initialized")
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)

    try:
        await init_defaults()
        logger.info("Default values initialized")
    except Exception as e:
        logger.error(f"Failed to initialize defaults: {e}", exc_info=True)

    try:
        await apply_log_level_setting()
    except Exception as e:
        logger.warning(f"Could not load log level from database, using environment: {e}")

    yield  # App is running

    logger.info("Shutting down Ladder Rankings API...")
    await db.engine.dispose()


app = FastAPI(
    title="Ladder Rankings API",
    description="API for ladder competition players, seasons and rankings",
    version="1.0.0",
    lifespan=lifespan,
)

# Setup rate limiter
app.state.limiter = routes_limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# CORS origins configured via ALLOWED_ORIGINS env var
allowed_origins = os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

app.include_router(router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
