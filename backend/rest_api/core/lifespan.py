"""
Startup and shutdown of the cafeteria API.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.infrastructure.db import engine, SessionLocal
from shared.config.settings import settings
from shared.config.logging import setup_logging, rest_api_logger as logger
from shared.infrastructure.events import close_redis_pool
from rest_api.models import Base
from rest_api.seed import seed


def _check_configuration() -> None:
    problems = settings.validate_production_secrets()
    for problem in problems:
        logger.error("Configuration error", error=problem)
    if problems and settings.environment == "production":
        raise RuntimeError("Refusing to start with insecure configuration: " + "; ".join(problems))
    if problems:
        logger.warning("Insecure defaults in use; acceptable only outside production")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    _check_configuration()
    logger.info("Cafeteria API starting", port=settings.api_port, env=settings.environment)

    Base.metadata.create_all(bind=engine)
    # Menu and default settings are only inserted into an empty database
    with SessionLocal() as db:
        seed(db)

    yield

    await close_redis_pool()
    logger.info("Cafeteria API stopped")
