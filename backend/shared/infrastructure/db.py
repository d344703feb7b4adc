"""
Database configuration and session management.
Uses SQLAlchemy 2.0 patterns.

Every store call is bounded in time: pool checkout (pool_timeout),
connection establishment (connect_timeout) and, on PostgreSQL, statement
execution (statement_timeout). Timeouts surface as UnavailableError.
"""

import os
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from fastapi import Request, Response
from fastapi.exception_handlers import http_exception_handler
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import sessionmaker, Session

from shared.config.logging import get_logger
from shared.config.settings import DATABASE_URL, settings
from shared.utils.exceptions import AppException, ConflictError, UnavailableError

logger = get_logger(__name__)


def _calculate_pool_size() -> int:
    """
    Calculate pool size based on CPU cores.
    Formula: (2 * CPU cores) + 1, capped at 20.
    """
    cores = os.cpu_count() or 4
    return min(cores * 2 + 1, 20)


def _engine_kwargs(url: str) -> dict[str, Any]:
    """Build engine options for the configured backend."""
    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        return {
            "connect_args": {
                "check_same_thread": False,
                "timeout": settings.db_connect_timeout,
            },
        }
    return {
        "pool_pre_ping": True,
        "pool_size": _calculate_pool_size(),
        "max_overflow": 15,
        "pool_timeout": settings.db_pool_timeout,
        "pool_recycle": 1800,
        "connect_args": {
            "connect_timeout": settings.db_connect_timeout,
            "options": f"-c statement_timeout={settings.db_statement_timeout_ms}",
        },
    }


def enable_sqlite_transactions(target: Engine) -> Engine:
    """
    Make pysqlite honour BEGIN / SAVEPOINT and enforce foreign keys.

    The driver otherwise defers BEGIN until the first DML statement, which
    breaks nested transactions (SAVEPOINT) used by order creation.
    """

    @event.listens_for(target, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(target, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return target


engine = create_engine(DATABASE_URL, echo=False, **_engine_kwargs(DATABASE_URL))
if engine.dialect.name == "sqlite":
    enable_sqlite_transactions(engine)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/orders")
        def list_orders(db: Session = Depends(get_db)):
            ...

    The session is automatically closed after the request completes.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context() as db:
            OrderService(db).verify_pickup("0420")
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise


STORAGE_ERRORS = (PoolTimeoutError, OperationalError, IntegrityError)


def translate_storage_error(error: Exception, operation: str) -> AppException:
    """
    Map a storage failure onto the application error taxonomy.

    - pool checkout / statement timeouts and lost connections -> UnavailableError
    - constraint violations -> ConflictError

    The raw driver message is only logged, never returned to the caller.
    """
    detail = str(getattr(error, "orig", None) or error)
    if isinstance(error, IntegrityError):
        return ConflictError(f"Conflicting write during {operation}", operation=operation, error=detail)
    return UnavailableError("database", operation=operation, error=detail)


@contextmanager
def store_guard(db: Session, operation: str) -> Iterator[None]:
    """Roll back and re-raise storage failures as translated application errors."""
    try:
        yield
    except STORAGE_ERRORS as e:
        db.rollback()
        raise translate_storage_error(e, operation) from e


async def storage_error_handler(request: Request, exc: Exception) -> Response:
    """App-level fallback for storage failures raised outside a store_guard block."""
    error = translate_storage_error(exc, f"{request.method} {request.url.path}")
    return await http_exception_handler(request, error)
