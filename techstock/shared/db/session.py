import time
from dataclasses import dataclass
from threading import Lock
from typing import Any, AsyncGenerator, Dict

import structlog
from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from techstock.shared.core.config import get_settings

logger = structlog.get_logger()

# Ensure ORM mappings are registered for scripts that import the DB layer
# without importing `techstock/main.py`.
import techstock.models  # noqa: F401, E402


@dataclass(slots=True)
class _DBRuntime:
    settings: Any
    engine: AsyncEngine
    session_maker: async_sessionmaker[AsyncSession]
    effective_url: str


_db_runtime: _DBRuntime | None = None
_db_runtime_lock = Lock()


def normalize_db_url(raw_url: str) -> str:
    url = (raw_url or "").strip()
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def resolve_effective_url(settings_obj: Any) -> str:
    db_url = normalize_db_url(str(getattr(settings_obj, "DATABASE_URL", "") or ""))
    if bool(getattr(settings_obj, "TESTING", False)) and not db_url:
        return "sqlite+aiosqlite:///:memory:"
    return db_url


def build_pool_config(settings_obj: Any, effective_url: str) -> dict[str, Any]:
    pool_config: dict[str, Any] = {
        "pool_pre_ping": True,
        "echo": bool(getattr(settings_obj, "DB_ECHO", False)),
    }

    if "sqlite" in effective_url:
        pool_config["poolclass"] = StaticPool
        return pool_config

    pool_config.update(
        {
            "pool_recycle": int(getattr(settings_obj, "DB_POOL_RECYCLE", 3600)),
            "pool_size": int(getattr(settings_obj, "DB_POOL_SIZE", 20)),
            "max_overflow": int(getattr(settings_obj, "DB_MAX_OVERFLOW", 10)),
            "pool_timeout": int(getattr(settings_obj, "DB_POOL_TIMEOUT", 30)),
        }
    )
    if bool(getattr(settings_obj, "TESTING", False)):
        pool_config.update({"pool_size": 2, "max_overflow": 2, "pool_timeout": 5})
    return pool_config


def _enable_sqlite_foreign_keys(dbapi_connection: Any, _record: Any) -> None:
    # SQLite leaves FK enforcement off per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _build_db_runtime() -> _DBRuntime:
    settings_obj = get_settings()
    effective_url = resolve_effective_url(settings_obj)
    if not effective_url:
        raise ValueError("DATABASE_URL is not set. The application cannot start.")

    engine = create_async_engine(effective_url, **build_pool_config(settings_obj, effective_url))
    event.listen(engine.sync_engine, "before_cursor_execute", before_cursor_execute)
    event.listen(engine.sync_engine, "after_cursor_execute", after_cursor_execute)
    if effective_url.startswith("sqlite"):
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    session_maker = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    logger.info("db_runtime_initialized", backend=effective_url.split(":", 1)[0])
    return _DBRuntime(
        settings=settings_obj,
        engine=engine,
        session_maker=session_maker,
        effective_url=effective_url,
    )


def _get_db_runtime() -> _DBRuntime:
    global _db_runtime
    runtime = _db_runtime
    if runtime is not None:
        return runtime
    with _db_runtime_lock:
        runtime = _db_runtime
        if runtime is None:
            runtime = _build_db_runtime()
            _db_runtime = runtime
    return runtime


async def dispose_db_runtime() -> None:
    """Dispose the pooled engine and force re-initialization on next access."""
    global _db_runtime
    runtime = _db_runtime
    _db_runtime = None
    if runtime is not None:
        await runtime.engine.dispose()
        logger.info("db_engine_disposed")


def get_engine() -> AsyncEngine:
    """Return the active async engine."""
    return _get_db_runtime().engine


def async_session_maker(*args: Any, **kwargs: Any) -> Any:
    """Return a new async session from the active session factory."""
    return _get_db_runtime().session_maker(*args, **kwargs)


def before_cursor_execute(
    conn: Connection,
    _cursor: Any,
    _statement: str,
    _parameters: Any,
    _context: Any,
    _executemany: bool,
) -> None:
    """Record query start time."""
    conn.info.setdefault("query_start_time", []).append(time.perf_counter())


def after_cursor_execute(
    conn: Connection,
    _cursor: Any,
    statement: str,
    parameters: Any,
    _context: Any,
    _executemany: bool,
) -> None:
    """Log slow queries."""
    total = time.perf_counter() - conn.info["query_start_time"].pop(-1)
    threshold = get_settings().DB_SLOW_QUERY_THRESHOLD_SECONDS
    if total > threshold:
        logger.warning(
            "slow_query_detected",
            duration_seconds=round(total, 3),
            threshold_seconds=threshold,
            statement=statement[:200] + "..." if len(statement) > 200 else statement,
        )


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    async with async_session_maker() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def create_all_tables() -> None:
    """Create catalog tables that do not exist yet (no migrations)."""
    from techstock.shared.db.base import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("db_tables_ensured")


async def health_check(session: AsyncSession) -> Dict[str, Any]:
    """Ping the database and report latency."""
    start = time.perf_counter()
    try:
        await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("database_health_check_failed", error=str(exc))
        return {"status": "down", "error": "database unreachable"}
    latency_ms = round((time.perf_counter() - start) * 1000, 2)
    return {"status": "up", "latency_ms": latency_ms}
