# kpi_portal/db.py
"""
Database Connection Management

Version: 1.1.0
Features:
- Singleton pattern with thread-safe double-checked locking
- Connection pooling with auto-reconnect (MySQL)
- SQLite support for local development via DATABASE_URL
- Health check utilities
"""

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.pool import QueuePool
from sqlalchemy.exc import OperationalError, SQLAlchemyError
import logging
import threading
from typing import Tuple, Optional

from .config import config

logger = logging.getLogger(__name__)

# ==================== SINGLETON ENGINE ====================

_engine = None
_engine_lock = threading.Lock()


def get_db_engine() -> Engine:
    """
    Get SQLAlchemy database engine (singleton pattern)

    Thread-safe implementation using double-checked locking.
    Reuses the same engine across all calls to prevent
    connection pool exhaustion.

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = _create_engine()

    return _engine


def _create_engine() -> Engine:
    """Create new database engine with configured settings"""
    url = config.get_db_url()
    app_config = config.app_config

    if url.startswith("sqlite"):
        logger.info("🔌 Creating database engine: sqlite")
        return create_engine(url, echo=False)

    masked = config.get_db_config().get("host") or "***"
    logger.info(f"🔌 Creating database engine for host: {masked}")

    pool_size = app_config.get("DB_POOL_SIZE", 5)
    pool_recycle = app_config.get("DB_POOL_RECYCLE", 3600)

    engine = create_engine(
        url,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=pool_recycle,
        pool_pre_ping=True,  # Auto-reconnect on stale connections
        echo=False
    )

    logger.info(f"✅ Database engine created (pool_size={pool_size}, recycle={pool_recycle}s)")

    return engine


# ==================== CONNECTION MANAGEMENT ====================

def check_db_connection(engine: Optional[Engine] = None) -> Tuple[bool, Optional[str]]:
    """
    Check if database connection is healthy

    Args:
        engine: Engine to probe (defaults to the shared singleton)

    Returns:
        Tuple of (is_connected: bool, error_message: str or None)
    """
    try:
        engine = engine or get_db_engine()
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except OperationalError as e:
        error_msg = "Cannot connect to database. Please check your network/VPN connection."
        logger.error(f"❌ Database connection failed: {e}")
        return False, error_msg
    except (SQLAlchemyError, ValueError) as e:
        error_msg = f"Database error: {str(e)}"
        logger.error(f"❌ Database error: {e}")
        return False, error_msg


def reset_db_engine():
    """
    Reset the database engine (force new connection)

    Call this after persistent connection errors or
    when you need to reconnect with different settings.
    """
    global _engine

    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
            logger.info("🔄 Database engine disposed")
            _engine = None

    logger.info("🔄 Database engine reset - will reconnect on next query")


__all__ = [
    'get_db_engine',
    'check_db_connection',
    'reset_db_engine',
]
