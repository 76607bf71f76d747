import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from internhub.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Created lazily so importing the app never opens a connection
_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def get_engine() -> Engine:
    """Get or create the SQLAlchemy engine (singleton pattern)"""
    global _engine
    if _engine is None:
        # pool_size=5: maintain 5 connections ready
        # max_overflow=10: allow 10 extra connections under load
        _engine = create_engine(
            settings.postgres_url,
            pool_size=5,
            max_overflow=10,
            pool_pre_ping=True,
            echo=settings.debug  # Log SQL queries in debug mode
        )
    return _engine


def get_session_factory() -> sessionmaker:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


def use_engine(engine: Engine) -> None:
    """Point the module at an already-built engine (tests, scripts)."""
    global _engine, _session_factory
    _engine = engine
    _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """
    Test if PostgreSQL is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.warning(f"PostgreSQL connection failed: {e}")
        return False


def execute_raw_sql(sql: str, params: dict = None) -> list:
    """
    Execute raw SQL and return results as list of dicts.
    """
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        columns = result.keys()
        return [dict(zip(columns, row)) for row in result.fetchall()]


def fetch_one(sql: str, params: dict = None) -> Optional[dict]:
    """Execute raw SQL and return the first row as a dict (or None)."""
    rows = execute_raw_sql(sql, params)
    return rows[0] if rows else None


def init_postgres_schema() -> None:
    """Create all tables that don't exist yet."""
    from internhub.db.tables import metadata

    metadata.create_all(get_engine())
    logger.info("PostgreSQL schema ready")


def in_clause(prefix: str, values) -> tuple:
    """
    Build an ``IN (...)`` placeholder list for raw SQL.

    Returns (sql_fragment, params), e.g. ("(:id0, :id1)", {"id0": 1, "id1": 2}).
    """
    params = {f"{prefix}{i}": value for i, value in enumerate(values)}
    placeholders = ", ".join(f":{key}" for key in params) or "NULL"
    return f"({placeholders})", params
