"""
Persistence provider.

`Database` owns the SQLAlchemy engine and session factory. It is constructed
explicitly (see `swm_dashboard.main.lifespan`) and stored on `app.state`, so
tests and scripts can build their own instance against any URL.
"""
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from swm_dashboard.core.logging import get_logger

logger = get_logger("database")

Base = declarative_base()


def _mask_url(url: str) -> str:
    """Mask password in DB URL for safe logging."""
    if "@" in url:
        before_at, after_at = url.split("@", 1)
        if ":" in before_at.split("//", 1)[-1]:
            scheme_user = before_at.rsplit(":", 1)[0]
            return f"{scheme_user}:****@{after_at}"
    return url


class Database:
    def __init__(self, url: str, echo: bool = False):
        self.url = url
        self.echo = echo
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def connect(self) -> "Database":
        if self._engine is not None:
            return self

        engine_kwargs: dict = {"echo": self.echo}
        if self.url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in self.url or self.url == "sqlite://":
                # Single shared connection, otherwise every session sees an empty database
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_pre_ping"] = True
            engine_kwargs["pool_size"] = 5
            engine_kwargs["max_overflow"] = 10
            engine_kwargs["pool_recycle"] = 300

        self._engine = create_engine(self.url, **engine_kwargs)
        self._session_factory = sessionmaker(
            bind=self._engine, autocommit=False, autoflush=False, expire_on_commit=False
        )
        logger.info(f"Database engine created for {_mask_url(self.url)}")
        return self

    def create_all(self) -> None:
        # Import models so they are registered on Base.metadata
        import swm_dashboard.models  # noqa: F401

        Base.metadata.create_all(self.engine)
        logger.info("Database tables ready")

    def drop_all(self) -> None:
        import swm_dashboard.models  # noqa: F401

        Base.metadata.drop_all(self.engine)

    def test_connection(self) -> bool:
        """Test the database connection with SELECT 1."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database connection test failed: {e}")
            return False

    def session(self) -> Session:
        if self._session_factory is None:
            raise RuntimeError("Database is not connected; call connect() first")
        return self._session_factory()

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency — yields a session from the application's Database."""
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
