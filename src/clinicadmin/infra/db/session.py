from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.clinicadmin.config import settings


logger = logging.getLogger("clinicadmin.db")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:  # pragma: no cover - driver hook
    # SQLite ships with foreign keys off; cascades depend on them.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Database:
    """Owns the engine and the session factory for the clinic database.

    The engine is built lazily from ``settings.database_url`` unless
    :meth:`configure` was called first (tests point it at ``sqlite://``).
    """

    def __init__(self) -> None:
        self._engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker[Session]] = None

    def configure(self, database_url: str) -> Engine:
        if self._engine is not None:
            self._engine.dispose()

        url = make_url(database_url)
        kwargs: dict = {}
        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {"check_same_thread": False}
            if not url.database or url.database == ":memory:":
                # One shared connection, otherwise every checkout sees an empty database.
                kwargs["poolclass"] = StaticPool
            else:
                Path(url.database).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(database_url, **kwargs)
        if url.get_backend_name() == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)

        self._engine = engine
        self._sessionmaker = sessionmaker(
            bind=engine,
            autoflush=False,
            autocommit=False,
            expire_on_commit=False,
            class_=Session,
        )
        logger.info("Database configured (%s)", url.render_as_string(hide_password=True))
        return engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self.configure(settings.database_url)
        assert self._engine is not None
        return self._engine

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Transactional scope: commit on success, roll back on any error."""

        if self._sessionmaker is None:
            self.configure(settings.database_url)
        assert self._sessionmaker is not None

        session = self._sessionmaker()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


database = Database()
