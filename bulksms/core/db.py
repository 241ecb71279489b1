from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from bulksms.models import Base


class Database:
    """Engine and session factory for the send ledger.

    One instance is owned by the gateway and shared by dispatch and
    reconciliation. Sessions never outlive a unit of work, so every read sees
    the latest committed write.
    """

    def __init__(self, url: str):
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        self.engine: Engine = create_engine(url, pool_pre_ping=True, connect_args=connect_args)
        self.session_factory: sessionmaker[Session] = sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=False,
            bind=self.engine,
        )

    def create_schema(self) -> None:
        Base.metadata.create_all(bind=self.engine)

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """Provide a transactional scope for dispatch chunks and background tasks."""

        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def get_db_session(database: Database) -> Generator[Session, None, None]:
    """Yield a session per request; used by the FastAPI dependency."""

    db = database.session_factory()
    try:
        yield db
    finally:
        db.close()
