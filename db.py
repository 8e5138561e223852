from collections.abc import Generator
from typing import Annotated

import structlog
from fastapi import Depends, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from errors import StorageError

logger = structlog.get_logger(__name__)

IN_MEMORY_URL = "sqlite://"


class RecordStore:
    """
    Owns the engine for one application instance.
    Built by create_app() and kept on app.state.store.
    """

    def __init__(self, database_url: str, echo: bool = False) -> None:
        kwargs: dict = {}
        if database_url.startswith("sqlite"):
            kwargs["connect_args"] = {"check_same_thread": False}
            if database_url in (IN_MEMORY_URL, "sqlite:///:memory:"):
                # every connection must see the same in-memory database
                kwargs["poolclass"] = StaticPool

        self.database_url = database_url
        self.engine = create_engine(database_url, echo=echo, **kwargs)

    def create_tables(self) -> None:
        """Create all tables in the database if they don't exist."""
        SQLModel.metadata.create_all(self.engine)

    def session(self) -> Session:
        return Session(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()


def get_session(request: Request) -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    store: RecordStore = request.app.state.store
    with store.session() as session:
        yield session


SessionDep = Annotated[Session, Depends(get_session)]


def save(session: Session, *records):
    """
    Add, commit and refresh the given records.
    Returns the first one so callers can `return save(session, obj)`.
    """
    try:
        for record in records:
            session.add(record)
        session.commit()
        for record in records:
            session.refresh(record)
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("storage_write_failed", error=str(exc))
        raise StorageError() from exc
    return records[0] if records else None


def remove(session: Session, record) -> None:
    try:
        session.delete(record)
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        logger.error("storage_delete_failed", error=str(exc))
        raise StorageError() from exc


def like_pattern(text: str) -> str:
    """Substring pattern for ilike(..., escape="\\") with wildcards taken literally."""
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
