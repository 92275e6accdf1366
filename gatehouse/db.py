# gatehouse/db.py
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, DeclarativeBase

from .config import settings
from .errors import GatehouseError, Internal

log = logging.getLogger("gatehouse.db")


class Base(DeclarativeBase):
    pass


_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(
    settings.database_url,
    pool_pre_ping=True,
    future=True,
    connect_args=_connect_args,
)

if settings.database_url.startswith("sqlite"):

    @event.listens_for(engine, "connect")
    def _sqlite_fk_on(dbapi_conn, _record) -> None:
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()


SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
    future=True,
)


def init_db() -> None:
    # models must be imported so every table is registered on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db():
    """
    IMPORTANT (Postgres):
    If any SQL statement fails, the transaction is aborted and the session
    cannot run further statements until a rollback happens.

    This dependency guarantees rollback on exceptions so errors don't cascade
    into "InFailedSqlTransaction" on later queries in the same request.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def atomic(db: Session, *, conflict: GatehouseError | None = None) -> Iterator[Session]:
    """
    Run a multi-row workflow step as one transaction.

    - commits once on success
    - rolls back everything on any error
    - domain errors propagate unchanged
    - IntegrityError maps to `conflict` when the caller names one
    - any other database error surfaces as a single Internal error
    """
    try:
        yield db
        db.commit()
    except GatehouseError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        if conflict is not None:
            raise conflict from e
        log.exception("integrity error inside workflow transaction")
        raise Internal("workflow step failed and was rolled back") from e
    except SQLAlchemyError as e:
        db.rollback()
        log.exception("database error inside workflow transaction")
        raise Internal("workflow step failed and was rolled back") from e
    except Exception:
        db.rollback()
        raise
