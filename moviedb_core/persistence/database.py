"""
Engine and session factory of the movie database

Movies, actors and roles share one declarative base. The engine is created
lazily by ``init``; request handlers obtain their sessions from
``get_new_session`` and never touch the engine directly.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine as _Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool


DEFAULT_DATABASE_URL: str = "sqlite://"
PRINT_SQLITE_WARNING: bool = True


class _AnnotatedBase:
    __allow_unmapped__ = True


Base = declarative_base(cls=_AnnotatedBase)
_engine: Optional[_Engine] = None
_make_session: Optional[sessionmaker] = None
_logger: logging.Logger = logging.getLogger(__name__)


def _sqlite_options(database_url: str) -> dict:
    # One shared connection keeps an in-memory catalog alive across requests
    in_memory = ":memory:" in database_url or database_url == "sqlite://"
    if in_memory:
        _logger.warning("The movie catalog lives in memory only and will be empty after a restart")
    if PRINT_SQLITE_WARNING:
        _logger.warning(f"Catalog stored in sqlite ({database_url!r}); concurrent writers will serialize")
    return {
        "connect_args": {"check_same_thread": False},
        "poolclass": StaticPool if in_memory else None
    }


def init(database_url: str, echo: bool = True, create_all: bool = True):
    """
    Bind the catalog to the database at ``database_url``

    Calling it again replaces the previous engine. The tables for movies,
    actors and roles are created unless ``create_all`` is disabled, which
    leaves the schema to external migrations.

    :param database_url: SQLAlchemy URL of the catalog database
    :param echo: log every emitted SQL statement
    :param create_all: create missing tables of the catalog
    """

    global _engine, _make_session
    if _engine is not None:
        _engine.dispose()

    if database_url.startswith("sqlite:"):
        _engine = create_engine(database_url, echo=echo, **_sqlite_options(database_url))
    else:
        _engine = create_engine(database_url, echo=echo, pool_pre_ping=True)

    if create_all:
        Base.metadata.create_all(bind=_engine)

    _make_session = sessionmaker(autoflush=False, bind=_engine)


def _fallback(what: str):
    _logger.warning(f"No catalog database configured before using the {what}, falling back to {DEFAULT_DATABASE_URL!r}")
    init(DEFAULT_DATABASE_URL)


def get_engine() -> _Engine:
    if _engine is None:
        _fallback("engine")
    return _engine


def get_new_session() -> Session:
    if _make_session is None or _engine is None:
        _fallback("session factory")
    return _make_session()
