"""
MovieDB API dependency library
"""

import logging
from typing import Generator

import sqlalchemy.exc
import sqlalchemy.orm
from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from . import base, negotiation
from .etag import Preconditions
from ..persistence import database
from ..settings import Settings


def get_session() -> Generator[Session, None, bool]:
    """
    Return a generator to handle database sessions gracefully
    """

    logger = logging.getLogger(__name__)
    session = database.get_new_session()

    try:
        yield session
        session.flush()
    except sqlalchemy.exc.DBAPIError as exc:
        details = (exc.statement or "").replace("\n", "")
        logger.exception(f"{type(exc).__name__}: {exc.orig} @ {details!r}")
        session.rollback()
        raise
    except sqlalchemy.exc.SQLAlchemyError as exc:
        logger.exception(f"{type(exc).__name__}: {str(exc)}")
        session.rollback()
        raise
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
    return True


def get_representation(request: Request) -> negotiation.Representation:
    api_version = getattr(request.app.state, "api_version", max(r.value for r in negotiation.Representation))
    accept = request.headers.get("Accept")
    representation = negotiation.select(accept, api_version)
    if representation is None:
        raise base.NotAcceptable(accept, f"Supported: {[r.media_type for r in negotiation.Representation]}")
    return representation


class LocalRequestData:
    """
    Collection of core dependencies used by all path operations

    This class stores references to various important objects that will
    almost certainly be used by request handlers (path operations): the
    database session, the representation selected for the response and
    the preconditions of the request. Note that any dependency added here
    will be added to the OpenAPI definition, if it refers to a Query,
    Header, Path or Cookie.
    """

    def __init__(
            self,
            request: Request,
            response: Response,
            session: Session = Depends(get_session),
            representation: negotiation.Representation = Depends(get_representation)
    ):
        self.request = request
        self.response = response
        self.headers = request.headers
        self.session: sqlalchemy.orm.Session = session
        self.representation = representation
        self.preconditions = Preconditions(request)

        response.headers["Vary"] = "Accept"

    @property
    def config(self) -> Settings:
        settings = getattr(self.request.app.state, "settings", None)
        if settings is None:
            settings = Settings()
            self.request.app.state.settings = settings
        return settings

    def represent(self, obj):
        """
        Return the schema of the model in the representation selected for this request
        """

        if isinstance(obj, list):
            return [self.representation.project(o) for o in obj]
        return self.representation.project(obj)

    def respond_with(self, obj):
        """
        Add the fingerprint headers of the model to the response and return its schema
        """

        Preconditions.add_headers(self.response, obj)
        return self.represent(obj)
