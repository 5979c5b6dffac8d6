"""
MovieDB write outcomes of the persistence layer

Instead of leaking database exceptions into the request handlers, a
write returns an optional ``WriteError`` which the caller inspects to
decide about the response. The session is rolled back on any failure.
"""

import enum
import logging
from typing import Optional

import sqlalchemy.exc
import sqlalchemy.orm.exc
from sqlalchemy.orm import Session


logger = logging.getLogger(__name__)


@enum.unique
class WriteError(enum.Enum):
    DUPLICATE = "duplicate"
    """A unique or other integrity constraint has been violated"""
    STALE = "stale"
    """The stored modification timestamp changed since the resource was read"""
    UNAVAILABLE = "unavailable"
    """The database could not be reached or operated"""
    FAILED = "failed"
    """Any other database problem"""


def commit(session: Session) -> Optional[WriteError]:
    """
    Commit the pending changes of the session atomically

    :param session: database session holding the changes of one request
    :return: ``None`` on success or the kind of the failure otherwise
    """

    try:
        session.commit()
    except sqlalchemy.orm.exc.StaleDataError as exc:
        logger.info(f"Concurrent modification detected: {exc}")
        session.rollback()
        return WriteError.STALE
    except sqlalchemy.exc.IntegrityError as exc:
        logger.info(f"{type(exc).__name__}: {exc.orig}")
        session.rollback()
        return WriteError.DUPLICATE
    except sqlalchemy.exc.OperationalError:
        logger.exception("Database operation failed")
        session.rollback()
        return WriteError.UNAVAILABLE
    except sqlalchemy.exc.SQLAlchemyError:
        logger.exception("Unexpected database error")
        session.rollback()
        return WriteError.FAILED
    return None
