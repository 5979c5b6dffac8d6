"""
Generic helper library for the core REST API
"""

import logging
from typing import Any, Callable, List, Optional, Type

import pydantic
import sqlalchemy
import sqlalchemy.orm
from fastapi.responses import Response

from .base import Conflict, InternalServerException, NotFound, ServiceUnavailable, UnprocessableEntity
from .dependency import LocalRequestData
from ..persistence import models
from ..persistence.writes import WriteError, commit


def enforce_logger(logger: Optional[logging.Logger] = None) -> logging.Logger:
    return logger or logging.getLogger(__name__)


async def return_one(
        object_id: Any,
        model: Type[models.Base],
        session: sqlalchemy.orm.Session
) -> models.Base:
    """
    Return the object of a given model that's identified by its object ID

    :param object_id: internal ID (primary key in the database) of the model
    :param model: class of a SQLAlchemy model
    :param session: database session which should be used to perform the query
    :return: resulting entity as SQLAlchemy model
    :raises NotFound: when the specified object ID returned no result
    """

    obj = session.get(model, object_id)
    if obj is None:
        raise NotFound(f"{model.__name__} with ID {object_id!r}")
    return obj


def search_models(
        model: Type[models.Base],
        local: LocalRequestData,
        specialized_item_filter: Callable[[models.Base], bool] = None,
        limit: Optional[pydantic.NonNegativeInt] = None,
        page: Optional[pydantic.NonNegativeInt] = None,
        descending: Optional[bool] = False,
        **kwargs
) -> List[models.Base]:
    """
    Return all models that equal all kwargs and pass the special filter function

    :param model: class of a SQLAlchemy model
    :param local: contextual local data
    :param specialized_item_filter: callable function to filter the list of models
        explicitly with some specialized metrics (e.g. custom fields or relations)
    :param limit: limit the number of total results (capped by the configured maximal page size)
    :param page: select a page of results, based on the page size of `limit`; if no
        limit is given, the page will be ignored due to its missing size specification
    :param descending: reverse the order of results received from the database
    :param kwargs: dict of extra attribute checks on the model (empty values in the
        dict are ignored and won't be treated as check for ``None`` in the model)
    :return: list of all models that equal all kwargs and passed the filter function
    """

    query = local.session.query(model)
    for k in kwargs:
        if kwargs[k] is not None:
            query = query.filter_by(**{k: kwargs[k]})
    if descending:
        query = query.order_by(sqlalchemy.desc(model.id))
    else:
        query = query.order_by(model.id)
    results = [obj for obj in query.all() if specialized_item_filter is None or specialized_item_filter(obj)]

    max_page_size = local.config.general.max_page_size
    limit = min(limit, max_page_size) if limit else None
    if limit and page:
        return results[limit*page:limit*(page+1)]
    elif limit:
        return results[:limit]
    return results


def commit_changes(
        local: LocalRequestData,
        resource: Optional[models.Base] = None,
        logger: Optional[logging.Logger] = None
):
    """
    Commit the pending changes of the request or raise the matching API exception

    :param local: contextual local data
    :param resource: optional resource whose current fingerprint should be
        reported to the client if it has been modified concurrently
    :param logger: optional logger that should be used for DEBUG messages
    :raises UnprocessableEntity: when the database rejected the write (e.g. duplicate keys)
    :raises Conflict: when the resource has been modified concurrently
    :raises ServiceUnavailable: when the database can't be used at the moment
    :raises InternalServerException: when the write failed for other reasons
    """

    logger = enforce_logger(logger)
    error = commit(local.session)
    if error is None:
        return

    logger.debug(f"Write for '{local.request.method} {local.request.url.path}' failed: {error}")
    if error == WriteError.DUPLICATE:
        raise UnprocessableEntity(
            "The request conflicts with constraints of the stored data.",
            "Probably, a resource with the same identifier already exists."
        )
    if error == WriteError.STALE:
        headers = None
        identity = sqlalchemy.inspect(resource).identity if resource is not None else None
        if identity is not None:
            current = local.session.get(type(resource), identity)
            if current is not None:
                headers = current.fingerprint.headers
        raise Conflict(
            "The resource has been modified concurrently. Fetch it again before retrying.",
            f"Stale write of {resource!r}",
            headers=headers
        )
    if error == WriteError.UNAVAILABLE:
        raise ServiceUnavailable("The database is not available at the moment.")
    raise InternalServerException("The requested change could not be stored.", str(error))


async def delete_one_of_model(
        instance_id: Any,
        model: Type[models.Base],
        local: LocalRequestData,
        logger: Optional[logging.Logger] = None
):
    """
    Delete the identified instance of a model from the database if its preconditions hold

    :param instance_id: unique identifier of the instance to be deleted
    :param model: class of the SQLAlchemy model
    :param local: contextual local data
    :param logger: optional logger that should be used for INFO and DEBUG messages
    :raises NotFound: when the specified ID can't be found for the given model
    :raises Conflict: when the conditional headers don't match the current state of the object
    """

    obj = await return_one(instance_id, model, local.session)
    local.preconditions.check_write(obj)
    enforce_logger(logger).debug(f"Deleting model {obj!r}...")
    local.session.delete(obj)
    commit_changes(local, obj, logger)
    enforce_logger(logger).info(f"Deleted {model.__name__} {instance_id!r}")
    return Response(status_code=204)
