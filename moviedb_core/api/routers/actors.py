"""
MovieDB router module for /actors requests
"""

import logging
from typing import Optional

import pydantic
from fastapi import APIRouter, Depends

from ..dependency import LocalRequestData
from .. import helpers, versioning
from ...persistence import models
from ... import schemas


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/actors",
    tags=["Actors"]
)


def _apply_names(actor: models.Actor, names: schemas.ActorCreation):
    if names.first_name is not None or names.last_name is not None:
        actor.first_name = names.first_name
        actor.last_name = names.last_name
    else:
        actor.name = names.name


@router.get(
    "",
    response_model=None,
    responses={406: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def search_for_actors(
        id: Optional[pydantic.NonNegativeInt] = None,  # noqa
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        limit: Optional[pydantic.NonNegativeInt] = None,
        page: Optional[pydantic.NonNegativeInt] = None,
        descending: Optional[bool] = False,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return all actors that fulfill *all* constraints given as query parameters
    """

    return local.represent(helpers.search_models(
        models.Actor,
        local,
        id=id,
        first_name=first_name,
        last_name=last_name,
        limit=limit,
        page=page,
        descending=descending
    ))


@router.post(
    "",
    status_code=201,
    response_model=None,
    responses={400: {"model": schemas.APIError}, 422: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def create_new_actor(
        actor: schemas.ActorCreation,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Create a new actor, either by full ``name`` or by ``first_name`` and ``last_name``.
    """

    model = models.Actor()
    _apply_names(model, actor)
    local.session.add(model)
    helpers.commit_changes(local, logger=logger)
    logger.info(f"Added new actor {model!r}")
    local.response.headers["Location"] = f"{local.request.url.path.rstrip('/')}/{model.id}"
    return local.respond_with(model)


@router.get(
    "/{actor_id}",
    response_model=None,
    responses={304: {"description": "Not Modified"}, 404: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def get_actor_by_id(actor_id: pydantic.NonNegativeInt, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the actor, if the cached version of the client isn't fresh anymore.
    """

    actor = await helpers.return_one(actor_id, models.Actor, local.session)
    local.preconditions.check_fresh(actor)
    return local.respond_with(actor)


@router.put(
    "/{actor_id}",
    response_model=None,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def update_existing_actor(
        actor_id: pydantic.NonNegativeInt,
        actor: schemas.ActorUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Replace the name of an existing actor.

    A 409 error will be returned when the actor has been modified since the
    time given in the ``If-Unmodified-Since`` header.
    """

    model = await helpers.return_one(actor_id, models.Actor, local.session)
    local.preconditions.check_write(model)
    _apply_names(model, actor)
    helpers.commit_changes(local, model, logger)
    logger.debug(f"Updated actor {model!r}")
    return local.respond_with(model)


@router.delete(
    "/{actor_id}",
    status_code=204,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def delete_existing_actor(actor_id: pydantic.NonNegativeInt, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Delete an existing actor. Roles played by the actor are kept without actor.
    """

    return await helpers.delete_one_of_model(actor_id, models.Actor, local, logger)


@router.get(
    "/{actor_id}/roles",
    response_model=None,
    responses={404: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def get_roles_of_actor(actor_id: pydantic.NonNegativeInt, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return all roles played by the actor across all movies.
    """

    actor = await helpers.return_one(actor_id, models.Actor, local.session)
    return local.represent(list(actor.roles))
