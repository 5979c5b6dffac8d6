"""
MovieDB router module for /movies/{movie_id}/roles requests

Roles are embedded in their movie. Therefore, all writes are guarded by the
fingerprint of the movie and every successful write returns the movie with
its advanced modification timestamp, since that's the resource the client
has to know for its next conditional request.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from ..base import BadRequest, NotFound
from ..dependency import LocalRequestData
from ..etag import Preconditions
from .. import helpers, versioning
from ...persistence import models
from ... import schemas


logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/movies/{movie_id}/roles",
    tags=["Roles"]
)


async def _get_role(movie: models.Movie, role_id: int) -> models.MovieRole:
    for role in movie.roles:
        if role.id == role_id:
            return role
    raise NotFound(f"MovieRole with ID {role_id!r} of movie {movie.id!r}")


async def _get_actor(actor_id: Optional[int], local: LocalRequestData) -> Optional[models.Actor]:
    if actor_id is None:
        return None
    actor = local.session.get(models.Actor, actor_id)
    if actor is None:
        raise BadRequest(f"Actor with ID {actor_id!r} doesn't exist.")
    return actor


@router.get(
    "",
    response_model=None,
    responses={304: {"description": "Not Modified"}, 404: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def get_roles_of_movie(movie_id: str, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return all roles of the movie.

    The conditional headers are evaluated against the movie, which is
    also reflected in the ``ETag`` and ``Last-Modified`` headers.
    """

    movie = await helpers.return_one(movie_id, models.Movie, local.session)
    local.preconditions.check_fresh(movie)
    Preconditions.add_headers(local.response, movie)
    return local.represent(list(movie.roles))


@router.post(
    "",
    response_model=None,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def add_role_to_movie(
        movie_id: str,
        role: schemas.MovieRoleCreation,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Add a new role to the movie and return the updated movie.

    A 409 error will be returned when the movie has been modified since the
    time given in the ``If-Unmodified-Since`` header. The response then
    carries the ``Last-Modified`` header of the current state of the movie.
    A malformed ``If-Unmodified-Since`` header results in a 400 error.
    """

    movie = await helpers.return_one(movie_id, models.Movie, local.session)
    local.preconditions.check_write(movie)
    actor = await _get_actor(role.actor_id, local)
    new_role = models.MovieRole(character=role.character, actor=actor)
    movie.roles.append(new_role)
    helpers.commit_changes(local, movie, logger)
    logger.info(f"Added role {new_role!r} to {movie!r}")
    return local.respond_with(movie)


@router.get(
    "/{role_id}",
    response_model=None,
    responses={304: {"description": "Not Modified"}, 404: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def get_role_by_id(movie_id: str, role_id: int, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return a single role of the movie, along with the fingerprint headers of the movie.
    """

    movie = await helpers.return_one(movie_id, models.Movie, local.session)
    role = await _get_role(movie, role_id)
    local.preconditions.check_fresh(movie)
    Preconditions.add_headers(local.response, movie)
    return local.represent(role)


async def _update_role(movie_id: str, role_id: int, values: dict, local: LocalRequestData):
    movie = await helpers.return_one(movie_id, models.Movie, local.session)
    role = await _get_role(movie, role_id)
    local.preconditions.check_write(movie)
    if "actor_id" in values:
        role.actor = await _get_actor(values.pop("actor_id"), local)
    for key, value in values.items():
        setattr(role, key, value)
    helpers.commit_changes(local, movie, logger)
    logger.debug(f"Updated role {role!r}")
    return local.respond_with(movie)


@router.put(
    "/{role_id}",
    response_model=None,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def update_existing_role(
        movie_id: str,
        role_id: int,
        role: schemas.MovieRoleUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Replace a role of the movie and return the updated movie.
    """

    return await _update_role(movie_id, role_id, role.model_dump(), local)


@router.patch(
    "/{role_id}",
    response_model=None,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def patch_existing_role(
        movie_id: str,
        role_id: int,
        role: schemas.MovieRolePatch,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Update the given fields of a role of the movie and return the updated movie.
    """

    return await _update_role(movie_id, role_id, role.model_dump(exclude_unset=True), local)


@router.delete(
    "/{role_id}",
    status_code=204,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def delete_existing_role(movie_id: str, role_id: int, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Remove a role from the movie, which advances the modification timestamp of the movie.

    The response carries the ``ETag`` and ``Last-Modified`` headers of the movie.
    """

    movie = await helpers.return_one(movie_id, models.Movie, local.session)
    role = await _get_role(movie, role_id)
    local.preconditions.check_write(movie)
    movie.roles.remove(role)
    helpers.commit_changes(local, movie, logger)
    logger.info(f"Removed role {role_id} from movie {movie_id!r}")
    return Response(status_code=204, headers={**movie.fingerprint.headers, "Vary": "Accept"})
