"""
MovieDB router module for /movies requests
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
    prefix="/movies",
    tags=["Movies"]
)


@router.get(
    "",
    response_model=None,
    responses={406: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def search_for_movies(
        id: Optional[str] = None,  # noqa
        title: Optional[str] = None,
        limit: Optional[pydantic.NonNegativeInt] = None,
        page: Optional[pydantic.NonNegativeInt] = None,
        descending: Optional[bool] = False,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Return all movies that fulfill *all* constraints given as query parameters
    """

    return local.represent(helpers.search_models(
        models.Movie,
        local,
        id=id,
        title=title,
        limit=limit,
        page=page,
        descending=descending
    ))


@router.post(
    "",
    status_code=201,
    response_model=None,
    responses={406: {"model": schemas.APIError}, 422: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def create_new_movie(
        movie: schemas.MovieCreation,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Create a new movie, optionally with a client-supplied identifier.

    A 422 error will be returned when a movie with that identifier already exists.
    """

    model = models.Movie(title=movie.title)
    if movie.id is not None:
        model.id = movie.id
    local.session.add(model)
    helpers.commit_changes(local, logger=logger)
    logger.info(f"Added new movie {model!r}")
    local.response.headers["Location"] = f"{local.request.url.path.rstrip('/')}/{model.id}"
    return local.respond_with(model)


@router.get(
    "/{movie_id}",
    response_model=None,
    responses={304: {"description": "Not Modified"}, 404: {"model": schemas.APIError}}
)
@versioning.versions(minimal=1)
async def get_movie_by_id(movie_id: str, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Return the movie with its roles, if the cached version of the client isn't fresh anymore.
    """

    movie = await helpers.return_one(movie_id, models.Movie, local.session)
    local.preconditions.check_fresh(movie)
    return local.respond_with(movie)


async def _update_movie(movie_id: str, values: dict, local: LocalRequestData):
    movie = await helpers.return_one(movie_id, models.Movie, local.session)
    local.preconditions.check_write(movie)
    for key, value in values.items():
        setattr(movie, key, value)
    helpers.commit_changes(local, movie, logger)
    logger.debug(f"Updated movie {movie!r}")
    return local.respond_with(movie)


@router.put(
    "/{movie_id}",
    response_model=None,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def update_existing_movie(
        movie_id: str,
        movie: schemas.MovieUpdate,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Replace the title of an existing movie.

    A 409 error will be returned when the movie has been modified since the
    time given in the ``If-Unmodified-Since`` header (or if the entity tag
    in the ``If-Match`` header doesn't match). The response then carries the
    ``Last-Modified`` header of the current state of the movie.
    """

    return await _update_movie(movie_id, movie.model_dump(), local)


@router.patch(
    "/{movie_id}",
    response_model=None,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def patch_existing_movie(
        movie_id: str,
        movie: schemas.MoviePatch,
        local: LocalRequestData = Depends(LocalRequestData)
):
    """
    Update the given fields of an existing movie (see ``PUT`` for possible conflicts).
    """

    return await _update_movie(movie_id, movie.model_dump(exclude_unset=True), local)


@router.delete(
    "/{movie_id}",
    status_code=204,
    responses={k: {"model": schemas.APIError} for k in [400, 404, 409]}
)
@versioning.versions(minimal=1)
async def delete_existing_movie(movie_id: str, local: LocalRequestData = Depends(LocalRequestData)):
    """
    Delete an existing movie together with all its roles.
    """

    return await helpers.delete_one_of_model(movie_id, models.Movie, local, logger)
