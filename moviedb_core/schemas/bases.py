"""
MovieDB schemas for movies, their roles and the actors playing them

Schemas without suffix are the representations of the first API
version, which uses integer timestamps. The ``V2`` schemas embed
the roles into their movie and use ISO 8601 timestamps instead.
"""

import datetime
from typing import List, Optional

import pydantic


__all__ = [
    "MovieRole", "MovieRoleV2", "MovieRoleCreation", "MovieRoleUpdate", "MovieRolePatch",
    "Movie", "MovieV2", "MovieCreation", "MovieUpdate", "MoviePatch",
    "Actor", "ActorV2", "ActorCreation", "ActorUpdate"
]

_name = pydantic.constr(max_length=255)
_movie_id = pydantic.constr(min_length=1, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")


class MovieRole(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    movie_id: str
    character: Optional[str] = None
    actor_id: Optional[pydantic.NonNegativeInt] = None
    created: pydantic.NonNegativeInt


class MovieRoleV2(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    character: Optional[str] = None
    actor_id: Optional[pydantic.NonNegativeInt] = None
    actor_name: Optional[str] = None
    created_at: datetime.datetime


class MovieRoleCreation(pydantic.BaseModel):
    character: _name
    actor_id: Optional[pydantic.NonNegativeInt] = None


class MovieRoleUpdate(pydantic.BaseModel):
    character: _name
    actor_id: Optional[pydantic.NonNegativeInt] = None


class MovieRolePatch(pydantic.BaseModel):
    character: Optional[_name] = None
    actor_id: Optional[pydantic.NonNegativeInt] = None


class Movie(pydantic.BaseModel):
    id: str
    title: Optional[str] = None
    roles: List[pydantic.NonNegativeInt]
    created: pydantic.NonNegativeInt
    modified: pydantic.NonNegativeInt


class MovieV2(pydantic.BaseModel):
    id: str
    title: Optional[str] = None
    roles: List[MovieRoleV2]
    created_at: datetime.datetime
    updated_at: datetime.datetime


class MovieCreation(pydantic.BaseModel):
    id: Optional[_movie_id] = None
    title: _name


class MovieUpdate(pydantic.BaseModel):
    title: _name


class MoviePatch(pydantic.BaseModel):
    title: Optional[_name] = None


class Actor(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    name: str
    created: pydantic.NonNegativeInt
    modified: pydantic.NonNegativeInt


class ActorV2(pydantic.BaseModel):
    id: pydantic.NonNegativeInt
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


class ActorCreation(pydantic.BaseModel):
    name: Optional[_name] = None
    first_name: Optional[_name] = None
    last_name: Optional[_name] = None

    @pydantic.model_validator(mode="after")
    def require_some_name(self):
        if not (self.name or self.first_name or self.last_name):
            raise ValueError("Either 'name' or 'first_name' and 'last_name' must be given")
        return self


class ActorUpdate(ActorCreation):
    pass
