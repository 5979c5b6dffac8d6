"""
MovieDB content negotiation and representations of the database models

The representation of a response is selected exactly once per request from
the ``Accept`` header, falling back to the version of the API that handles
the request. Each representation defines a pure projection per model.
"""

import enum
import datetime
from typing import Callable, Dict, Optional, Tuple, Type

import pydantic

from .. import schemas
from ..persistence import models


VENDOR_MEDIA_TYPE_FORMAT = "application/vnd.moviedb.v{}+json"
GENERIC_MEDIA_TYPES = {"application/json", "application/*", "*/*"}


@enum.unique
class Representation(enum.Enum):
    JSON_V1 = 1
    JSON_V2 = 2

    @property
    def media_type(self) -> str:
        return VENDOR_MEDIA_TYPE_FORMAT.format(self.value)

    @classmethod
    def for_version(cls, api_version: int) -> "Representation":
        for representation in cls:
            if representation.value == api_version:
                return representation
        return max(cls, key=lambda r: r.value)

    def project(self, obj: models.Base) -> pydantic.BaseModel:
        """
        Return the schema of the given model in this representation
        """

        projection = _PROJECTIONS.get((self, type(obj)))
        if projection is None:
            raise TypeError(f"No {self.name} projection for {type(obj).__name__}")
        return projection(obj)


def _parse_accept(accept: str):
    ranges = []
    for position, item in enumerate(accept.split(",")):
        media_type, *params = [part.strip() for part in item.split(";")]
        if not media_type:
            continue
        quality = 1.0
        for param in params:
            key, _, value = param.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        ranges.append((-quality, position, media_type.lower()))
    return [(media_type, -q) for q, _, media_type in sorted(ranges)]


def select(accept: Optional[str], api_version: int) -> Optional[Representation]:
    """
    Select the representation for a request

    :param accept: value of the ``Accept`` header field, if present
    :param api_version: version of the API handling the request
    :return: the selected representation or ``None`` if no accepted media type is supported
    """

    default = Representation.for_version(api_version)
    if not accept or not accept.strip():
        return default

    vendor_types = {r.media_type: r for r in Representation}
    for media_type, quality in _parse_accept(accept):
        if quality <= 0:
            continue
        if media_type in vendor_types:
            return vendor_types[media_type]
        if media_type in GENERIC_MEDIA_TYPES:
            return default
    return None


def _timestamp(value: datetime.datetime) -> int:
    return int(_aware(value).timestamp())


def _aware(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


def _role_v1(role: models.MovieRole) -> schemas.MovieRole:
    return schemas.MovieRole(
        id=role.id,
        movie_id=role.movie_id,
        character=role.character,
        actor_id=role.actor_id,
        created=_timestamp(role.created)
    )


def _role_v2(role: models.MovieRole) -> schemas.MovieRoleV2:
    return schemas.MovieRoleV2(
        id=role.id,
        character=role.character,
        actor_id=role.actor_id,
        actor_name=role.actor.name if role.actor is not None else None,
        created_at=_aware(role.created)
    )


def _movie_v1(movie: models.Movie) -> schemas.Movie:
    return schemas.Movie(
        id=movie.id,
        title=movie.title,
        roles=[role.id for role in movie.roles],
        created=_timestamp(movie.created),
        modified=_timestamp(movie.modified)
    )


def _movie_v2(movie: models.Movie) -> schemas.MovieV2:
    return schemas.MovieV2(
        id=movie.id,
        title=movie.title,
        roles=[_role_v2(role) for role in movie.roles],
        created_at=_aware(movie.created),
        updated_at=_aware(movie.modified)
    )


def _actor_v1(actor: models.Actor) -> schemas.Actor:
    return schemas.Actor(
        id=actor.id,
        name=actor.name,
        created=_timestamp(actor.created),
        modified=_timestamp(actor.modified)
    )


def _actor_v2(actor: models.Actor) -> schemas.ActorV2:
    return schemas.ActorV2(
        id=actor.id,
        first_name=actor.first_name,
        last_name=actor.last_name,
        created_at=_aware(actor.created),
        updated_at=_aware(actor.modified)
    )


_PROJECTIONS: Dict[Tuple[Representation, Type[models.Base]], Callable[[models.Base], pydantic.BaseModel]] = {
    (Representation.JSON_V1, models.Movie): _movie_v1,
    (Representation.JSON_V2, models.Movie): _movie_v2,
    (Representation.JSON_V1, models.MovieRole): _role_v1,
    (Representation.JSON_V2, models.MovieRole): _role_v2,
    (Representation.JSON_V1, models.Actor): _actor_v1,
    (Representation.JSON_V2, models.Actor): _actor_v2
}
