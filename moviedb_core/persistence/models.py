"""
MovieDB core database models

Every change to a movie, an actor or a role advances the modification
timestamp of the affected resource. Roles are embedded in their movie,
therefore any created, changed or deleted role touches its movie as well.
A renamed actor touches the movies of its roles, since movies show actor names.
The ``modified`` column is the version column of movies and actors, so
that any UPDATE or DELETE only succeeds if the row hasn't been modified
since it was loaded (compare-and-swap on the stored timestamp).
"""

import uuid
import datetime
from typing import List, Optional

from sqlalchemy import DateTime, Integer, String, Column, ForeignKey, event
from sqlalchemy.dialects import mysql
from sqlalchemy.orm import Session, relationship

from .database import Base
from .. import guard


Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql", "mariadb")


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


def next_modification(
        previous: Optional[datetime.datetime],
        now: Optional[datetime.datetime] = None
) -> datetime.datetime:
    """
    Return the modification timestamp following the previous one

    The result is never earlier than the start of the second after the
    previous timestamp, so that two consecutive versions of a resource
    can always be told apart by their ``Last-Modified`` header values.
    """

    now = now or utcnow()
    if previous is None:
        return now
    return max(now, previous.replace(microsecond=0) + datetime.timedelta(seconds=1))


def _make_movie_id() -> str:
    return uuid.uuid4().hex


class Movie(Base):
    """
    Model representing a movie, the container of its roles
    """

    __tablename__ = "movies"

    id: str = Column(String(64), nullable=False, primary_key=True, default=_make_movie_id)
    title: str = Column(String(255), nullable=True)
    created: datetime.datetime = Column(Timestamp, nullable=False, default=utcnow)
    modified: datetime.datetime = Column(Timestamp, nullable=False, default=utcnow)

    roles: List["MovieRole"] = relationship(
        "MovieRole",
        back_populates="movie",
        cascade="all,delete-orphan",
        order_by="MovieRole.id"
    )

    __mapper_args__ = {
        "version_id_col": modified,
        "version_id_generator": False
    }

    def touch(self):
        self.modified = next_modification(self.modified)

    @property
    def state(self) -> guard.ResourceState:
        return guard.ResourceState(
            kind=type(self).__name__,
            fields={
                "id": self.id,
                "title": self.title,
                "roles": [
                    {
                        "id": r.id,
                        "character": r.character,
                        "actor_id": r.actor_id,
                        "actor_name": r.actor.name if r.actor is not None else None
                    }
                    for r in self.roles
                ]
            },
            last_modified=self.modified
        )

    @property
    def fingerprint(self) -> guard.ResourceFingerprint:
        return guard.fingerprint_of(self.state)

    def __repr__(self) -> str:
        return f"Movie(id={self.id!r}, title={self.title!r}, roles={len(self.roles)})"


class Actor(Base):
    """
    Model representing an actor who may play roles in any number of movies
    """

    __tablename__ = "actors"

    id: int = Column(Integer, nullable=False, primary_key=True, autoincrement=True, unique=True)
    first_name: str = Column(String(255), nullable=True)
    last_name: str = Column(String(255), nullable=True)
    created: datetime.datetime = Column(Timestamp, nullable=False, default=utcnow)
    modified: datetime.datetime = Column(Timestamp, nullable=False, default=utcnow)

    roles: List["MovieRole"] = relationship("MovieRole", back_populates="actor", order_by="MovieRole.id")

    __mapper_args__ = {
        "version_id_col": modified,
        "version_id_generator": False
    }

    @property
    def name(self) -> str:
        """Backwards-compatible full name of the actor"""
        return " ".join(filter(None, [self.first_name, self.last_name]))

    @name.setter
    def name(self, value: Optional[str]):
        if not value:
            self.first_name = None
            self.last_name = None
        else:
            names = value.split(None, 1)
            self.first_name = names[0]
            self.last_name = names[1] if len(names) > 1 else None

    def touch(self):
        self.modified = next_modification(self.modified)

    @property
    def state(self) -> guard.ResourceState:
        return guard.ResourceState(
            kind=type(self).__name__,
            fields={"id": self.id, "first_name": self.first_name, "last_name": self.last_name},
            last_modified=self.modified
        )

    @property
    def fingerprint(self) -> guard.ResourceFingerprint:
        return guard.fingerprint_of(self.state)

    def __repr__(self) -> str:
        return f"Actor(id={self.id}, name={self.name!r})"


class MovieRole(Base):
    """
    Model representing a character in a movie, optionally played by a known actor
    """

    __tablename__ = "movie_roles"

    id: int = Column(Integer, nullable=False, primary_key=True, autoincrement=True, unique=True)
    movie_id: str = Column(String(64), ForeignKey("movies.id", ondelete="CASCADE"), nullable=False)
    actor_id: Optional[int] = Column(Integer, ForeignKey("actors.id", ondelete="SET NULL"), nullable=True)
    character: str = Column(String(255), nullable=True)
    created: datetime.datetime = Column(Timestamp, nullable=False, default=utcnow)

    movie: Movie = relationship("Movie", back_populates="roles")
    actor: Optional[Actor] = relationship("Actor", back_populates="roles")

    def __repr__(self) -> str:
        return f"MovieRole(id={self.id}, movie_id={self.movie_id!r}, character={self.character!r})"


@event.listens_for(Session, "before_flush")
def touch_modified_resources(session: Session, flush_context, instances):
    """
    Advance the modification timestamps of all changed resources and their containers
    """

    touched = set()

    def touch(obj):
        if id(obj) in touched or obj in session.deleted:
            return
        touched.add(id(obj))
        obj.touch()

    for obj in list(session.new):
        if isinstance(obj, (Movie, Actor)):
            touched.add(id(obj))
            obj.modified = next_modification(None)
        elif isinstance(obj, MovieRole) and obj.movie is not None:
            touch(obj.movie)

    for obj in list(session.dirty):
        if isinstance(obj, Movie) and session.is_modified(obj):
            touch(obj)
        elif isinstance(obj, Actor) and session.is_modified(obj, include_collections=False):
            touch(obj)
            for role in obj.roles:
                if role.movie is not None:
                    touch(role.movie)
        elif isinstance(obj, MovieRole) and obj.movie is not None and session.is_modified(obj):
            touch(obj.movie)

    for obj in list(session.deleted):
        if isinstance(obj, MovieRole) and obj.movie is not None:
            touch(obj.movie)
        elif isinstance(obj, Actor):
            for role in list(obj.roles):
                role.actor = None
                if role.movie is not None:
                    touch(role.movie)
