"""
Optimistic concurrency guard for conditional HTTP requests

The guard owns no state and performs no I/O. A caller derives the current
fingerprint of a resource with ``fingerprint_of``, evaluates the conditional
headers of a request with ``evaluate`` and performs the write only after
receiving a proceeding decision. After the write, the fingerprint has to be
derived again from the new state to report it to the client.
"""

import enum
import uuid
import json
import hashlib
import logging
import datetime
import email.utils
import dataclasses
from typing import Any, Mapping, Optional, Tuple, Union


logger = logging.getLogger(__name__)

Timestamp = Union[str, datetime.datetime]


class MalformedCondition(ValueError):
    """
    Exception raised when a conditional header could not be parsed as timestamp
    """

    def __init__(self, header: str, value: Any):
        super().__init__(f"Malformed {header!r} header value: {value!r}")
        self.header = header
        self.value = value


@enum.unique
class Outcome(enum.Enum):
    PROCEED = "Proceed"
    CONFLICT = "Conflict"


@dataclasses.dataclass(frozen=True)
class ResourceState:
    """
    Persisted state of a resource: its kind, its observable fields and its last modification
    """

    kind: str
    fields: Mapping[str, Any]
    last_modified: datetime.datetime


@dataclasses.dataclass(frozen=True)
class ResourceFingerprint:
    opaque_token: str
    last_modified: datetime.datetime

    @property
    def etag(self) -> str:
        """Value of the ``ETag`` header field (a quoted strong entity tag)"""
        return f'"{self.opaque_token}"'

    @property
    def http_date(self) -> str:
        """Value of the ``Last-Modified`` header field"""
        return format_http_date(self.last_modified)

    @property
    def headers(self) -> dict:
        return {"ETag": self.etag, "Last-Modified": self.http_date}


@dataclasses.dataclass(frozen=True)
class ConditionalRequest:
    """
    Preconditions supplied with a single request

    Timestamps may be given as raw header values (second precision, as
    transmitted) or as ``datetime`` objects (compared exactly). Parsing of
    header values is deferred to the evaluation of the condition.
    """

    if_unmodified_since: Optional[Timestamp] = None
    if_match: Optional[str] = None
    if_none_match: Optional[str] = None
    if_modified_since: Optional[Timestamp] = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> "ConditionalRequest":
        return cls(
            if_unmodified_since=headers.get("If-Unmodified-Since") or None,
            if_match=headers.get("If-Match") or None,
            if_none_match=headers.get("If-None-Match") or None,
            if_modified_since=headers.get("If-Modified-Since") or None
        )

    @property
    def is_conditional_write(self) -> bool:
        return self.if_unmodified_since is not None or self.if_match is not None


@dataclasses.dataclass(frozen=True)
class Decision:
    outcome: Outcome
    fingerprint: ResourceFingerprint

    @property
    def proceed(self) -> bool:
        return self.outcome == Outcome.PROCEED


def _as_utc(value: datetime.datetime) -> datetime.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value.astimezone(datetime.timezone.utc)


def _to_second(value: datetime.datetime) -> datetime.datetime:
    return value.replace(microsecond=0)


def format_http_date(value: datetime.datetime) -> str:
    """
    Format a timestamp as RFC 2822 date in GMT (e.g. ``Wed, 06 Jan 2016 06:13:09 GMT``)

    Naive timestamps are treated as UTC. Fractions of seconds can't be transmitted.
    """

    return email.utils.format_datetime(_to_second(_as_utc(value)), usegmt=True)


def parse_http_date(value: str, header: str = "If-Unmodified-Since") -> datetime.datetime:
    """
    Parse an RFC 2822 date into a timezone-aware UTC timestamp

    :param value: raw header value
    :param header: name of the header the value belongs to (used in errors)
    :return: timezone-aware timestamp
    :raises MalformedCondition: when the value is not a valid RFC 2822 date
    """

    try:
        parsed = email.utils.parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError) as exc:
        raise MalformedCondition(header, value) from exc
    if parsed is None:
        raise MalformedCondition(header, value)
    return _as_utc(parsed)


def _resolve(value: Timestamp, header: str, current: datetime.datetime) -> Tuple[datetime.datetime, datetime.datetime]:
    """
    Return the supplied and the current timestamp at the precision of the supplied value
    """

    if isinstance(value, datetime.datetime):
        return _as_utc(value), _as_utc(current)
    if isinstance(value, str):
        return parse_http_date(value, header), _to_second(_as_utc(current))
    raise MalformedCondition(header, value)


def _split_tags(value: str, weak: bool = False):
    for tag in map(str.strip, value.split(",")):
        if tag.startswith("W/"):
            if not weak:
                continue
            tag = tag[2:]
        if tag.startswith('"'):
            tag = tag[1:]
        if tag.endswith('"'):
            tag = tag[:-1]
        if tag != "":
            yield tag


def fingerprint_of(state: ResourceState) -> ResourceFingerprint:
    """
    Derive the fingerprint of a resource from its current persisted state

    The opaque token is an MD5-based UUID of the kind, the canonical JSON
    dump of all observable fields and the exact modification timestamp.
    """

    last_modified = _as_utc(state.last_modified)
    dump = json.dumps(state.fields, sort_keys=True, default=str, allow_nan=False)
    content = state.kind + dump + last_modified.isoformat()
    token = str(uuid.UUID(hashlib.md5(content.encode("UTF-8")).hexdigest()))
    return ResourceFingerprint(opaque_token=token, last_modified=last_modified)


def evaluate(conditional: ConditionalRequest, current: ResourceFingerprint) -> Decision:
    """
    Decide whether a write guarded by the given preconditions may proceed

    :param conditional: preconditions of the incoming request
    :param current: fingerprint of the current state of the targeted resource
    :return: decision carrying the current fingerprint
    :raises MalformedCondition: if ``If-Unmodified-Since`` can't be parsed
    """

    if conditional.if_unmodified_since is not None:
        supplied, known = _resolve(conditional.if_unmodified_since, "If-Unmodified-Since", current.last_modified)
        logger.debug(f"if_unmodified_since={supplied.isoformat()}, current={known.isoformat()}")
        if supplied < known:
            return Decision(Outcome.CONFLICT, current)

    if conditional.if_match is not None:
        if conditional.if_match.strip() != "*":
            if current.opaque_token not in _split_tags(conditional.if_match):
                logger.debug(f"if_match={conditional.if_match!r}, current={current.etag}")
                return Decision(Outcome.CONFLICT, current)

    return Decision(Outcome.PROCEED, current)


def is_fresh(conditional: ConditionalRequest, current: ResourceFingerprint) -> bool:
    """
    Determine whether the client already holds the current state of the resource

    ``If-None-Match`` takes precedence over ``If-Modified-Since``. Invalid
    ``If-Modified-Since`` values are ignored instead of being rejected.
    """

    if conditional.if_none_match is not None:
        if conditional.if_none_match.strip() == "*":
            return True
        return current.opaque_token in _split_tags(conditional.if_none_match, weak=True)

    if conditional.if_modified_since is not None:
        try:
            supplied, known = _resolve(conditional.if_modified_since, "If-Modified-Since", current.last_modified)
        except MalformedCondition:
            logger.debug(f"Ignoring invalid If-Modified-Since value {conditional.if_modified_since!r}")
            return False
        return supplied >= known

    return False
