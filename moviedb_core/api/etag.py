"""
Conditional request helper library for the core REST API
"""

import logging

from fastapi import Request, Response

from . import base
from .. import guard
from ..persistence import models


logger = logging.getLogger(__name__)


class Preconditions:
    """
    Helper class to check the conditional headers of a request against a model

    Writes are guarded by ``If-Unmodified-Since`` and ``If-Match``, reads
    may be answered with ``304`` (Not Modified) based on ``If-None-Match``
    and ``If-Modified-Since``. In the following, the fingerprint of a model
    is always derived from its current state, it's never cached.
    """

    request: Request
    conditional: guard.ConditionalRequest

    def __init__(self, request: Request):
        self.request = request
        self.conditional = guard.ConditionalRequest.from_headers(request.headers)

        for field in ["If-Match", "If-None-Match", "If-Unmodified-Since", "If-Modified-Since"]:
            if len(request.headers.getlist(field)) > 1:
                logger.warning(f"More than one {field!r} header: {request.headers.getlist(field)}")
        if request.headers.get("If-Range"):
            logger.warning("'If-Range' header not supported.")

    def check_write(self, model: models.Base) -> guard.Decision:
        """
        Evaluate the write preconditions against the current state of the model

        The model is the container whose fingerprint the user agent knows,
        which is the movie when one of its roles should be modified.

        :param model: current state of the targeted resource
        :return: the proceeding decision
        :raises BadRequest: if the ``If-Unmodified-Since`` header is malformed
        :raises Conflict: if the resource has been modified in the meantime
        """

        try:
            decision = guard.evaluate(self.conditional, model.fingerprint)
        except guard.MalformedCondition as exc:
            raise base.BadRequest(
                "The conditional request header is not a valid HTTP date.",
                str(exc)
            ) from exc

        if not decision.proceed:
            logger.info(
                f"Conflicting '{self.request.method} {self.request.url.path}' rejected "
                f"for {model!r} (current fingerprint {decision.fingerprint.etag})"
            )
            raise base.Conflict(
                "The resource has been modified in the meantime. Fetch it again before retrying.",
                f"Current state last modified at {decision.fingerprint.http_date}",
                repeat=False,
                headers=decision.fingerprint.headers
            )
        return decision

    def check_fresh(self, model: models.Base):
        """
        Interrupt reading requests with ``304`` (Not Modified) if the user agent has the current state

        :param model: current state of the requested resource
        :raises NotModified: if the cached state of the user agent is still fresh
        """

        fingerprint = model.fingerprint
        if self.request.method in ("GET", "HEAD") and guard.is_fresh(self.conditional, fingerprint):
            raise base.NotModified(self.request.url.path, headers=fingerprint.headers)

    @staticmethod
    def add_headers(response: Response, model: models.Base):
        """
        Add the ``ETag`` and ``Last-Modified`` header fields of the model to the response
        """

        for key, value in model.fingerprint.headers.items():
            response.headers[key] = value
