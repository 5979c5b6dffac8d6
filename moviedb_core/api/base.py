"""
MovieDB REST API base library
"""

import logging
from typing import Any, Dict, Optional

from fastapi import HTTPException, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import schemas


logger = logging.getLogger(__name__)


async def handle_generic_exception(request: Request, _: Exception):
    logger.exception("Unhandled exception caught in base exception handler!")
    status_code = 500
    msg = "Unexpected server error. The requested action wasn't completed successfully."

    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=False,
        message=msg,
        details=""
    )), status_code=status_code)


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    status_code = 400
    msgs = "\n".join(["\t" + error["msg"] for error in exc.errors()])
    message = f"Failed to process the request:\n{msgs}"

    return JSONResponse(jsonable_encoder(schemas.APIError(
        status=status_code,
        method=request.method,
        request=request.url.path,
        repeat=False,
        message=message,
        details=str(exc.errors())
    )), status_code=status_code)


class APIException(HTTPException):
    """
    Base class for any kind of generic API exception
    """

    def __init__(
            self,
            status_code: int,
            detail: Optional[str],
            repeat: bool = False,
            message: Optional[str] = None,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.repeat = repeat
        self.message = message

    @classmethod
    async def handle(cls, request: Request, exc: StarletteHTTPException) -> Response:
        """
        Handle exceptions in a generic way to produce APIError models

        Responses to ``304`` (Not Modified) are sent without any body.
        """

        status_code = getattr(exc, "status_code", 500)
        repeat = getattr(exc, "repeat", False)
        message = getattr(exc, "message", None) or exc.__class__.__name__
        headers = getattr(exc, "headers", None)

        if not isinstance(exc, StarletteHTTPException):
            logger.error("Invalid exception class for base handler")

        logger.debug(
            f"{type(exc).__name__}: {message} @ '{request.method} "
            f"{request.url.path}' (details: {exc.detail})"
        )
        if status_code == 304:
            return Response(status_code=status_code, headers=headers)
        return JSONResponse(jsonable_encoder(schemas.APIError(
            status=status_code,
            method=request.method,
            request=request.url.path,
            repeat=repeat,
            message=message,
            details=str(exc.detail or "")
        )), status_code=status_code, headers=headers)


class NotModified(APIException):
    """
    Exception when the user agent already has the most recent version of a resource
    """

    def __init__(self, resource: str, headers: Optional[Dict[str, Any]] = None):
        super().__init__(
            status_code=304,
            detail=resource,
            repeat=False,
            message="Not modified",
            headers=headers
        )


class BadRequest(APIException):
    """
    Exception when the user probably messed something up

    The `message` field must be user-friendly and not too informative!
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=400,
            detail=detail,
            repeat=False,
            message=message
        )


class NotFound(APIException):
    """
    Exception when a requested resource was not found in the system
    """

    def __init__(self, resource: str, detail: Optional[str] = None):
        super().__init__(
            status_code=404,
            detail=detail,
            repeat=False,
            message=f"{str(resource)!r} was not found."
        )


class NotAcceptable(APIException):
    """
    Exception when none of the accepted media types of the user agent can be served
    """

    def __init__(self, accept: str, detail: Optional[str] = None):
        super().__init__(
            status_code=406,
            detail=detail,
            repeat=False,
            message=f"None of the requested media types {accept!r} is supported."
        )


class Conflict(APIException):
    """
    Exception for invalid states, concurrent manipulations or other data clashes

    The optional headers should carry the fingerprint of the current,
    unmodified resource, so that the user agent can retry correctly.
    """

    def __init__(
            self,
            message: str,
            detail: Optional[str] = None,
            repeat: bool = False,
            headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=409,
            detail=detail,
            repeat=repeat,
            message=message,
            headers=headers
        )


class UnprocessableEntity(APIException):
    """
    Exception when the database rejected a well-formed request (e.g. duplicate keys)
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=422,
            detail=detail,
            repeat=False,
            message=message
        )


class InternalServerException(APIException):
    """
    Exception for problems within the server implementation
    """

    def __init__(self, message: str, detail: Optional[str] = None, repeat: bool = False):
        super().__init__(
            status_code=500,
            detail=detail,
            repeat=repeat,
            message=message
        )


class ServiceUnavailable(APIException):
    """
    Exception when the database can't be used at the moment
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(
            status_code=503,
            detail=detail,
            repeat=True,
            message=message
        )
