"""
Combined MovieDB REST API definitions

This API provides multiple versions of the endpoints for movies, their
roles and the actors playing them. All versions share the same endpoints,
but they default to different representations of the resources. The
representation can also be selected explicitly by the ``Accept`` header.
"""

import logging.config
import contextlib
from typing import Any, Callable, Dict, Optional, Type, Union

import fastapi
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import base, versioning
from .routers import all_routers
from .. import schemas, __version__
from ..persistence import database
from ..settings import Settings


DEFAULT_EXCEPTION_HANDLERS = {
    StarletteHTTPException: base.APIException.handle,
    RequestValidationError: base.handle_request_validation_error,
    Exception: base.handle_generic_exception
}


API_DOC = """MovieDB REST API definition version {version}

The API tries to always return JSON-encoded data to any kind of request,
if return data is necessary for that response, which is not the case for
redirects and `204` (No Content) or `304` (Not Modified) responses. All error
responses use the schema of the `APIError`. The default representation of
this version is `{media_type}`, which may be overwritten by the `Accept` header.

Every response for a single resource carries its `ETag` and `Last-Modified`
headers. Writes may be guarded by the `If-Unmodified-Since` header (using the
value of a previous `Last-Modified` header) or the `If-Match` header:

1. The `400` (Bad Request) error response is returned if the request is invalid,
   which includes `If-Unmodified-Since` headers that are no valid HTTP dates.
2. The `404` (Not Found) error response is returned whenever a resource ID can't be found.
3. The `409` (Conflict) error response is returned if the resource has been
   modified since the given point in time. The response carries the current
   `Last-Modified` header, so the user agent should fetch the resource again
   and decide whether to retry its request. Note that roles are part of their
   movie, so any change of a role modifies the movie as well.
4. The `422` (Unprocessable Entity) error response is returned if the stored
   data rejected the request, e.g. when a movie ID is already in use.

Take a look at the individual methods and endpoints for more information.
"""


def _make_app(
        title: str,
        version: str,
        description: str,
        exception_handlers: Optional[Dict[Any, Callable]] = None,
        root_redirect: bool = True,
        responses: Optional[Dict[Union[int, str], Dict[str, Any]]] = None,
        api_class: Optional[Type[fastapi.FastAPI]] = None,
        **kwargs
) -> fastapi.FastAPI:
    if api_class is None:
        api_class = fastapi.FastAPI
    app = api_class(
        title=title,
        version=version,
        description=description,
        responses=responses or {400: {"model": schemas.APIError}},
        **kwargs
    )

    handlers = exception_handlers or DEFAULT_EXCEPTION_HANDLERS
    for exc in handlers:
        app.add_exception_handler(exc, handlers[exc])

    if root_redirect:
        @app.get("/", include_in_schema=False)
        async def redirect_root():
            return fastapi.responses.RedirectResponse("./docs")

    return app


def create_app(
        settings: Optional[Settings] = None,
        configure_logging: bool = True,
        configure_database: bool = True
) -> versioning.VersionedFastAPI:
    """
    Create a new ``FastAPI`` instance using the specified settings and switches

    This function is conveniently used to allow overwriting the settings
    before launching the application as well as to allow multiple ``FastAPI``
    instances in one program, which in turn makes unit testing much easier.

    :param settings: optional Settings instance (would be created if not present)
    :param configure_logging: switch whether to configure logging
    :param configure_database: switch whether to configure the database
    :return: new ``FastAPI`` instance
    """

    if settings is None:
        settings = Settings()

    if configure_logging:
        logging.config.dictConfig(settings.logging.model_dump())
    logger = logging.getLogger(__name__)
    logger.debug("Starting application...")

    if configure_database:
        database.init(settings.database.connection, settings.database.debug_sql)

    @contextlib.asynccontextmanager
    async def lifespan(_: fastapi.FastAPI):
        logger.info("Starting API...")
        yield
        logger.info("Shutting down...")

    apis = {
        version: _make_app(
            title=f"MovieDB REST API v{version}",
            version=__version__,
            description=API_DOC.format(version=version, media_type=f"application/vnd.moviedb.v{version}+json"),
            responses={k: {"model": schemas.APIError} for k in [400, 406]}
        )
        for version in (1, 2)
    }

    app = _make_app(
        title="MovieDB REST API",
        version=__version__,
        description=__doc__,
        apis=apis,
        logger=logger,
        lifespan=lifespan,
        api_class=versioning.VersionedFastAPI
    )

    assert isinstance(app, versioning.VersionedFastAPI), "'VersionedFastAPI' instance required"
    for router in all_routers:
        app.add_router(router)
    app.finish()

    app.state.settings = settings
    for sub_api in apis.values():
        sub_api.state.settings = settings
    return app


class APIWrapper:
    """
    Wrapper class around the FastAPI main object, accessible via the ``app`` property

    There should be only one global instance of this object, which should only
    export its functionality to hold the ``app`` property. This wrapper can be
    used to allow easy command-line usage via ``uvicorn`` calls. Example:

    .. code-block::

        uvicorn moviedb_core.api:api.app
    """

    def __init__(self):
        self._app: Optional[fastapi.FastAPI] = None

    def get_app(self) -> fastapi.FastAPI:
        return self.app

    def set_app(self, application: fastapi.FastAPI):
        if not isinstance(application, fastapi.FastAPI):
            raise TypeError
        self._app = application

    @property
    def app(self) -> fastapi.FastAPI:
        """
        Return the ``app`` instance (or create it with default settings if it doesn't exist)
        """

        if self._app is not None:
            return self._app
        self._app = create_app()
        return self._app


api = APIWrapper()
