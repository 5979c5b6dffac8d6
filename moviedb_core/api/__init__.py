"""
MovieDB core REST API

Use ``uvicorn moviedb_core.api:api.app`` to serve the API with default settings.
"""

from .api import api, create_app
