"""
MovieDB core settings provider
"""

import os
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import pydantic_settings
from pydantic_settings import PydanticBaseSettingsSource

from .schemas import config


CONFIG_PATHS: List[str] = ["config.json", os.path.join("..", "config.json")]
"""
list of search paths for the config file, can be overwritten by the env variable ``CONFIG_PATH``
"""

if os.environ.get("CONFIG_PATH"):
    CONFIG_PATHS = [os.environ.get("CONFIG_PATH")]


logger = logging.getLogger(__name__)


def get_db_from_env(db_override: Optional[str] = None) -> Optional[str]:
    if db_override:
        return db_override
    return os.environ.get("DATABASE_CONNECTION", os.environ.get("DATABASE__CONNECTION", None))


class Settings(pydantic_settings.BaseSettings, config.CoreConfig):
    """
    MovieDB core settings

    Do not change most of the settings at runtime, since this might lead to unspecified
    behavior. Always restart the server after changing the config file. Values are taken
    from keyword arguments first, then from environment variables (nested keys separated
    by ``__``, e.g. ``DATABASE__CONNECTION``), then from the first config file found in
    ``CONFIG_PATHS`` and finally from the defaults of the config schemas.
    """

    model_config = pydantic_settings.SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore"
    )

    @classmethod
    def settings_customise_sources(
            cls,
            settings_cls: type,
            init_settings: PydanticBaseSettingsSource,
            env_settings: PydanticBaseSettingsSource,
            dotenv_settings: PydanticBaseSettingsSource,
            file_secret_settings: PydanticBaseSettingsSource
    ) -> Tuple[Any, ...]:
        return init_settings, env_settings, dotenv_settings, file_secret_settings, read_settings_from_file


def find_config_file() -> Optional[str]:
    for path in CONFIG_PATHS:
        if os.path.exists(path):
            return path
    return None


def read_settings_from_file() -> Dict[str, Any]:
    path = find_config_file()
    if path is None:
        logger.debug(f"No config file found in {CONFIG_PATHS!r}, using defaults.")
        return {}
    with open(path, "r", encoding="UTF-8") as file:
        return json.load(file)


def get_default_core_config(database_override: Optional[str] = None) -> config.CoreConfig:
    c = config.CoreConfig()
    if database_override:
        c.database.connection = database_override
    return c


def get_default_config() -> Dict[str, Any]:
    return get_default_core_config().model_dump()


def store_configuration(conf: Optional[config.CoreConfig] = None, path: Optional[str] = None) -> config.CoreConfig:
    p = path or os.path.abspath(CONFIG_PATHS[0])
    conf = conf or get_default_core_config(get_db_from_env())
    with open(p, "w", encoding="UTF-8") as f:
        json.dump(conf.model_dump(), f, indent=4)
    logger.info(f"A new config file has been created as {p!r}.")
    return conf
