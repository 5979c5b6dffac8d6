#!/usr/bin/env python3

import sys
import argparse
import logging.config

import uvicorn
import sqlalchemy.exc

from moviedb_core import settings as _settings
from moviedb_core.api.api import create_app
from moviedb_core.persistence import database, models


def get_parser(program: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=program)

    commands = parser.add_subparsers(
        description="Available sub-commands: init, run",
        dest="command",
        required=True,
        metavar="<command>",
        help="the sub-command to be executed"
    )

    parser_init = commands.add_parser(
        "init",
        description="Initialize the project by creating the config file and the database tables"
    )
    parser_run = commands.add_parser(
        "run",
        description="Run 'uvicorn' ASGI server to serve the MovieDB REST API"
    )

    parser_init.add_argument(
        "--database",
        type=str,
        metavar="url",
        help="Database connection URL including scheme and auth"
    )
    parser_init.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing config file with the defaults"
    )

    parser_run.add_argument(
        "--host",
        type=str,
        metavar="host",
        help="Bind TCP socket to this host (overwrite config)"
    )
    parser_run.add_argument(
        "--port",
        type=int,
        metavar="port",
        help="Bind TCP socket to this port (overwrite config)"
    )
    parser_run.add_argument(
        "--config",
        type=str,
        metavar="config",
        default="config.json",
        help="Overwrite the config file (defaults to 'config.json')"
    )
    parser_run.add_argument(
        "--debug",
        action="store_true",
        help="Enable full debug logging"
    )
    parser_run.add_argument(
        "--debug-sql",
        action="store_true",
        help="Enable echoing of database actions (overwrites config)"
    )
    parser_run.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload"
    )
    parser_run.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="n",
        help="Number of worker processes (not valid with --reload)",
    )
    parser_run.add_argument(
        "--no-access-log",
        action="store_true",
        help="Disable access logs"
    )
    parser_run.add_argument(
        "--use-colors",
        action="store_true",
        help="Enable colorized output (may break file logs!)"
    )
    parser_run.add_argument(
        "--root-path",
        type=str,
        default="",
        metavar="p",
        help="Sub-mount the application below the given path"
    )

    return parser


def run_server(args: argparse.Namespace) -> int:
    _settings.CONFIG_PATHS.insert(0, args.config)
    try:
        settings = _settings.Settings()
    except ValueError:
        print("Ensure that the configuration file is valid. Please correct any errors.", file=sys.stderr)
        raise

    if args.debug:
        settings.logging.root["level"] = "DEBUG"
        for handler in settings.logging.handlers:
            settings.logging.handlers[handler]["level"] = "DEBUG"
    if args.debug_sql:
        settings.database.debug_sql = args.debug_sql

    port = args.port
    if port is None:
        port = settings.server.port
    host = args.host
    if host is None:
        host = settings.server.host

    app = create_app(settings=settings)

    logging.getLogger("moviedb_core").info(f"Server running at host {host} port {port}")
    uvicorn.run(
        "moviedb_core.api:api.app" if args.reload else app,
        port=port,
        host=host,
        reload=args.reload,
        workers=args.workers,
        log_level="debug" if args.debug else "info",
        log_config=settings.logging.model_dump(),
        access_log=not args.no_access_log,
        use_colors=args.use_colors,
        proxy_headers=True,
        root_path=args.root_path
    )
    return 0


def init_project(args: argparse.Namespace) -> int:
    path = _settings.find_config_file()
    if path is not None and not args.force:
        print(
            f"A config file has been found at {path!r} and will be used. If you want a fresh "
            f"installation, you should remove the config file or use '--force'."
        )
        settings = _settings.Settings()
    else:
        conf = _settings.get_default_core_config(_settings.get_db_from_env(args.database))
        _settings.store_configuration(conf)
        settings = _settings.Settings()

    logging.config.dictConfig(settings.logging.model_dump())
    database.init(settings.database.connection, settings.database.debug_sql, create_all=True)

    with database.get_new_session() as session:
        try:
            movies = session.query(models.Movie).count()
        except sqlalchemy.exc.DatabaseError:
            print("The database tables could not be created. Please check the connection.", file=sys.stderr)
            return 1

    print(f"Done. The database contains {movies} movie(s).")
    return 0


if __name__ == "__main__":
    program_name = sys.argv[0] if not sys.argv[0].endswith("__main__.py") else "moviedb_core"
    namespace = get_parser(program_name).parse_args(sys.argv[1:])

    command_functions = {
        "run": run_server,
        "init": init_project
    }
    sys.exit(command_functions[namespace.command](namespace))
