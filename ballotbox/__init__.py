import logging

from flask import Flask

from ballotbox.cli import register_cli
from ballotbox.config import Config
from ballotbox.errors import register_error_handlers
from ballotbox.extensions import db, migrate
from ballotbox.routes import register_routes
from ballotbox.schema import init_schema
from ballotbox.services.election import init_election_state


def create_app(test_config=None):
    app = Flask(__name__, template_folder="../templates")
    app.config.from_object(Config)
    if test_config:
        app.config.from_mapping(test_config)

    app.logger.setLevel(getattr(logging, app.config["LOG_LEVEL"], logging.INFO))

    db.init_app(app)
    migrate.init_app(app, db)

    init_schema(app)
    init_election_state(app)

    register_error_handlers(app)
    register_routes(app)
    register_cli(app)
    return app


__all__ = ["db", "migrate", "create_app"]
