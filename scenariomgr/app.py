"""Flask application of the scenario manager and the command that serves it."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import yaml
from flask import Flask

from scenariomgr.config import AppConfig, load_config, parse_flags
from scenariomgr.handlers import ServiceClients
from scenariomgr.logger import start_logger
from scenariomgr.models import ServiceConfig, TestConfig
from scenariomgr.resources import (
    COMPUTE_SPEC,
    NETWORK_SPEC,
    STORE_KEY,
    TOPOLOGY_SPEC,
    ResourceSpec,
    create_resource_blueprint,
)
from scenariomgr.scenarios import CLIENTS_KEY, create_scenario_blueprint
from scenariomgr.store import Store
from scenariomgr.utils import KEY_PREFIX_SERVICE, KEY_PREFIX_TEST

SERVICE_NAME = "scenario-manager"
LISTEN_PORT = 3000
WELCOME_TEXT = "Welcome to Merak - Cloud Emulator"

SERVICE_SPEC = ResourceSpec(
    name="service_configs",
    url_prefix="/api/service-config",
    entity_cls=ServiceConfig,
    key_prefix=KEY_PREFIX_SERVICE,
    label="Service config",
    tracks_status=False,
)

TEST_SPEC = ResourceSpec(
    name="test_configs",
    url_prefix="/api/test-config",
    entity_cls=TestConfig,
    key_prefix=KEY_PREFIX_TEST,
    label="Test config",
)

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET,POST,HEAD,PUT,DELETE,PATCH",
}


def create_app(
    config: AppConfig | None = None,
    store: Store | None = None,
    clients: ServiceClients | None = None,
) -> Flask:
    """Build the application with its logger, store, service clients and routes."""
    config = config if config is not None else AppConfig()
    log = start_logger(SERVICE_NAME, config.use_syslog, config.log_level)

    app = Flask(__name__)
    app.extensions[STORE_KEY] = store if store is not None else Store()
    app.extensions[CLIENTS_KEY] = clients if clients is not None else ServiceClients()
    log.info("Database connected!")

    @app.after_request
    def _cors(response):
        for name, value in _CORS_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.get("/api")
    def welcome():
        return WELCOME_TEXT

    @app.get("/")
    def index():
        return "OK"

    app.register_blueprint(create_scenario_blueprint())
    for spec in (TOPOLOGY_SPEC, SERVICE_SPEC, NETWORK_SPEC, COMPUTE_SPEC, TEST_SPEC):
        app.register_blueprint(create_resource_blueprint(spec))

    return app


def main(argv: Sequence[str] | None = None) -> None:
    """Load the configuration and serve the API on port 3000."""
    try:
        path = parse_flags(argv)
    except (OSError, ValueError) as exc:
        raise SystemExit(f"cannot find config.yaml: {exc}") from None
    try:
        config = load_config(path)
    except (OSError, ValueError, TypeError, yaml.YAMLError) as exc:
        raise SystemExit(f"error to create config: {exc}") from None

    app = create_app(config)
    logging.getLogger("scenariomgr").info("listening on :%d", LISTEN_PORT)
    app.run(host="0.0.0.0", port=LISTEN_PORT)


if __name__ == "__main__":
    main()