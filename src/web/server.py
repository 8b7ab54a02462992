#!/usr/bin/python3

""" Web server for the quizsync API. """

from flask import Flask
from flask_compress import Compress
from flask_cors import CORS
from waitress import serve
from typing import Optional

import constants

from common.config.sync_config import get_sync_config, init_sync_config
from common.base.logging_config import get_logger
from common.base.request_logger import RequestLogger
from quizsync.blueprints.shared import STORE_CONFIG_KEY, STRICT_VALIDATION_CONFIG_KEY
from quizsync.storage import get_snapshot_store
logger = get_logger(__name__)

def create_app(testing: bool = False, config_path: Optional[str] = None) -> Flask:
    """
    Create and configure Flask application instance.

    :param testing: Whether to configure app for testing
    :param config_path: Optional path to the sync TOML configuration
    :return: Configured Flask app
    """
    # Initialize system state before creating app
    if testing:
        constants.init_testing()

    # For production, initialization should already be done by launch.py
    if not constants.INITIALIZED:
        raise RuntimeError("System not initialized. In production, launch.py must initialize the system.")

    sync_config = init_sync_config(config_path) if config_path else get_sync_config()

    app = Flask(__name__)
    app.config['TESTING'] = testing
    app.config[STORE_CONFIG_KEY] = get_snapshot_store(sync_config)
    app.config[STRICT_VALIDATION_CONFIG_KEY] = sync_config.strict_validation

    # Browsers call the API from other origins
    CORS(
        app,
        origins=sync_config.cors_origins,
        allow_headers=['Content-Type'],
        methods=['GET', 'POST', 'OPTIONS'],
    )
    logger.info(f"CORS enabled for origins: {', '.join(sync_config.cors_origins)}")

    Compress(app)

    if not testing:
        RequestLogger(app, log_dir=constants.LOG_DIR)

    from quizsync.blueprints import sync_bp
    app.register_blueprint(sync_bp)

    from web.blueprints.errors import errors_bp
    app.register_blueprint(errors_bp)

    return app

# The app instance will be created when needed
app = None

def get_app() -> Flask:
    """Get or create the Flask application instance."""
    global app
    if app is None:
        app = create_app()
    return app

def run_server(host: str = '0.0.0.0', port: int = 5002, debug: bool = False) -> None:
    """Run the sync server."""
    logger.info(f"Starting quizsync server on {host}:{port}")

    if debug:
        # Use Flask's built-in development server for debug mode
        flask_app = get_app()
        flask_app.config['DEBUG'] = True
        flask_app.run(host=host, port=port, debug=True)
    else:
        serve(
            get_app(),
            host=host,
            port=port,
            channel_timeout=60,
            cleanup_interval=30,
            connection_limit=100
        )
