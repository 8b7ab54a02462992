"""Shared objects for the quizsync blueprints."""

# Third-party imports
from flask import Blueprint

# Local application imports
from common.base.logging_config import get_logger

# Create the blueprint that will be used by all quizsync modules
sync_bp = Blueprint('quizsync', __name__)

# Shared logger
logger = get_logger(__name__)

# app.config keys set by web.server.create_app
STORE_CONFIG_KEY = 'SNAPSHOT_STORE'
STRICT_VALIDATION_CONFIG_KEY = 'STRICT_VALIDATION'
