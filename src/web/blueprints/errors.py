"""JSON error handlers for the sync API."""

from flask import Blueprint, jsonify, request
from flask.typing import ResponseReturnValue
from sqlalchemy.exc import SQLAlchemyError

from common.base.logging_config import get_logger

logger = get_logger(__name__)

errors_bp = Blueprint('errors', __name__)


def handle_error(status_code: int, error_title: str, message: str | None = None) -> ResponseReturnValue:
    """
    Build a JSON error response.

    :param status_code: HTTP status code
    :param error_title: Short error description, returned as "error"
    :param message: Optional diagnostic detail, returned as "message"
    :return: JSON response with the given status code
    """
    response = {'error': error_title}
    if message:
        response['message'] = message
    return jsonify(response), status_code


@errors_bp.app_errorhandler(400)
def bad_request(e: Exception) -> ResponseReturnValue:
    logger.warning(f"Bad request to {request.path}: {e}")
    return handle_error(400, 'Bad request')


@errors_bp.app_errorhandler(404)
def page_not_found(e: Exception) -> ResponseReturnValue:
    return handle_error(404, 'Not found')


@errors_bp.app_errorhandler(405)
def method_not_allowed(e: Exception) -> ResponseReturnValue:
    logger.info(f"Method {request.method} not allowed on {request.path}")
    return handle_error(405, 'Method not allowed')


@errors_bp.app_errorhandler(500)
def internal_server_error(e: Exception) -> ResponseReturnValue:
    logger.error(f"Internal server error on {request.path}: {e}")
    return handle_error(500, 'Internal server error', str(e))


@errors_bp.app_errorhandler(SQLAlchemyError)
def handle_database_error(e: SQLAlchemyError) -> ResponseReturnValue:
    logger.error(f"Database error on {request.path}: {str(e)}")
    return handle_error(500, 'Internal server error', 'A database error occurred')
