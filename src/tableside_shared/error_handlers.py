"""
Centralized error handlers for the tableside Flask applications.

Both apps are JSON APIs, so every error leaves in the standard envelope.
"""

from http import HTTPStatus

from flask import Flask, jsonify
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from werkzeug.exceptions import HTTPException

from tableside_shared.logging_config import get_logger
from tableside_shared.serializers import error_response
from tableside_shared.validation import ValidationError

logger = get_logger(__name__)


def register_error_handlers(app: Flask) -> None:
    """
    Register centralized error handlers for the Flask app.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(ValidationError)
    def handle_validation_error(e: ValidationError):
        logger.warning(f"Validation error: {e}")
        return jsonify(error_response(str(e))), HTTPStatus.BAD_REQUEST

    @app.errorhandler(PydanticValidationError)
    def handle_pydantic_validation_error(e: PydanticValidationError):
        logger.warning(f"Pydantic validation error: {e}")
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
            for err in e.errors()
        ]
        return jsonify(error_response("Invalid request data", {"errors": errors})), (
            HTTPStatus.BAD_REQUEST
        )

    @app.errorhandler(OperationalError)
    def handle_storage_unavailable(e: OperationalError):
        """The database could not be reached; the client may retry later."""
        logger.error(f"Storage unavailable: {e}", exc_info=True)
        return jsonify(error_response("Storage temporarily unavailable")), (
            HTTPStatus.SERVICE_UNAVAILABLE
        )

    @app.errorhandler(SQLAlchemyError)
    def handle_database_error(e: SQLAlchemyError):
        logger.error(f"Database error: {e}", exc_info=True)
        return jsonify(error_response("Database error")), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(HTTPException)
    def handle_http_exception(e: HTTPException):
        """Handle HTTP exceptions from Werkzeug."""
        logger.warning(f"HTTP exception {e.code}: {e.description}")
        return jsonify(error_response(e.description or str(e))), e.code

    @app.errorhandler(Exception)
    def handle_generic_exception(e: Exception):
        logger.error(f"Unhandled exception: {e}", exc_info=True)
        return jsonify(error_response("Internal server error")), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(404)
    def handle_not_found(e):
        return jsonify(error_response("Resource not found")), HTTPStatus.NOT_FOUND

    @app.errorhandler(405)
    def handle_method_not_allowed(e):
        return jsonify(error_response("Method not allowed")), HTTPStatus.METHOD_NOT_ALLOWED
