"""Application-level error handlers.

Errors raised outside a SCIM route handler (unknown paths, wrong methods,
unhandled exceptions) still leave the system as SCIM error envelopes when the
request targets /scim/v2.
"""
import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from scim_server.core.errors import NOT_FOUND_DETAIL, ScimError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        if _is_scim_request():
            return _scim_response(404, NOT_FOUND_DETAIL)
        return jsonify({"error": "Not Found", "message": "Resource not found"}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 Method Not Allowed errors (e.g. DELETE on users)."""
        if _is_scim_request():
            return _scim_response(405, "Method not allowed")
        return jsonify({"error": "Method Not Allowed", "message": str(error.description)}), 405

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        if isinstance(error, HTTPException):
            if _is_scim_request():
                return _scim_response(error.code or 500, error.description or error.name)
            return error

        logger.error("Unhandled exception: %s", error, exc_info=True)

        if _is_scim_request():
            return _scim_response(500, "Internal server error")
        return jsonify({"error": "Internal Server Error", "message": "An unexpected error occurred"}), 500


def _scim_response(status: int, detail: str):
    error = ScimError(status, detail)
    response = jsonify(error.to_dict())
    response.status_code = status
    response.mimetype = "application/scim+json"
    return response


def _is_scim_request() -> bool:
    """SCIM endpoints always return SCIM JSON (RFC 7644)."""
    return request.path.startswith("/scim/v2")
