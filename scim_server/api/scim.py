"""SCIM 2.0 API endpoints (RFC 7644) for user provisioning.

This module provides the SCIM-compliant REST surface and delegates all
business logic to the provisioning_service layer.

Architecture:
    SCIM API (/scim/v2/*) -> core/provisioning_service.py -> UserRepository -> SQL store

Security:
    - OAuth 2.0 Bearer Token authentication (RFC 6750), JWT validated against the IdP JWKS
    - Optional: static Bearer Token shared with the IdP provisioning connector
    - Discovery endpoints (ServiceProviderConfig, ResourceTypes, Schemas) are public
"""

from __future__ import annotations
import hashlib
import hmac
import logging
from flask import Blueprint, request, jsonify, Response, current_app, g
from scim_server.core import provisioning_service
from scim_server.core.errors import ScimError
from scim_server.core.query import parse_list_query
from scim_server.core.scim_transformer import SCIM_USER_SCHEMA
from scim_server.api.decorators import TokenValidationError, token_scopes, validate_jwt_token

# SCIM 2.0 Blueprint
bp = Blueprint('scim', __name__, url_prefix='/scim/v2')

# Configuration
JSON_MAX_SIZE_BYTES = 65536  # 64 KB
ACCEPTED_CONTENT_TYPES = ("application/scim+json", "application/json")
SCIM_CONTENT_TYPE = "application/scim+json"

DISCOVERY_ENDPOINTS = (
    "/scim/v2/ServiceProviderConfig",
    "/scim/v2/ResourceTypes",
    "/scim/v2/Schemas",
)

logger = logging.getLogger(__name__)


def _repository():
    return current_app.config["USER_REPOSITORY"]


# ─────────────────────────────────────────────────────────────────────────────
# Authentication Helpers
# ─────────────────────────────────────────────────────────────────────────────

def _validate_static_token(provided_token: str) -> bool:
    """Validate the shared static token with constant-time comparison."""
    cfg = current_app.config.get("APP_CONFIG")
    if not cfg or not cfg.scim_static_token:
        return False
    return hmac.compare_digest(provided_token.encode(), cfg.scim_static_token.encode())


def _log_auth_attempt(auth_method: str, token: str, success: bool):
    """Log authentication attempt without leaking secrets (SHA256 prefix only)."""
    token_hash = hashlib.sha256(token.encode()).hexdigest()[:12]
    correlation_id = request.headers.get("X-Correlation-Id", "none")
    client_ip = request.headers.get("X-Forwarded-For", request.remote_addr)

    status = "SUCCESS" if success else "FAILED"
    logger.info(
        f"{status} SCIM auth | method={auth_method} | "
        f"token_hash={token_hash} | path={request.path} | "
        f"correlation_id={correlation_id} | client_ip={client_ip}"
    )


# ─────────────────────────────────────────────────────────────────────────────
# Error Handler
# ─────────────────────────────────────────────────────────────────────────────

def scim_error(status: int, detail: str, scim_type: str = None) -> tuple[Response, int]:
    """Create SCIM error response tuple for route handlers."""
    error = ScimError(status, detail, scim_type)
    return jsonify(error.to_dict()), status


def scim_error_response(status: int, detail: str, scim_type: str = None) -> Response:
    """Create SCIM error Response object for before_request handlers."""
    error = ScimError(status, detail, scim_type)
    response = jsonify(error.to_dict())
    response.status_code = status
    return response


@bp.errorhandler(ScimError)
def handle_scim_error(error: ScimError):
    """Render ScimError exceptions raised by the service layer."""
    return jsonify(error.to_dict()), error.status


@bp.errorhandler(413)
def handle_request_too_large(error):
    """Handle payload too large errors."""
    return scim_error(413, "Request payload exceeds maximum allowed size (64 KB)", "invalidValue")


# ─────────────────────────────────────────────────────────────────────────────
# Request Validation Middleware
# ─────────────────────────────────────────────────────────────────────────────

@bp.before_request
def validate_request():
    """Authenticate the caller, then check request size and content type.

    Authentication precedence:
    1. Discovery endpoints are public.
    2. Authorization: Bearer <token> is required.
    3. A token equal to the configured static token is accepted.
    4. Otherwise the token must be a valid JWT access token from the configured issuer
       (and carry the required scope, when one is configured).
    """
    if current_app.config.get("TESTING") and current_app.config.get("SKIP_OAUTH_FOR_TESTS"):
        return _validate_payload_headers()

    if request.path in DISCOVERY_ENDPOINTS:
        return None

    auth_header = request.headers.get("Authorization", "")
    if not auth_header:
        return scim_error_response(401, "Authorization header missing. Provide 'Authorization: Bearer <token>'.", "unauthorized")

    if not auth_header.startswith("Bearer "):
        return scim_error_response(401, "Authorization header must use Bearer token scheme: 'Authorization: Bearer <token>'.", "unauthorized")

    token = auth_header[7:].strip()
    if not token:
        return scim_error_response(401, "Bearer token is empty.", "unauthorized")

    if _validate_static_token(token):
        _log_auth_attempt("static", token, success=True)
        g.auth_method = "static"
        g.oauth_claims = None
        return _validate_payload_headers()

    try:
        oauth_claims = validate_jwt_token(token)
    except TokenValidationError as e:
        _log_auth_attempt("oauth", token, success=False)
        return scim_error_response(401, str(e), "unauthorized")

    _log_auth_attempt("oauth", token, success=True)
    g.auth_method = "oauth"
    g.oauth_claims = oauth_claims

    required_scope = current_app.config["APP_CONFIG"].oauth_required_scope
    if required_scope and required_scope not in token_scopes(oauth_claims):
        return scim_error_response(403, f"Insufficient scope. Required: '{required_scope}'.", "forbidden")

    return _validate_payload_headers()


def _validate_payload_headers():
    """Reject oversized bodies and unexpected content types on write methods."""
    if request.content_length and request.content_length > JSON_MAX_SIZE_BYTES:
        return scim_error_response(413, "Request payload too large", "invalidValue")

    if request.method in ("POST", "PUT", "PATCH"):
        if request.mimetype not in ACCEPTED_CONTENT_TYPES:
            return scim_error_response(
                415,
                "Content-Type must be application/scim+json",
                "invalidSyntax"
            )
    return None


@bp.after_request
def add_scim_headers(response):
    """Use the SCIM media type and echo correlation/auth headers for tracing."""
    if response.mimetype == "application/json":
        response.mimetype = SCIM_CONTENT_TYPE

    correlation_id = request.headers.get("X-Correlation-Id")
    if correlation_id:
        response.headers["X-Correlation-Id"] = correlation_id

    auth_method = getattr(g, 'auth_method', None)
    if auth_method:
        response.headers["X-Auth-Method"] = auth_method

    return response


def _json_body():
    payload = request.get_json(silent=True)
    if payload is None:
        raise ScimError(400, "Request body is not valid JSON", "invalidSyntax")
    return payload


# ─────────────────────────────────────────────────────────────────────────────
# SCIM Schema Discovery Endpoints
# ─────────────────────────────────────────────────────────────────────────────

@bp.route('/ServiceProviderConfig', methods=['GET'])
def service_provider_config():
    """Return SCIM ServiceProviderConfig (RFC 7643 Section 5)."""
    config = {
        "schemas": ["urn:ietf:params:scim:schemas:core:2.0:ServiceProviderConfig"],
        "patch": {"supported": True},
        "bulk": {"supported": False, "maxOperations": 0, "maxPayloadSize": 0},
        "filter": {"supported": True, "maxResults": 100},
        "changePassword": {"supported": False},
        "sort": {"supported": False},
        "etag": {"supported": False},
        "authenticationSchemes": [
            {
                "name": "OAuth 2.0 Bearer Token",
                "description": "Access token issued by the identity provider authorization server",
                "specUri": "https://tools.ietf.org/html/rfc6750",
                "type": "oauthbearertoken",
                "primary": True
            }
        ]
    }
    return jsonify(config), 200


@bp.route('/ResourceTypes', methods=['GET'])
def resource_types():
    """Return supported SCIM resource types (User only)."""
    resources = {
        "schemas": ["urn:ietf:params:scim:api:messages:2.0:ListResponse"],
        "totalResults": 1,
        "Resources": [
            {
                "schemas": ["urn:ietf:params:scim:schemas:core:2.0:ResourceType"],
                "id": "User",
                "name": "User",
                "endpoint": "/scim/v2/users",
                "description": "Provisioned user account",
                "schema": SCIM_USER_SCHEMA,
                "meta": {
                    "location": f"{request.host_url.rstrip('/')}/scim/v2/ResourceTypes/User",
                    "resourceType": "ResourceType"
                }
            }
        ]
    }
    return jsonify(resources), 200


def _attribute(name, type_="string", **overrides):
    attribute = {
        "name": name,
        "type": type_,
        "multiValued": False,
        "required": False,
        "mutability": "readWrite",
        "returned": "default",
    }
    attribute.update(overrides)
    return attribute


@bp.route('/Schemas', methods=['GET'])
def schemas():
    """Return the SCIM User schema definition (supported attributes only)."""
    schema_list = {
        "schemas": ["urn:ietf:params:scim:api:messages:2.0:ListResponse"],
        "totalResults": 1,
        "Resources": [
            {
                "id": SCIM_USER_SCHEMA,
                "name": "User",
                "description": "User Account",
                "attributes": [
                    _attribute("userName", required=True, caseExact=True, uniqueness="server"),
                    _attribute("externalId", caseExact=True),
                    _attribute("name", "complex", subAttributes=[
                        _attribute("givenName"),
                        _attribute("familyName"),
                        _attribute("middleName"),
                    ]),
                    _attribute("displayName"),
                    _attribute("emails", "complex", multiValued=True, subAttributes=[
                        _attribute("value"),
                        _attribute("type"),
                        _attribute("primary", "boolean"),
                    ]),
                    _attribute("active", "boolean"),
                ],
                "meta": {
                    "resourceType": "Schema",
                    "location": f"{request.host_url.rstrip('/')}/scim/v2/Schemas/{SCIM_USER_SCHEMA}"
                }
            }
        ]
    }
    return jsonify(schema_list), 200


# ─────────────────────────────────────────────────────────────────────────────
# SCIM User Operations
# ─────────────────────────────────────────────────────────────────────────────

@bp.route('/users', methods=['GET'])
@bp.route('/Users', methods=['GET'])
def list_users():
    """List users with pagination and filtering.

    RFC 7644 Section 3.4.2: Listing Resources

    Query parameters:
        - filter: SCIM filter string (only 'userName eq "value"' is understood)
        - startIndex: 1-based starting index (default: 1)
        - count: Max results per page (default: 100)

    Returns:
        200 OK with ListResponse
    """
    try:
        query = parse_list_query(
            request.args.get("filter"),
            request.args.get("startIndex", type=int),
            request.args.get("count", type=int),
        )
        list_response = provisioning_service.list_users_scim(_repository(), query)
        return jsonify(list_response), 200

    except ScimError:
        raise
    except Exception:
        logger.exception("Unexpected failure listing users")
        return scim_error(500, "Internal server error")


@bp.route('/users/<user_id>', methods=['GET'])
@bp.route('/Users/<user_id>', methods=['GET'])
def get_user(user_id: str):
    """Retrieve a specific user by ID.

    RFC 7644 Section 3.4.1: Retrieving a Known Resource

    Returns:
        200 OK with User resource, 404 if unknown
    """
    try:
        scim_user = provisioning_service.get_user_scim(_repository(), user_id)
        return jsonify(scim_user), 200

    except ScimError:
        raise
    except Exception:
        logger.exception("Unexpected failure reading user %s", user_id)
        return scim_error(500, "Internal server error")


@bp.route('/users', methods=['POST'])
@bp.route('/Users', methods=['POST'])
def create_user():
    """Create a new user.

    RFC 7644 Section 3.3: Creating Resources

    Returns:
        201 Created with Location header and User resource
    """
    try:
        payload = _json_body()
        correlation_id = request.headers.get("X-Correlation-Id")

        scim_user = provisioning_service.create_user_scim(_repository(), payload, correlation_id)

        location = f"{request.host_url.rstrip('/')}{bp.url_prefix}/users/{scim_user['id']}"

        response = jsonify(scim_user)
        response.status_code = 201
        response.headers["Location"] = location

        return response

    except ScimError:
        raise
    except Exception:
        logger.exception("Unexpected failure creating user")
        return scim_error(500, "Internal server error")


@bp.route('/users/<user_id>', methods=['PUT'])
@bp.route('/Users/<user_id>', methods=['PUT'])
def replace_user(user_id: str):
    """Replace a user (scalars overwritten, emails reconciled).

    RFC 7644 Section 3.5.1: Replacing with PUT

    Returns:
        200 OK with updated User resource
    """
    try:
        payload = _json_body()
        correlation_id = request.headers.get("X-Correlation-Id")

        scim_user = provisioning_service.replace_user_scim(_repository(), user_id, payload, correlation_id)
        return jsonify(scim_user), 200

    except ScimError:
        raise
    except Exception:
        logger.exception("Unexpected failure replacing user %s", user_id)
        return scim_error(500, "Internal server error")


@bp.route('/users/<user_id>', methods=['PATCH'])
@bp.route('/Users/<user_id>', methods=['PATCH'])
def patch_user(user_id: str):
    """Partially update a user (active flag only).

    RFC 7644 Section 3.5.2: Modifying with PATCH. Operations other than
    replacing ``active`` are accepted and ignored.

    Returns:
        200 OK with User resource
    """
    try:
        payload = _json_body()
        correlation_id = request.headers.get("X-Correlation-Id")

        scim_user = provisioning_service.patch_user_scim(_repository(), user_id, payload, correlation_id)
        return jsonify(scim_user), 200

    except ScimError:
        raise
    except Exception:
        logger.exception("Unexpected failure patching user %s", user_id)
        return scim_error(500, "Internal server error")
