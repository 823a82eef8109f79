"""
Provisioning Service Layer: SCIM User operations

This module orchestrates the SCIM User operations used by the SCIM 2.0 API:
it validates inbound payloads, talks to the store through a UserRepository,
and shapes results with ScimTransformer.

Architecture:
    SCIM API (/scim/v2/*) ──> provisioning_service.py ──> UserRepository ──> SQL store

Features:
    - List with userName filter and 1-based pagination
    - Create / full replace with email reconciliation / active-flag patch
    - Standardized error handling via ScimError (404, 409, 400, 500)
"""

from __future__ import annotations
import logging
from typing import Any, Optional

from scim_server.core.errors import ScimError
from scim_server.core.patch import apply_patch_operation, parse_patch_operations
from scim_server.core.query import ListQuery
from scim_server.core.scim_transformer import ScimTransformer
from scim_server.storage.exceptions import ConstraintViolation, StorageError, UniquenessViolation
from scim_server.storage.models import Email, User
from scim_server.storage.repository import UserRepository

__all__ = [
    "ScimError",
    "create_user_scim",
    "get_user_scim",
    "list_users_scim",
    "patch_user_scim",
    "replace_user_scim",
    "validate_scim_user_payload",
]

logger = logging.getLogger(__name__)

SCIM_LIST_RESPONSE_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:ListResponse"


# ─────────────────────────────────────────────────────────────────────────────
# Validation
# ─────────────────────────────────────────────────────────────────────────────

def validate_scim_user_payload(payload: Any) -> None:
    """Validate the SCIM User payload structure before it reaches the store.

    Required columns missing from an otherwise well-formed payload are left
    to the store, which reports them as constraint violations.
    """
    if not isinstance(payload, dict):
        raise ScimError(400, "Request body must be a JSON object", "invalidSyntax")

    user_name = payload.get("userName")
    if not isinstance(user_name, str) or not user_name.strip():
        raise ScimError(400, "userName is required", "invalidValue")

    name = payload.get("name")
    if name is not None and not isinstance(name, dict):
        raise ScimError(400, "name must be an object", "invalidValue")

    active = payload.get("active")
    if active is not None and not isinstance(active, bool):
        raise ScimError(400, "active must be a boolean", "invalidValue")

    emails = payload.get("emails")
    if emails is None:
        return
    if not isinstance(emails, list):
        raise ScimError(400, "emails must be a list", "invalidValue")
    for index, email in enumerate(emails):
        if not isinstance(email, dict) or not isinstance(email.get("value"), str):
            raise ScimError(400, f"emails[{index}].value is required", "invalidValue")
        if "primary" in email and not isinstance(email["primary"], bool):
            raise ScimError(400, f"emails[{index}].primary must be a boolean", "invalidValue")


def _parse_user_id(user_id: Any) -> int:
    """Convert a path id to the integer surrogate key (unknown ids are 404)."""
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise ScimError.not_found()


# ─────────────────────────────────────────────────────────────────────────────
# Store access
# ─────────────────────────────────────────────────────────────────────────────

def _write(operation, *args):
    """Run a repository write, mapping store failures to SCIM errors."""
    try:
        return operation(*args)
    except UniquenessViolation as exc:
        raise ScimError(409, str(exc), "uniqueness")
    except ConstraintViolation as exc:
        raise ScimError(400, str(exc), "invalidValue")
    except StorageError as exc:
        logger.error("Store write failed: %s", exc)
        raise ScimError(500, "Internal server error")


def _read(operation, *args):
    try:
        return operation(*args)
    except StorageError as exc:
        logger.error("Store read failed: %s", exc)
        raise ScimError(500, "Internal server error")


def _replace_user_state(existing: User, incoming: User) -> None:
    """Overwrite every scalar and reconcile emails by value.

    Existing emails absent from ``incoming`` are removed, matching ones are
    updated in place and new values are added. Duplicate inbound values
    collapse onto one row (last one wins).
    """
    existing.external_id = incoming.external_id
    existing.user_name = incoming.user_name
    existing.first_name = incoming.first_name
    existing.middle_name = incoming.middle_name
    existing.last_name = incoming.last_name
    existing.display_name = incoming.display_name
    existing.active = incoming.active

    inbound_values = {email.value for email in incoming.emails}
    for email in list(existing.emails):
        if email.value not in inbound_values:
            existing.emails.remove(email)

    for email in incoming.emails:
        current = next((e for e in existing.emails if e.value == email.value), None)
        if current is not None:
            current.type = email.type
            current.primary = email.primary
        else:
            existing.emails.append(Email(value=email.value, type=email.type, primary=email.primary))


# ─────────────────────────────────────────────────────────────────────────────
# Core Service Functions
# ─────────────────────────────────────────────────────────────────────────────

def list_users_scim(repository: UserRepository, query: ListQuery) -> dict:
    """List users, newest first, filtered and paginated.

    Returns:
        SCIM ListResponse with schemas, totalResults, startIndex, itemsPerPage, Resources
    """
    users = _read(repository.list, query.user_name)
    page = query.paginate(users)

    return {
        "schemas": [SCIM_LIST_RESPONSE_SCHEMA],
        "totalResults": len(users),
        "startIndex": query.start_index,
        "itemsPerPage": query.count,
        "Resources": [ScimTransformer.to_wire(user) for user in page],
    }


def get_user_scim(repository: UserRepository, user_id: Any) -> dict:
    """Retrieve a user by id.

    Raises:
        ScimError: 404 if user not found
    """
    user = _read(repository.get, _parse_user_id(user_id))
    if user is None:
        raise ScimError.not_found()
    return ScimTransformer.to_wire(user)


def create_user_scim(repository: UserRepository, payload: dict, correlation_id: Optional[str] = None) -> dict:
    """Create a new user with its emails.

    Any client-supplied ``id`` is ignored; the store assigns it.

    Raises:
        ScimError: 400 on invalid payload, 409 on duplicate userName
    """
    validate_scim_user_payload(payload)

    user = ScimTransformer.to_persisted(payload)
    values = [email.value for email in user.emails]
    if len(values) != len(set(values)):
        raise ScimError(400, "emails must not contain duplicate values", "invalidValue")

    created = _write(repository.add, user)
    logger.info(
        "SCIM create user | id=%s | userName=%s | correlation_id=%s",
        created.id, created.user_name, correlation_id,
    )
    return ScimTransformer.to_wire(created)


def replace_user_scim(repository: UserRepository, user_id: Any, payload: dict, correlation_id: Optional[str] = None) -> dict:
    """Replace a user (PUT): scalars overwritten, emails reconciled, one transaction.

    Raises:
        ScimError: 404 if user not found, 400 on invalid payload, 409 on duplicate userName
    """
    user_pk = _parse_user_id(user_id)
    validate_scim_user_payload(payload)
    incoming = ScimTransformer.to_persisted(payload)

    updated = _write(repository.update, user_pk, lambda existing: _replace_user_state(existing, incoming))
    if updated is None:
        raise ScimError.not_found()

    logger.info(
        "SCIM replace user | id=%s | userName=%s | correlation_id=%s",
        user_pk, updated.user_name, correlation_id,
    )
    return ScimTransformer.to_wire(updated)


def patch_user_scim(repository: UserRepository, user_id: Any, payload: Any, correlation_id: Optional[str] = None) -> dict:
    """Apply a PatchOp request; only ``replace`` of ``active`` has an effect.

    Each recognized operation is persisted as it is applied.

    Raises:
        ScimError: 404 if user not found, 400 on malformed operations
    """
    user_pk = _parse_user_id(user_id)
    operations = parse_patch_operations(payload)

    user = _read(repository.get, user_pk)
    if user is None:
        raise ScimError.not_found()

    for operation in operations:
        if not operation.replaces_active:
            logger.debug("Ignoring unsupported patch operation: op=%s", operation.op)
            continue
        user = _write(repository.update, user_pk, lambda u, op=operation: apply_patch_operation(u, op))
        if user is None:
            raise ScimError.not_found()
        logger.info(
            "SCIM patch user | id=%s | active=%s | correlation_id=%s",
            user_pk, user.active, correlation_id,
        )

    return ScimTransformer.to_wire(user)
