"""SCIM 2.0 ↔ persisted user transformations.

This module provides bidirectional transformations between the SCIM User
wire representation (RFC 7643) and the persisted User/Email models.

Usage:
    # Persisted → SCIM
    scim_user = ScimTransformer.to_wire(user)

    # SCIM → Persisted (transient, not yet added to a session)
    user = ScimTransformer.to_persisted(scim_user)
"""
from __future__ import annotations
from typing import Any, Dict

from scim_server.storage.models import Email, User

SCIM_USER_SCHEMA = "urn:ietf:params:scim:schemas:core:2.0:User"


def _drop_nulls(resource: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in resource.items() if value is not None}


class ScimTransformer:
    """Bidirectional transformer for SCIM/persisted user representations."""

    @staticmethod
    def to_wire(user: User) -> Dict[str, Any]:
        """Convert a persisted user to a SCIM 2.0 User resource.

        Null attributes are omitted from the resource.

        Example:
            >>> user = User(id=2, user_name="dslem@fake.domain", first_name="Dan",
            ...             last_name="Slem", display_name="Dan Slem", active=True, emails=[])
            >>> ScimTransformer.to_wire(user)["id"]
            '2'
        """
        scim_resource = {
            "schemas": [SCIM_USER_SCHEMA],
            "id": str(user.id) if user.id is not None else None,
            "externalId": user.external_id,
            "userName": user.user_name,
            "name": _drop_nulls({
                "givenName": user.first_name,
                "familyName": user.last_name,
                "middleName": user.middle_name,
            }),
            "displayName": user.display_name,
            "emails": [ScimTransformer.to_wire_email(email) for email in user.emails],
            "active": user.active,
        }
        return _drop_nulls(scim_resource)

    @staticmethod
    def to_persisted(scim_user: Dict[str, Any]) -> User:
        """Convert a SCIM 2.0 User resource to a transient persisted user.

        The surrogate key is never taken from the payload (the store assigns
        it) and ``schemas`` has no persisted counterpart.

        Example:
            >>> user = ScimTransformer.to_persisted({
            ...     "userName": "bob",
            ...     "name": {"givenName": "Bob", "familyName": "Jones"},
            ...     "emails": [{"value": "bob@example.com", "type": "work", "primary": True}],
            ...     "active": True,
            ... })
            >>> user.first_name, user.emails[0].value
            ('Bob', 'bob@example.com')
        """
        name = scim_user.get("name") or {}
        return User(
            external_id=scim_user.get("externalId"),
            user_name=scim_user.get("userName"),
            first_name=name.get("givenName"),
            last_name=name.get("familyName"),
            middle_name=name.get("middleName"),
            display_name=scim_user.get("displayName"),
            active=bool(scim_user.get("active", False)),
            emails=[
                ScimTransformer.to_persisted_email(email)
                for email in scim_user.get("emails") or []
            ],
        )

    @staticmethod
    def to_wire_email(email: Email) -> Dict[str, Any]:
        """Convert a persisted email to a SCIM multi-valued email entry."""
        return _drop_nulls({
            "value": email.value,
            "type": email.type,
            "primary": email.primary,
        })

    @staticmethod
    def to_persisted_email(scim_email: Dict[str, Any]) -> Email:
        """Convert a SCIM email entry to a transient persisted email."""
        return Email(
            value=scim_email.get("value"),
            type=scim_email.get("type"),
            primary=bool(scim_email.get("primary", False)),
        )
