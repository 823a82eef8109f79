"""SCIM PatchOp interpretation (RFC 7644 Section 3.5.2), active flag only.

Identity providers deactivate and reactivate users with::

    {"Operations": [{"op": "replace", "value": {"active": false}}]}

That is the only recognized operation. Every other operation (add, remove,
path-form replace, replace of any other attribute) is skipped without error.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List

from scim_server.core.errors import ScimError
from scim_server.storage.models import User

PATCH_OP_SCHEMA = "urn:ietf:params:scim:api:messages:2.0:PatchOp"


@dataclass(frozen=True)
class PatchOperation:
    """One entry of the ``Operations`` array."""

    op: str
    value: Any = None

    @property
    def replaces_active(self) -> bool:
        return (
            self.op.lower() == "replace"
            and isinstance(self.value, dict)
            and "active" in self.value
        )


def parse_patch_operations(payload: Any) -> List[PatchOperation]:
    """Validate a PatchOp body and return its operations in order.

    Raises:
        ScimError: 400 when the body or a recognized operation is malformed
    """
    if not isinstance(payload, dict):
        raise ScimError(400, "Request body must be a JSON object", "invalidSyntax")

    operations = payload.get("Operations")
    if not isinstance(operations, list):
        raise ScimError(400, "Operations must be a list", "invalidSyntax")

    parsed = []
    for index, operation in enumerate(operations):
        if not isinstance(operation, dict):
            raise ScimError(400, f"Operations[{index}] must be an object", "invalidSyntax")

        op = operation.get("op")
        if not isinstance(op, str) or not op:
            raise ScimError(400, f"Operations[{index}].op is required", "invalidSyntax")

        if op.lower() == "replace" and "value" not in operation:
            raise ScimError(400, f"Operations[{index}].value is required for replace", "invalidValue")

        if op.lower() == "replace" and "path" not in operation and not isinstance(operation["value"], dict):
            raise ScimError(400, f"Operations[{index}].value must be an object when path is absent", "invalidValue")

        patch_operation = PatchOperation(op=op, value=operation.get("value"))
        if patch_operation.replaces_active and not isinstance(patch_operation.value["active"], bool):
            raise ScimError(400, f"Operations[{index}].value.active must be a boolean", "invalidValue")

        parsed.append(patch_operation)

    return parsed


def apply_patch_operation(user: User, operation: PatchOperation) -> bool:
    """Apply a single operation to ``user``.

    Returns:
        True when the operation was recognized and applied
    """
    if not operation.replaces_active:
        return False
    user.active = operation.value["active"]
    return True
