"""Core Business Logic Module

SCIM resource translation and request semantics, independent of Flask.

Module Structure:
    - errors.py               : ScimError and the SCIM error envelope
    - scim_transformer.py     : SCIM wire user ↔ persisted User/Email
    - query.py                : list filter parsing and pagination
    - patch.py                : PatchOp parsing (active flag only)
    - provisioning_service.py : List/Get/Create/Replace/Patch orchestration

Public APIs:
    Provisioning (scim_server.core.provisioning_service):
        - list_users_scim()
        - get_user_scim()
        - create_user_scim()
        - replace_user_scim()
        - patch_user_scim()
        - ScimError (exception)

    Transformations (scim_server.core.scim_transformer):
        - ScimTransformer.to_wire() / to_persisted()
        - ScimTransformer.to_wire_email() / to_persisted_email()

The core only talks to the store through
scim_server.storage.repository.UserRepository.
"""
