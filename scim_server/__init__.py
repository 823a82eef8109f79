"""SCIM 2.0 user provisioning server package.

To use the Flask app:
    from scim_server.flask_app import create_app

To use the provisioning service directly:
    from scim_server.core.provisioning_service import create_user_scim
"""
