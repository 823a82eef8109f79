"""WSGI entry point (gunicorn scim_server.wsgi:app)."""
from scim_server.flask_app import create_app

app = create_app()
