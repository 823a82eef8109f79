"""Pytest shared fixtures: in-memory store, Flask app and signing keys."""
import os
import pathlib
import sys

# Add project root to Python path
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Configure test environment BEFORE any app imports
os.environ.setdefault("DEMO_MODE", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from scim_server.api import decorators
from scim_server.config import AppConfig
from scim_server.core.scim_transformer import ScimTransformer
from scim_server.flask_app import create_app
from scim_server.storage import (
    SqlAlchemyUserRepository,
    create_db_engine,
    create_session_factory,
    init_db,
)

TEST_ISSUER = "https://idp.example.com/oauth2/default"
TEST_AUDIENCE = "api://default"
STATIC_TOKEN = "static-scim-token"


def make_config(**overrides) -> AppConfig:
    base = dict(
        demo_mode=True,
        database_url="sqlite://",
        oauth_issuer=TEST_ISSUER,
        oauth_audience=TEST_AUDIENCE,
        scim_static_token=STATIC_TOKEN,
        log_level="WARNING",
    )
    base.update(overrides)
    return AppConfig(**base)


def scim_user_payload(user_name, given="Test", family="User", emails=None, active=True, **extra):
    payload = {
        "schemas": ["urn:ietf:params:scim:schemas:core:2.0:User"],
        "userName": user_name,
        "name": {"givenName": given, "familyName": family},
        "displayName": f"{given} {family}",
        "emails": emails if emails is not None else [],
        "active": active,
    }
    payload.update(extra)
    return payload


def add_user(repository, user_name, **kwargs):
    """Insert a user through the repository and return it."""
    return repository.add(ScimTransformer.to_persisted(scim_user_payload(user_name, **kwargs)))


# ─────────────────────────────────────────────────────────────────────────────
# Store
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture()
def engine():
    """Fresh in-memory SQLite database per test."""
    db_engine = create_db_engine("sqlite://")
    init_db(db_engine)
    yield db_engine
    db_engine.dispose()


@pytest.fixture()
def repository(engine):
    return SqlAlchemyUserRepository(create_session_factory(engine))


@pytest.fixture()
def three_users(repository):
    """Micky, Dan and Sarika, inserted in that order (ids 1, 2, 3)."""
    micky = add_user(
        repository,
        "mdaldo@fake.domain",
        given="Micky",
        family="Daldo",
        emails=[
            {"type": "work", "value": "mdaldo@fake.domain", "primary": True},
            {"type": "personal", "value": "mdaldo@personal.domain", "primary": False},
        ],
    )
    dan = add_user(repository, "dslem@fake.domain", given="Dan", family="Slem")
    sarika = add_user(
        repository,
        "smahesh@fake.domain",
        given="Sarika",
        family="Mahesh",
        emails=[{"type": "work", "value": "smahesh@fake.domain", "primary": True}],
    )
    return micky, dan, sarika


# ─────────────────────────────────────────────────────────────────────────────
# Flask Test Client
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def _reset_jwks_client():
    decorators.reset_jwks_client()
    yield
    decorators.reset_jwks_client()


@pytest.fixture()
def app(repository):
    """Flask app on the in-memory store with authentication skipped."""
    flask_app = create_app(make_config(), repository=repository)
    flask_app.config.update(TESTING=True, SKIP_OAUTH_FOR_TESTS=True)
    return flask_app


@pytest.fixture()
def client(app):
    with app.test_client() as client:
        yield client


@pytest.fixture()
def secured_app(repository):
    """Flask app with authentication enforced."""
    flask_app = create_app(make_config(), repository=repository)
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def secured_client(secured_app):
    with secured_app.test_client() as client:
        yield client


# ─────────────────────────────────────────────────────────────────────────────
# RSA Key Pair for JWT Testing
# ─────────────────────────────────────────────────────────────────────────────
@pytest.fixture(scope="session")
def rsa_key_pair():
    """Generate RSA key pair for JWT signing in tests."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return private_pem, private_key.public_key()
