import pytest

from scim_server.config import settings
from scim_server.config.settings import DEMO_ISSUER, _get_or_generate, load_settings

from tests.conftest import make_config

SETTINGS_ENV = (
    "DEMO_MODE",
    "DATABASE_URL",
    "DATABASE_ECHO",
    "OAUTH_ISSUER",
    "OAUTH_AUDIENCE",
    "OAUTH_JWKS_URL",
    "OAUTH_REQUIRED_SCOPE",
    "SCIM_STATIC_TOKEN",
    "LOG_LEVEL",
)


@pytest.fixture()
def clean_env(monkeypatch, tmp_path):
    for name in SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    # No Docker secrets mounted
    monkeypatch.setattr(settings, "_load_secret_from_file", lambda name, env_var=None: settings.os.getenv(env_var))
    return monkeypatch


def test_jwks_url_defaults_to_issuer_keys():
    cfg = make_config(oauth_issuer="https://idp.example.com/oauth2/default/")
    assert cfg.jwks_url_resolved == "https://idp.example.com/oauth2/default/v1/keys"


def test_jwks_url_override():
    cfg = make_config(oauth_jwks_url="https://idp.example.com/keys")
    assert cfg.jwks_url_resolved == "https://idp.example.com/keys"


def test_get_or_generate_prefers_environment(monkeypatch):
    monkeypatch.setenv("SOME_VAR", "from-env")
    assert _get_or_generate("SOME_VAR", demo_default="demo", demo_mode=True) == "from-env"


def test_get_or_generate_demo_default(monkeypatch):
    monkeypatch.delenv("SOME_VAR", raising=False)
    assert _get_or_generate("SOME_VAR", demo_default="demo", demo_mode=True) == "demo"


def test_get_or_generate_required_in_production(monkeypatch):
    monkeypatch.delenv("SOME_VAR", raising=False)
    with pytest.raises(RuntimeError):
        _get_or_generate("SOME_VAR", demo_default="demo", demo_mode=False)


def test_get_or_generate_optional(monkeypatch):
    monkeypatch.delenv("SOME_VAR", raising=False)
    assert _get_or_generate("SOME_VAR", required=False) == ""


def test_load_settings_demo_defaults(clean_env):
    clean_env.setenv("DEMO_MODE", "true")
    cfg = load_settings()
    assert cfg.demo_mode is True
    assert cfg.oauth_issuer == DEMO_ISSUER
    assert cfg.oauth_audience == "api://default"
    assert cfg.database_url == "sqlite:///scim.db"
    assert cfg.database_echo is False
    assert cfg.scim_static_token == ""
    assert cfg.log_level == "INFO"


def test_load_settings_production_requires_issuer(clean_env):
    with pytest.raises(RuntimeError, match="OAUTH_ISSUER"):
        load_settings()


def test_load_settings_from_environment(clean_env):
    clean_env.setenv("OAUTH_ISSUER", "https://idp.example.com/oauth2/default")
    clean_env.setenv("OAUTH_AUDIENCE", "api://scim")
    clean_env.setenv("OAUTH_REQUIRED_SCOPE", " scim:write ")
    clean_env.setenv("DATABASE_URL", "postgresql+psycopg://scim@db/scim")
    clean_env.setenv("DATABASE_ECHO", "TRUE")
    clean_env.setenv("SCIM_STATIC_TOKEN", "shared-secret")
    clean_env.setenv("LOG_LEVEL", "debug")

    cfg = load_settings()

    assert cfg.demo_mode is False
    assert cfg.oauth_issuer == "https://idp.example.com/oauth2/default"
    assert cfg.oauth_audience == "api://scim"
    assert cfg.oauth_required_scope == "scim:write"
    assert cfg.database_url == "postgresql+psycopg://scim@db/scim"
    assert cfg.database_echo is True
    assert cfg.scim_static_token == "shared-secret"
    assert cfg.log_level == "DEBUG"


def test_secret_file_takes_precedence(monkeypatch, tmp_path):
    secret = tmp_path / "scim_static_token"
    secret.write_text("from-file\n")
    monkeypatch.setenv("SCIM_STATIC_TOKEN", "from-env")

    original_path = settings.Path
    monkeypatch.setattr(
        settings,
        "Path",
        lambda value: tmp_path if value == "/run/secrets" else original_path(value),
    )
    assert settings._load_secret_from_file("scim_static_token", "SCIM_STATIC_TOKEN") == "from-file"


def test_secret_falls_back_to_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("SCIM_STATIC_TOKEN", "from-env")
    monkeypatch.setattr(settings, "Path", lambda value: tmp_path)
    assert settings._load_secret_from_file("scim_static_token", "SCIM_STATIC_TOKEN") == "from-env"
