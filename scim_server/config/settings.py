"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

DEMO_ISSUER = "https://dev-000000.okta.com/oauth2/default"


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variable (fallback)

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_var: Optional environment variable name to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.info("Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("Failed to read /run/secrets/%s: %s", secret_name, e)

    if env_var:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _env_flag(var_name: str, default: str = "false") -> bool:
    return os.environ.get(var_name, default).strip().lower() == "true"


@dataclass
class AppConfig:
    """Application configuration container."""
    # Mode
    demo_mode: bool

    # Store
    database_url: str = "sqlite:///scim.db"
    database_echo: bool = False

    # OAuth 2.0 bearer tokens (JWT access tokens issued by the IdP)
    oauth_issuer: str = ""
    oauth_audience: str = "api://default"
    oauth_jwks_url: str = ""
    oauth_required_scope: str = ""

    # Shared-secret bearer token (optional, for IdPs configured with a static token)
    scim_static_token: str = ""

    # Logging
    log_level: str = "INFO"

    @property
    def jwks_url_resolved(self) -> str:
        """JWKS endpoint; defaults to the Okta authorization server layout."""
        if self.oauth_jwks_url:
            return self.oauth_jwks_url
        return f"{self.oauth_issuer.rstrip('/')}/v1/keys"


def _get_or_generate(var_name: str, demo_default: Optional[str] = None, required: bool = True, demo_mode: bool = False) -> str:
    """Get environment variable or use demo default."""
    value = os.environ.get(var_name)
    if value:
        return value

    if demo_mode and demo_default is not None:
        logger.info("[demo-mode] Using default for %s", var_name)
        return demo_default

    if not required:
        return ""

    raise RuntimeError(f"Environment variable {var_name} is required in production mode.")


def load_settings() -> AppConfig:
    """Load application settings from environment and /run/secrets."""
    demo_mode = _env_flag("DEMO_MODE")

    database_url = _load_secret_from_file("database_url", "DATABASE_URL") or "sqlite:///scim.db"
    database_echo = _env_flag("DATABASE_ECHO")

    oauth_issuer = _get_or_generate("OAUTH_ISSUER", demo_default=DEMO_ISSUER, demo_mode=demo_mode)
    oauth_audience = os.environ.get("OAUTH_AUDIENCE", "api://default")
    oauth_jwks_url = os.environ.get("OAUTH_JWKS_URL", "")
    oauth_required_scope = os.environ.get("OAUTH_REQUIRED_SCOPE", "").strip()

    scim_static_token = _load_secret_from_file("scim_static_token", "SCIM_STATIC_TOKEN") or ""
    if scim_static_token:
        logger.info("SCIM static token configured (length: %d)", len(scim_static_token))

    log_level = os.environ.get("LOG_LEVEL", "INFO").strip().upper()

    mode_label = "DEMO" if demo_mode else "PRODUCTION"
    logger.info("Mode=%s; issuer=%s", mode_label, oauth_issuer)

    return AppConfig(
        demo_mode=demo_mode,
        database_url=database_url,
        database_echo=database_echo,
        oauth_issuer=oauth_issuer,
        oauth_audience=oauth_audience,
        oauth_jwks_url=oauth_jwks_url,
        oauth_required_scope=oauth_required_scope,
        scim_static_token=scim_static_token,
        log_level=log_level,
    )
