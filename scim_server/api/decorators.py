"""
OAuth 2.0 Bearer Token validation for the SCIM API.

Implements RFC 6750 (Bearer Token) and validates JWT access tokens issued by
the identity provider's authorization server (e.g. Okta).

Security:
- RSA-SHA256 signature verification via JWKS (RFC 7517)
- Expiration, issuer, audience validation (RFC 7519)
- JWKS caching for performance (1-hour refresh)
"""

import logging
from typing import Any, Dict, Optional, Set

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    PyJWKClientError,
    PyJWTError,
)
from flask import current_app

logger = logging.getLogger(__name__)

# Global JWKS client (cached singleton)
_jwks_client: Optional[PyJWKClient] = None


class TokenValidationError(Exception):
    """Exception raised when JWT token validation fails."""
    pass


def get_jwks_client() -> PyJWKClient:
    """
    Get cached JWKS client (singleton pattern).

    The JWKS client fetches the authorization server's public keys for RSA
    signature verification, selecting the key by the JWT ``kid`` header.

    Returns:
        PyJWKClient: Configured client for the configured issuer
    """
    global _jwks_client

    if _jwks_client is None:
        cfg = current_app.config["APP_CONFIG"]
        jwks_url = cfg.jwks_url_resolved

        logger.info("Initializing JWKS client for: %s", jwks_url)

        _jwks_client = PyJWKClient(
            jwks_url,
            cache_keys=True,
            max_cached_keys=16,
            lifespan=3600,
            headers={"User-Agent": "scim-server/1.0"},
        )

    return _jwks_client


def reset_jwks_client() -> None:
    """Drop the cached JWKS client (configuration reload, tests)."""
    global _jwks_client
    _jwks_client = None


def token_scopes(claims: Dict[str, Any]) -> Set[str]:
    """Scopes granted by a token: Okta ``scp`` list or space-separated ``scope``."""
    scp = claims.get("scp")
    if isinstance(scp, list):
        return {str(scope) for scope in scp}
    return set(str(claims.get("scope", "")).split())


def validate_jwt_token(token: str) -> Dict[str, Any]:
    """
    Validate JWT Bearer token with full security checks.

    Validations performed:
    1. Signature verification (RSA-SHA256 via JWKS)
    2. Expiration (exp claim) and issued-at (iat claim)
    3. Issuer (iss claim)
    4. Audience (aud claim, if configured)

    Args:
        token: JWT token string (without "Bearer " prefix)

    Returns:
        dict: Validated token claims

    Raises:
        TokenValidationError: If any validation fails
    """
    cfg = current_app.config["APP_CONFIG"]
    verify_aud = bool(cfg.oauth_audience)

    try:
        signing_key = get_jwks_client().get_signing_key_from_jwt(token)

        claims = jwt.decode(
            token,
            signing_key.key,
            algorithms=["RS256"],
            issuer=cfg.oauth_issuer,
            audience=cfg.oauth_audience if verify_aud else None,
            options={
                "verify_signature": True,
                "verify_exp": True,
                "verify_iss": True,
                "verify_aud": verify_aud,
                "require": ["exp", "iat"],
            },
            leeway=5,
        )
    except ExpiredSignatureError:
        raise TokenValidationError("Token expired (exp claim)")
    except InvalidIssuerError as e:
        raise TokenValidationError(f"Invalid issuer: {e}")
    except InvalidAudienceError as e:
        raise TokenValidationError(f"Invalid audience (token not for this API): {e}")
    except InvalidSignatureError:
        raise TokenValidationError("Invalid signature (token tampered or wrong key)")
    except DecodeError as e:
        raise TokenValidationError(f"Token decode error (malformed JWT): {e}")
    except PyJWKClientError as e:
        raise TokenValidationError(f"Signing key lookup failed: {e}")
    except PyJWTError as e:
        raise TokenValidationError(f"Token validation failed: {e}")

    logger.debug("JWT validated for client: %s", claims.get("cid") or claims.get("client_id") or claims.get("sub"))
    return claims
