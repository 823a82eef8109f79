"""Configuration module for the SCIM provisioning server."""
from .settings import AppConfig, load_settings

__all__ = ["AppConfig", "load_settings"]
