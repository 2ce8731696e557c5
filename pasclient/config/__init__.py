"""Configuration module for the PAS client."""
from .settings import PASConfig, load_settings, parse_auth_method

__all__ = ["PASConfig", "load_settings", "parse_auth_method"]
