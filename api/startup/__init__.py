"""Startup modules: configuration checks run before the database opens."""

from .config_validator import ConfigValidationError, ConfigValidator

__all__ = ['ConfigValidationError', 'ConfigValidator']
