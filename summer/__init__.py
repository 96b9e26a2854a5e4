"""Dependency-injection container, component registry and console logging setup."""

__version__ = "0.1.0"
__all__ = ["container", "core", "errors", "logconfig", "logsetup", "pattern"]