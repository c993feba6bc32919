"""Errors raised for harness misconfiguration."""


class ConfigurationError(ValueError):
    """Raised when the harness is misconfigured, before any request is sent."""
