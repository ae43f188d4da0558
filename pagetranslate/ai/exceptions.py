"""
Translation Exceptions

This module contains the exception hierarchy shared by the translation
clients, the batch pipeline and the web layer.
Separated to avoid circular imports between providers.py and the routes.
"""


class TranslationError(Exception):
    """Translation service error with optional code and details."""

    def __init__(self, message: str, code: str = None, details: dict = None):
        super().__init__(message)
        self.code = code
        self.details = details or {}


class UpstreamError(TranslationError):
    """The translation backend failed: bad status, network failure or timeout."""


class UnexpectedResponseFormat(UpstreamError):
    """The translation backend answered with a shape we cannot parse."""


class InvalidRequest(TranslationError):
    """Malformed inbound payload."""


class AuthError(TranslationError):
    """Missing (401) or mismatched (403) bearer token."""

    def __init__(self, message: str, status_code: int = 401):
        super().__init__(message, code="auth_error")
        self.status_code = status_code


class ConfigurationError(TranslationError):
    """Startup configuration is missing or invalid."""
