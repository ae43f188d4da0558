"""
AI Module

This module provides the translation clients and their exception hierarchy.
Import clients from pagetranslate.ai.providers.
"""

from pagetranslate.ai.exceptions import (
    AuthError,
    ConfigurationError,
    InvalidRequest,
    TranslationError,
    UnexpectedResponseFormat,
    UpstreamError,
)

__all__ = [
    'TranslationError',
    'UpstreamError',
    'UnexpectedResponseFormat',
    'InvalidRequest',
    'AuthError',
    'ConfigurationError',
]
