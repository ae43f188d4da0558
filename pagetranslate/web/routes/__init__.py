"""Route blueprints for the web application."""

from .openai import openai_bp
from .batch import batch_bp

__all__ = [
    "openai_bp",
    "batch_bp",
]
