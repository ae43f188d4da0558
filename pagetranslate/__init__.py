"""Concurrent page translation and an OpenAI-compatible translation proxy."""

__version__ = "1.0.0"
