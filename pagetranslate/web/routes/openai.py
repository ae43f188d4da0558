"""OpenAI-compatible API routes."""

from __future__ import annotations

import time

from flask import Blueprint, Response, current_app, jsonify, request, stream_with_context

from pagetranslate.logger import get_logger
from pagetranslate.translation.streaming import (
    SSE_HEADERS,
    parse_chat_request,
    stream_chat_completion,
)
from pagetranslate.web.auth import require_api_key

openai_bp = Blueprint("openai", __name__)
logger = get_logger(__name__)


@openai_bp.get("/models")
@require_api_key
def list_models():
    """Return the single model this proxy serves."""
    settings = current_app.config["PAGETRANSLATE"]
    return jsonify(
        {
            "object": "list",
            "data": [
                {
                    "id": settings["DEFAULT_MODEL"],
                    "object": "model",
                    "created": int(time.time()),
                    "owned_by": settings["APP_NAME"],
                }
            ],
        }
    )


@openai_bp.post("/chat/completions")
@require_api_key
def chat_completions():
    """Translate the last user message and stream it back as chat.completion chunks."""
    settings = current_app.config["PAGETRANSLATE"]
    # Raises InvalidRequest before any stream is opened
    chat_request = parse_chat_request(
        request.get_json(silent=True),
        default_model=settings["DEFAULT_MODEL"],
    )
    translator = current_app.extensions["pagetranslate.translator"]

    return Response(
        stream_with_context(stream_chat_completion(chat_request, translator)),
        mimetype="text/event-stream",
        headers=SSE_HEADERS,
    )
