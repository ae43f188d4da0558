"""
OpenAI-compatible streaming adapter.

Turns one chat-completions request into exactly one translation client call
and reshapes the result into ``chat.completion.chunk`` SSE frames. Failures
after validation are reported inside the stream; the stream itself always
ends with the ``[DONE]`` sentinel.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional

from pagetranslate.ai.exceptions import InvalidRequest
from pagetranslate.ai.providers import (
    SSE_DATA_PREFIX,
    SSE_DONE,
    STREAM_ERROR_PREFIX,
    TranslationClient,
)
from pagetranslate.logger import get_logger
from pagetranslate.structures import AUTO_LANGUAGE, TranslationRequest

logger = get_logger(__name__)

DEFAULT_TARGET_LANGUAGE = "en"
DONE_FRAME = f"{SSE_DATA_PREFIX}{SSE_DONE}\n\n"

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class StreamState(Enum):
    START = "start"
    TRANSLATING = "translating"
    EMITTING = "emitting"
    CLOSED = "closed"


@dataclass
class ChatRequest:
    """Validated view of an inbound chat-completions payload."""

    text: str
    model: str
    source_lang: str = AUTO_LANGUAGE
    target_lang: str = DEFAULT_TARGET_LANGUAGE

    def to_translation_request(self) -> TranslationRequest:
        return TranslationRequest(
            text=self.text,
            target_lang=self.target_lang,
            source_lang=self.source_lang,
        )


@dataclass
class ChatStreamSession:
    """One SSE response: a stable chunk id and the model name echoed back."""

    model: str
    request_id: str = field(default_factory=lambda: f"chatcmpl-{uuid.uuid4()}")
    state: StreamState = StreamState.START

    def chunk(self, content: str, finish_reason: Optional[str] = None) -> Dict[str, Any]:
        return {
            "id": self.request_id,
            "object": "chat.completion.chunk",
            "created": int(time.time()),
            "model": self.model,
            "choices": [
                {"index": 0, "delta": {"content": content}, "finish_reason": finish_reason}
            ],
        }


def format_sse(data: Dict[str, Any]) -> str:
    return f"{SSE_DATA_PREFIX}{json.dumps(data, ensure_ascii=False)}\n\n"


def _message_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text") or ""
            for part in content
            if isinstance(part, dict) and part.get("type") == "text"
        )
    return ""


def parse_chat_request(payload: Any, default_model: str) -> ChatRequest:
    """
    Validate an inbound payload and pick out the text to translate.

    Raises:
        InvalidRequest: No messages, last message not from the user, or empty text.
    """
    if not isinstance(payload, dict):
        raise InvalidRequest("Request body must be a JSON object.", code="invalid_body")

    messages = payload.get("messages")
    if not isinstance(messages, list) or not messages:
        raise InvalidRequest("Missing valid user message in request.", code="missing_messages")

    last_message = messages[-1]
    if not isinstance(last_message, dict) or last_message.get("role") != "user":
        raise InvalidRequest("Missing valid user message in request.", code="missing_user_message")

    text = _message_text(last_message.get("content"))
    if not text:
        raise InvalidRequest("User message content is empty.", code="empty_content")

    model = payload.get("model")
    source_lang = payload.get("source_lang")
    target_lang = payload.get("target_lang")
    return ChatRequest(
        text=text,
        model=model if isinstance(model, str) and model else default_model,
        source_lang=source_lang if isinstance(source_lang, str) and source_lang else AUTO_LANGUAGE,
        target_lang=target_lang if isinstance(target_lang, str) and target_lang else DEFAULT_TARGET_LANGUAGE,
    )


def stream_chat_completion(
    chat_request: ChatRequest,
    translator: TranslationClient,
    session: Optional[ChatStreamSession] = None,
) -> Iterator[str]:
    """
    Yield the SSE frames for one translated chat completion.

    Success: content chunk, stop chunk, [DONE]. Failure: one error chunk carrying
    the stop reason, then [DONE].
    """
    session = session or ChatStreamSession(model=chat_request.model)

    session.state = StreamState.TRANSLATING
    try:
        translated = translator.translate(chat_request.to_translation_request())
    except Exception as e:
        logger.error(f"Translation error ({session.request_id}): {e}")
        session.state = StreamState.EMITTING
        yield format_sse(session.chunk(f"{STREAM_ERROR_PREFIX}{e}", "stop"))
        session.state = StreamState.CLOSED
        yield DONE_FRAME
        return

    session.state = StreamState.EMITTING
    yield format_sse(session.chunk(translated))
    yield format_sse(session.chunk("", "stop"))
    session.state = StreamState.CLOSED
    yield DONE_FRAME
