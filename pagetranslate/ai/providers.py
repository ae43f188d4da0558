"""
Translation Client Implementations

This module contains the clients that turn one TranslationRequest into one
translated string:
- GoogleTranslateClient talks to the upstream translateHtml endpoint
- ChatCompletionsClient talks to any OpenAI-style streaming chat endpoint
  that speaks the same contract as our own /v1/chat/completions

Every client offers a blocking translate() for request handlers and an
awaitable atranslate() for the batch dispatcher. Neither retries; the caller
decides.
"""

import json
import re
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterable, Optional

import httpx

from pagetranslate.logger import get_logger
from pagetranslate.ai.exceptions import UnexpectedResponseFormat, UpstreamError
from pagetranslate.structures import TranslationRequest

logger = get_logger(__name__)

TRANSLATE_URL = "https://translate-pa.googleapis.com/v1/translateHtml"

# Fixed wire marker the translateHtml backend expects after the text triple
CLIENT_MARKER = "te_lib"

SSE_DATA_PREFIX = "data: "
SSE_DONE = "[DONE]"

# Content prefix of the in-stream error chunk emitted by the protocol adapter
STREAM_ERROR_PREFIX = "Internal server error: "

_TAG_RE = re.compile(r"<[^>]*>")

# Decoded in this order; &amp; comes after &lt;/&gt; so "&amp;lt;" stays "&lt;"
HTML_ENTITIES = (
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&amp;", "&"),
    ("&quot;", '"'),
    ("&#39;", "'"),
)

ZERO_WIDTH_SPACE = "\u200b"


def get_httpx_timeout(timeout_config: Any) -> httpx.Timeout:
    """
    Convert timeout configuration to httpx.Timeout object.

    Args:
        timeout_config: Either a number (read timeout in seconds) or a dict with
            connect, write, read, pool keys

    Returns:
        httpx.Timeout object
    """
    if isinstance(timeout_config, dict):
        return httpx.Timeout(
            connect=timeout_config.get('connect', 10.0),
            write=timeout_config.get('write', 60.0),
            read=timeout_config.get('read', 60.0),
            pool=timeout_config.get('pool', 10.0),
        )
    else:
        timeout_value = float(timeout_config) if timeout_config else 60.0
        return httpx.Timeout(
            connect=min(10.0, timeout_value),
            write=timeout_value,
            read=timeout_value,
            pool=min(10.0, timeout_value),
        )


def handle_http_error(e: httpx.HTTPStatusError, provider: str):
    """Handle HTTP errors with detailed messages."""
    status_code = e.response.status_code
    error_text = "Unknown error"

    try:
        error_json = e.response.json()
        if isinstance(error_json, dict) and "error" in error_json:
            error_detail = error_json["error"]
            if isinstance(error_detail, dict):
                error_text = error_detail.get("message", str(error_detail))
            else:
                error_text = str(error_detail)
        else:
            error_text = str(error_json)[:500]
    except ValueError:
        error_text = e.response.text[:500] if e.response.text else e.response.reason_phrase

    raise UpstreamError(
        f"{provider} upstream error ({status_code}): {error_text}",
        code="upstream_status",
        details={"status_code": status_code},
    )


@contextmanager
def upstream_errors(provider: str):
    """Map httpx failures raised inside the block onto UpstreamError."""
    try:
        yield
    except httpx.HTTPStatusError as e:
        handle_http_error(e, provider)
    except httpx.TimeoutException as e:
        raise UpstreamError(f"{provider} request timed out", code="upstream_timeout") from e
    except httpx.HTTPError as e:
        raise UpstreamError(f"{provider} request failed: {e}", code="upstream_network") from e


def clean_translated_html(html: str) -> str:
    """Strip tags, decode the known entities and drop zero-width spaces."""
    text = _TAG_RE.sub("", html)
    for entity, char in HTML_ENTITIES:
        text = text.replace(entity, char)
    return text.replace(ZERO_WIDTH_SPACE, "")


def extract_translated_html(data: Any) -> str:
    """
    Pull the translated HTML string out of a translateHtml response.

    The backend answers ``[["<translated html>", ...], ...]``.

    Raises:
        UnexpectedResponseFormat: If the response does not have that shape.
    """
    if not isinstance(data, list):
        raise UnexpectedResponseFormat(
            f"Unexpected response format: {json.dumps(data, ensure_ascii=False)[:500]}"
        )
    if not data or not isinstance(data[0], list) or not data[0] or not isinstance(data[0][0], str):
        raise UnexpectedResponseFormat(
            f"Unexpected response format: {json.dumps(data, ensure_ascii=False)[:500]}"
        )
    return data[0][0]


def accumulate_stream(lines: Iterable[str]) -> str:
    """
    Concatenate delta contents of an OpenAI-style SSE stream.

    Frames that are not JSON are skipped. Reading stops at the [DONE] sentinel.

    Raises:
        UpstreamError: If the stream carries the proxy's in-stream error chunk.
    """
    parts = []
    for line in lines:
        if not line.startswith(SSE_DATA_PREFIX):
            continue
        data = line[len(SSE_DATA_PREFIX):].strip()
        if data == SSE_DONE:
            break
        try:
            chunk = json.loads(data)
        except ValueError:
            continue
        choices = chunk.get("choices") if isinstance(chunk, dict) else None
        if not choices:
            continue
        content = (choices[0].get("delta") or {}).get("content") or ""
        if content.startswith(STREAM_ERROR_PREFIX):
            raise UpstreamError(content[len(STREAM_ERROR_PREFIX):], code="upstream_stream_error")
        parts.append(content)
    return "".join(parts).strip()


class TranslationClient(ABC):
    """Abstract translation client: one request in, one translated string out."""

    name = "translator"

    @abstractmethod
    def translate(self, request: TranslationRequest) -> str:
        """Translate one request, raising UpstreamError on any failure."""

    @abstractmethod
    async def atranslate(self, request: TranslationRequest) -> str:
        """Awaitable variant of translate()."""


class GoogleTranslateClient(TranslationClient):
    """Client for the Google translateHtml backend."""

    name = "Google Translate"

    def __init__(
        self,
        api_key: str,
        *,
        timeout: Any = 60,
        url: str = TRANSLATE_URL,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.timeout = get_httpx_timeout(timeout)
        self.url = url
        self.transport = transport
        self.async_transport = async_transport or transport

    def build_headers(self) -> dict:
        # The backend only accepts requests that look like they come from this origin
        return {
            "Accept": "*/*",
            "Accept-Language": "zh-CN,zh;q=0.9,en;q=0.8",
            "Content-Type": "application/json+protobuf",
            "Origin": "https://stackoverflow.ai",
            "Referer": "https://stackoverflow.ai/",
            "User-Agent": (
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
                "(KHTML, like Gecko) Chrome/141.0.0.0 Safari/537.36"
            ),
            "x-goog-api-key": self.api_key,
        }

    def build_payload(self, request: TranslationRequest) -> list:
        return [[[request.text], request.source_lang, request.target_lang], CLIENT_MARKER]

    def _log_request(self, request: TranslationRequest) -> None:
        logger.info(
            "Translation: source=%s, target=%s, text=%r",
            request.source_lang,
            request.target_lang,
            request.text[:50],
        )

    def _parse(self, response: httpx.Response) -> str:
        try:
            data = response.json()
        except ValueError as e:
            raise UnexpectedResponseFormat(
                f"Unexpected response format: {response.text[:500]}"
            ) from e
        logger.debug("Received upstream response: %s", json.dumps(data, ensure_ascii=False)[:500])
        return clean_translated_html(extract_translated_html(data))

    def translate(self, request: TranslationRequest) -> str:
        self._log_request(request)
        with upstream_errors(self.name):
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                response = client.post(
                    self.url,
                    headers=self.build_headers(),
                    content=json.dumps(self.build_payload(request), ensure_ascii=False).encode("utf-8"),
                )
                logger.debug("Upstream response status: %s", response.status_code)
                response.raise_for_status()
        return self._parse(response)

    async def atranslate(self, request: TranslationRequest) -> str:
        self._log_request(request)
        with upstream_errors(self.name):
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.async_transport) as client:
                response = await client.post(
                    self.url,
                    headers=self.build_headers(),
                    content=json.dumps(self.build_payload(request), ensure_ascii=False).encode("utf-8"),
                )
                logger.debug("Upstream response status: %s", response.status_code)
                response.raise_for_status()
        return self._parse(response)


class ChatCompletionsClient(TranslationClient):
    """Client for an OpenAI-compatible streaming chat endpoint used as a translator."""

    name = "Chat completions"

    def __init__(
        self,
        api_url: str,
        *,
        api_key: Optional[str] = None,
        model: str = "google-translate",
        timeout: Any = 60,
        transport: Optional[httpx.BaseTransport] = None,
        async_transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = f"{api_url.rstrip('/')}/v1/chat/completions"
        self.api_key = api_key
        self.model = model
        self.timeout = get_httpx_timeout(timeout)
        self.transport = transport
        self.async_transport = async_transport or transport

    def build_headers(self) -> dict:
        headers = {"Content-Type": "application/json", "Accept": "text/event-stream"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def build_body(self, request: TranslationRequest) -> dict:
        return {
            "model": self.model,
            "source_lang": request.source_lang,
            "target_lang": request.target_lang,
            "messages": [{"role": "user", "content": request.text}],
        }

    def translate(self, request: TranslationRequest) -> str:
        with upstream_errors(self.name):
            with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
                with client.stream(
                    "POST", self.url, headers=self.build_headers(), json=self.build_body(request)
                ) as response:
                    if response.is_error:
                        response.read()
                    response.raise_for_status()
                    return accumulate_stream(response.iter_lines())

    async def atranslate(self, request: TranslationRequest) -> str:
        with upstream_errors(self.name):
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.async_transport) as client:
                async with client.stream(
                    "POST", self.url, headers=self.build_headers(), json=self.build_body(request)
                ) as response:
                    if response.is_error:
                        await response.aread()
                    response.raise_for_status()
                    lines = [line async for line in response.aiter_lines()]
        return accumulate_stream(lines)


def build_translation_client(config: dict) -> GoogleTranslateClient:
    """Create the upstream client from loaded configuration."""
    return GoogleTranslateClient(
        config["GOOGLE_API_KEY"],
        timeout=config.get("API_REQUEST_TIMEOUT", 60),
    )
