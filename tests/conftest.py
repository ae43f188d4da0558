import asyncio
import os

# Keep test runs quiet and free of log files
os.environ["LOG_MODE"] = "off"

import pytest

from pagetranslate.ai.exceptions import UpstreamError
from pagetranslate.ai.providers import TranslationClient
from pagetranslate.config import load_config
from pagetranslate.web import create_app


class StubTranslator(TranslationClient):
    """In-memory translator that records calls and in-flight concurrency."""

    def __init__(self, translate_fn=None, delay=0.0, fail_on=()):
        self.translate_fn = translate_fn or (lambda request: f"{request.target_lang}:{request.text}")
        self.delay = delay
        self.fail_on = set(fail_on)
        self.calls = []
        self.events = []
        self.in_flight = 0
        self.max_in_flight = 0

    def _result(self, request):
        if request.text in self.fail_on:
            raise UpstreamError(f"cannot translate {request.text}")
        return self.translate_fn(request)

    def translate(self, request):
        self.calls.append(request)
        return self._result(request)

    async def atranslate(self, request):
        self.calls.append(request)
        self.events.append(("start", request.text))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delay(request) if callable(self.delay) else self.delay
            await asyncio.sleep(delay)
            return self._result(request)
        finally:
            self.in_flight -= 1
            self.events.append(("end", request.text))


@pytest.fixture
def stub_translator_cls():
    return StubTranslator


@pytest.fixture
def settings():
    return load_config(env={"GOOGLE_API_KEY": "test-key", "LOG_MODE": "off"}, env_file=None)


@pytest.fixture
def translator():
    return StubTranslator()


@pytest.fixture
def app(settings, translator):
    return create_app(settings, translator=translator)


@pytest.fixture
def client(app):
    return app.test_client()
