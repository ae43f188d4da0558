import json
import time

import pytest

from pagetranslate.web import create_app


def sse_frames(response):
    body = response.get_data(as_text=True)
    return [frame + "\n\n" for frame in body.split("\n\n") if frame]


def chat(client, payload, headers=None):
    return client.post("/v1/chat/completions", json=payload, headers=headers or {})


def test_root_and_health(client):
    assert "Service is running normally" in client.get("/").get_json()["message"]
    assert client.get("/health").get_json() == {"status": "ok"}


def test_models_lists_default_model(client):
    data = client.get("/v1/models").get_json()

    assert data["object"] == "list"
    assert [model["id"] for model in data["data"]] == ["google-translate"]
    assert data["data"][0]["object"] == "model"


def test_chat_completion_streams_translation(settings, stub_translator_cls):
    translator = stub_translator_cls(translate_fn=lambda request: "bonjour")
    client = create_app(settings, translator=translator).test_client()

    response = chat(client, {"messages": [{"role": "user", "content": "hello"}], "target_lang": "fr"})

    assert response.status_code == 200
    assert response.mimetype == "text/event-stream"
    assert response.headers["Cache-Control"] == "no-cache"
    frames = sse_frames(response)
    assert len(frames) == 3
    assert json.loads(frames[0][6:])["choices"][0]["delta"]["content"] == "bonjour"
    assert json.loads(frames[1][6:])["choices"][0]["finish_reason"] == "stop"
    assert frames[2] == "data: [DONE]\n\n"


def test_chat_completion_upstream_error_still_terminates(settings, stub_translator_cls):
    client = create_app(settings, translator=stub_translator_cls(fail_on={"hello"})).test_client()

    response = chat(client, {"messages": [{"role": "user", "content": "hello"}]})

    assert response.status_code == 200
    frames = sse_frames(response)
    assert len(frames) == 2
    assert "cannot translate hello" in json.loads(frames[0][6:])["choices"][0]["delta"]["content"]
    assert frames[1] == "data: [DONE]\n\n"


@pytest.mark.parametrize("payload", [{"messages": []}, {"messages": [{"role": "assistant", "content": "x"}]}])
def test_chat_completion_invalid_request(client, translator, payload):
    response = chat(client, payload)

    assert response.status_code == 400
    assert response.mimetype == "application/json"
    assert "detail" in response.get_json()
    assert translator.calls == []


def test_chat_completion_non_json_body(client, translator):
    response = client.post("/v1/chat/completions", data="not json", content_type="text/plain")

    assert response.status_code == 400
    assert translator.calls == []


class TestAuth:
    @pytest.fixture
    def secured(self, settings, translator):
        settings["API_MASTER_KEY"] = "secret"
        return create_app(settings, translator=translator).test_client()

    def test_missing_header_is_401(self, secured, translator):
        response = chat(secured, {"messages": [{"role": "user", "content": "hello"}]})

        assert response.status_code == 401
        assert response.get_json() == {"detail": "Bearer Token authentication required."}
        assert translator.calls == []

    def test_wrong_key_is_403(self, secured, translator):
        response = chat(
            secured,
            {"messages": [{"role": "user", "content": "hello"}]},
            headers={"Authorization": "Bearer wrong"},
        )

        assert response.status_code == 403
        assert response.get_json() == {"detail": "Invalid API Key."}
        assert translator.calls == []

    def test_matching_key_proceeds(self, secured):
        response = chat(
            secured,
            {"messages": [{"role": "user", "content": "hello"}]},
            headers={"Authorization": "Bearer secret"},
        )

        assert response.status_code == 200
        assert sse_frames(response)[-1] == "data: [DONE]\n\n"

    @pytest.mark.parametrize("header", ["Basic xbearerx secret", "Basic bearer secret", "Bearer", "Bearer "])
    def test_non_bearer_scheme_is_401(self, secured, translator, header):
        response = chat(
            secured,
            {"messages": [{"role": "user", "content": "hello"}]},
            headers={"Authorization": header},
        )

        assert response.status_code == 401
        assert translator.calls == []

    def test_scheme_is_case_insensitive(self, secured):
        assert secured.get("/v1/models", headers={"Authorization": "bearer secret"}).status_code == 200

    def test_models_are_gated_too(self, secured):
        assert secured.get("/v1/models").status_code == 401
        assert secured.get("/v1/models", headers={"Authorization": "Bearer secret"}).status_code == 200

    def test_sentinel_key_disables_auth(self, settings, translator):
        settings["API_MASTER_KEY"] = "1"
        client = create_app(settings, translator=translator).test_client()

        assert client.get("/v1/models").status_code == 200

    def test_health_is_open(self, secured):
        assert secured.get("/health").status_code == 200


def test_cors_headers_and_preflight(client):
    preflight = client.options("/v1/chat/completions")

    assert preflight.status_code == 204
    assert preflight.headers["Access-Control-Allow-Origin"] == "*"
    assert "Authorization" in preflight.headers["Access-Control-Allow-Headers"]
    assert client.get("/health").headers["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"


def test_unknown_route_is_json_404(client):
    response = client.get("/nope")

    assert response.status_code == 404
    assert "detail" in response.get_json()


class TestBatch:
    def test_batch_returns_ordered_results(self, settings, stub_translator_cls):
        client = create_app(settings, translator=stub_translator_cls(fail_on={"bad"})).test_client()

        response = client.post(
            "/v1/translate/batch",
            json={"texts": ["one", "bad", "three"], "target_lang": "fr", "concurrency": 2},
        )

        assert response.status_code == 200
        assert response.get_json() == {"results": ["fr:one", None, "fr:three"]}

    @pytest.mark.parametrize("payload", [
        {"texts": "one", "target_lang": "fr"},
        {"texts": ["one", 2], "target_lang": "fr"},
        {"texts": ["one"]},
        {"texts": ["one"], "target_lang": "fr", "concurrency": 0},
        {"texts": ["one"], "target_lang": "fr", "concurrency": 100000},
        {"texts": ["one"], "target_lang": "fr", "concurrency": "5"},
    ])
    def test_batch_validation(self, client, translator, payload):
        response = client.post("/v1/translate/batch", json=payload)

        assert response.status_code == 400
        assert translator.calls == []

    def test_job_lifecycle(self, client):
        started = client.post(
            "/v1/translate/jobs",
            json={"texts": ["a", "b", "c"], "target_lang": "it", "concurrency": 2},
        )
        assert started.status_code == 202
        job_id = started.get_json()["job_id"]

        deadline = time.time() + 5
        while True:
            job = client.get(f"/v1/translate/jobs/{job_id}").get_json()
            if job["state"] in ("completed", "failed", "cancelled") or time.time() > deadline:
                break
            time.sleep(0.01)

        assert job["state"] == "completed"
        assert job["results"] == ["it:a", "it:b", "it:c"]
        assert (job["completed"], job["total"]) == (3, 3)
        assert job["progress"]["percent"] == 100

        cancel = client.post(f"/v1/translate/jobs/{job_id}/cancel")
        assert cancel.status_code == 400

    def test_unknown_job(self, client):
        assert client.get("/v1/translate/jobs/missing").status_code == 404
        assert client.post("/v1/translate/jobs/missing/cancel").status_code == 404
