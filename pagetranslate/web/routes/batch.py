"""Batch translation API routes."""

from __future__ import annotations

import asyncio
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from pagetranslate.ai.exceptions import InvalidRequest
from pagetranslate.logger import get_logger
from pagetranslate.structures import AUTO_LANGUAGE, BatchRequest
from pagetranslate.translation.dispatcher import dispatch_batch
from pagetranslate.web.auth import require_api_key
from pagetranslate.web.tasks import cancel_job, create_batch_job, get_job, serialize_job

batch_bp = Blueprint("batch", __name__)
logger = get_logger(__name__)


def parse_batch_request(data: Any, settings: Dict[str, Any]) -> BatchRequest:
    """
    Validate a batch payload.

    Raises:
        InvalidRequest: If texts, target_lang or concurrency are malformed.
    """
    if not isinstance(data, dict):
        raise InvalidRequest("Request body must be a JSON object.", code="invalid_body")

    texts = data.get("texts")
    if not isinstance(texts, list) or not all(isinstance(text, str) for text in texts):
        raise InvalidRequest("texts must be a list of strings.", code="invalid_texts")

    target_lang = data.get("target_lang")
    if not isinstance(target_lang, str) or not target_lang.strip():
        raise InvalidRequest("target_lang is required.", code="invalid_target_lang")

    source_lang = data.get("source_lang") or AUTO_LANGUAGE
    if not isinstance(source_lang, str):
        raise InvalidRequest("source_lang must be a string.", code="invalid_source_lang")

    concurrency = data.get("concurrency", settings["DEFAULT_CONCURRENCY"])
    if isinstance(concurrency, bool) or not isinstance(concurrency, int):
        raise InvalidRequest("concurrency must be an integer.", code="invalid_concurrency")
    if not 1 <= concurrency <= settings["MAX_CONCURRENCY"]:
        raise InvalidRequest(
            f"concurrency must be between 1 and {settings['MAX_CONCURRENCY']}.",
            code="invalid_concurrency",
            details={"concurrency": concurrency},
        )

    return BatchRequest(
        texts=texts,
        target_lang=target_lang.strip(),
        source_lang=source_lang.strip() or AUTO_LANGUAGE,
        concurrency=concurrency,
    )


@batch_bp.post("/translate/batch")
@require_api_key
def translate_batch():
    """Translate texts and answer once every unit has settled."""
    batch_request = parse_batch_request(
        request.get_json(silent=True), current_app.config["PAGETRANSLATE"]
    )
    translator = current_app.extensions["pagetranslate.translator"]

    response = asyncio.run(dispatch_batch(translator, batch_request))
    return jsonify({"results": response.results})


@batch_bp.post("/translate/jobs")
@require_api_key
def start_batch_job():
    """Start an asynchronous batch translation job."""
    batch_request = parse_batch_request(
        request.get_json(silent=True), current_app.config["PAGETRANSLATE"]
    )
    job = create_batch_job(
        current_app.extensions["pagetranslate.translator"],
        texts=batch_request.texts,
        target_lang=batch_request.target_lang,
        source_lang=batch_request.source_lang,
        concurrency=batch_request.concurrency,
    )
    return jsonify({"job_id": job.job_id, "job": serialize_job(job)}), 202


@batch_bp.get("/translate/jobs/<job_id>")
@require_api_key
def get_batch_job(job_id: str):
    """Return progress, and results once terminal, for a batch job."""
    job = get_job(job_id)
    if not job:
        return jsonify({"detail": "Job not found or expired."}), 404
    return jsonify(serialize_job(job))


@batch_bp.post("/translate/jobs/<job_id>/cancel")
@require_api_key
def cancel_batch_job(job_id: str):
    """Stop a batch job before its next wave starts."""
    if not get_job(job_id):
        return jsonify({"detail": "Job not found or expired."}), 404
    if cancel_job(job_id):
        return jsonify({"status": "cancellation_requested", "job_id": job_id})
    return jsonify({"detail": "Job already finished and cannot be cancelled."}), 400
