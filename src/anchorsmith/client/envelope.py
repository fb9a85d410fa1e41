"""Classify client-challenge responses into a tagged envelope.

The service normally answers with one of two JSON bodies, but proxies and
crashes produce HTML pages, empty bodies or unrelated JSON.  Every one of
those becomes a :class:`SubmissionResult`; nothing here raises.
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from anchorsmith.core.models import SubmissionBody, SubmissionError, SubmissionResult, SubmissionSuccess

logger = logging.getLogger(__name__)

INVALID_RESPONSE = "Invalid response"
INVALID_JSON = "Invalid JSON"


def classify_payload(payload: Any) -> SubmissionBody:
    """Map a decoded body onto the success or error shape.

    Shapes are checked in a fixed order, success first, so a body that
    carries both ``success``/``results`` and ``error``/``message`` is a
    success envelope.
    """
    if isinstance(payload, dict):
        success = payload.get("success")
        results = payload.get("results")
        if isinstance(success, bool) and isinstance(results, list):
            return SubmissionSuccess(success=success, results=results)

        error = payload.get("error")
        message = payload.get("message")
        if isinstance(error, str) and isinstance(message, str):
            return SubmissionError(error=error, message=message)

    return SubmissionError(error=INVALID_RESPONSE, message=_stringify(payload))


def _stringify(payload: Any) -> str:
    if isinstance(payload, (dict, list)):
        return json.dumps(payload, ensure_ascii=False)
    if payload is None:
        return "null"
    return str(payload)


def decode_body(response: httpx.Response) -> Any:
    """Decode the body, or return a ready-made error envelope if that fails."""
    content_type = response.headers.get("content-type", "")
    if "application/json" not in content_type:
        return SubmissionError(error=INVALID_RESPONSE, message=response.text)
    try:
        return response.json()
    except ValueError as exc:
        return SubmissionError(error=INVALID_JSON, message=str(exc))


def parse_submission_response(response: httpx.Response) -> SubmissionResult:
    """Build the normalised result for *response*.

    ``ok`` is true only for a 2xx status carrying a success envelope.  A
    success-shaped body on an error status is reported as an invalid
    response so callers never mistake it for an accepted submission.
    """
    decoded = decode_body(response)
    body = decoded if isinstance(decoded, SubmissionError) else classify_payload(decoded)

    if isinstance(body, SubmissionSuccess) and not response.is_success:
        body = SubmissionError(error=INVALID_RESPONSE, message=_stringify(decoded))

    ok = isinstance(body, SubmissionSuccess)
    if not ok:
        logger.warning(
            "Client submission rejected: status=%d  error=%s", response.status_code, body.error
        )
    return SubmissionResult(ok=ok, status_code=response.status_code, body=body)
