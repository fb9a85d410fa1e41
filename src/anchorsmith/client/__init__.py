"""Challenge-service client and response classification."""

from __future__ import annotations

from anchorsmith.client.envelope import classify_payload, parse_submission_response
from anchorsmith.client.submission import SubmissionClient

__all__ = [
    "SubmissionClient",
    "classify_payload",
    "parse_submission_response",
]
