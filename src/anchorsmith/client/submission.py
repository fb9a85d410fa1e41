"""HTTP client for the challenge service's API.

Read endpoints raise :class:`TransportError` on any non-2xx answer, except
progress, where a 404 simply means the address has not registered yet.
Program uploads return the raw ``httpx.Response``; client submissions are
normalised by :mod:`anchorsmith.client.envelope`.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import TracebackType
from typing import Any
from urllib.parse import quote

import httpx
from solders.transaction import VersionedTransaction

from anchorsmith.client.envelope import parse_submission_response
from anchorsmith.core.errors import FilesystemError, MissingPayload, TransportError
from anchorsmith.core.models import ChallengeSummary, ProgressReport, SubmissionResult
from anchorsmith.identity.signer import Signer

logger = logging.getLogger(__name__)


def _segment(value: str) -> str:
    return quote(value, safe="")


class SubmissionClient:
    """Async client bound to one service endpoint and one signer.

    Parameters
    ----------
    base_url:
        Service root, e.g. ``https://ai-api.blueshift.gg``.
    signer:
        Identity used for signatures and as the submitting address.
    http_client:
        Optional shared ``httpx.AsyncClient``; the client only closes the
        one it creates itself.
    timeout:
        Per-request timeout in seconds for a self-created client.
    """

    def __init__(
        self,
        base_url: str,
        signer: Signer,
        *,
        http_client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ) -> None:
        if timeout is None:
            from anchorsmith.config.settings import settings  # noqa: PLC0415

            timeout = settings.http.timeout_seconds
        self.base_url = base_url.rstrip("/")
        self.signer = signer
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient(timeout=timeout)

    async def __aenter__(self) -> SubmissionClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def endpoint(self, pathname: str) -> str:
        return f"{self.base_url}{pathname}"

    # -- read endpoints -----------------------------------------------------

    async def list_challenges(self) -> list[ChallengeSummary]:
        response = await self._http.get(self.endpoint("/v1/challenges"))
        message = "Failed to list challenges"
        payload = self._json_or_raise(response, message)
        challenges = payload.get("challenges") or []
        if not isinstance(challenges, list):
            raise self._malformed(response, message)
        return [self._challenge(response, c, message) for c in challenges]

    async def get_challenge(self, namespace: str, key: str) -> ChallengeSummary:
        response = await self._http.get(
            self.endpoint(f"/v1/challenges/{_segment(namespace)}/{_segment(key)}")
        )
        message = f"Failed to fetch challenge {namespace}/{key}"
        payload = self._json_or_raise(response, message)
        return self._challenge(response, payload.get("challenge"), message)

    async def get_progress(self, address: str | None = None) -> ProgressReport:
        """Progress for *address* (the signer's own by default).

        An address the service has never seen yields an empty report.
        """
        address = address or self.signer.address
        response = await self._http.get(self.endpoint(f"/v1/agents/{_segment(address)}/progress"))
        if response.status_code == 404:
            logger.info("No progress recorded for %s yet.", address)
            return ProgressReport(agent=None, challenges=[])
        message = "Failed to fetch agent progress"
        payload = self._json_or_raise(response, message)
        try:
            return ProgressReport.from_dict(payload)
        except (AttributeError, KeyError, TypeError, ValueError):
            raise self._malformed(response, message) from None

    # -- submissions --------------------------------------------------------

    async def submit_program(self, slug: str, program: bytes) -> httpx.Response:
        """Upload a compiled program with a signature over its bytes.

        The response is returned untouched; its schema is judged elsewhere.
        """
        target = self.endpoint(f"/v1/challenges/program/{_segment(slug)}")
        files = {
            "program": (f"{slug}-submission.so", bytes(program), "application/octet-stream"),
        }
        data = {
            "signature": self.signer.sign_encoded(program),
            "address": self.signer.address,
        }
        response = await self._http.post(target, files=files, data=data)
        logger.info(
            "Program submission for '%s' (%d bytes): status=%d",
            slug,
            len(program),
            response.status_code,
        )
        return response

    async def submit_program_file(self, slug: str, path: str | Path) -> httpx.Response:
        """Read a ``.so`` from disk and submit it with :meth:`submit_program`."""
        file_path = Path(path).expanduser()
        try:
            program = file_path.read_bytes()
        except OSError as exc:
            raise FilesystemError(f"Failed to read program file: {exc}", str(file_path)) from exc
        return await self.submit_program(slug, program)

    async def submit_client(
        self,
        slug: str,
        *,
        transaction_base64: str | None = None,
        transaction: VersionedTransaction | None = None,
    ) -> SubmissionResult:
        """Submit a transaction for a client challenge.

        A pre-encoded *transaction_base64* is sent as-is and takes precedence;
        otherwise *transaction* is signed by this client's signer first.
        """
        encoded = self.resolve_transaction_base64(
            transaction_base64=transaction_base64, transaction=transaction
        )
        target = self.endpoint(f"/v1/challenges/client/{_segment(slug)}")
        body = {"transaction": encoded, "address": self.signer.address}

        response = await self._http.post(target, json=body)
        result = parse_submission_response(response)
        logger.info(
            "Client submission for '%s': status=%d  ok=%s", slug, result.status_code, result.ok
        )
        return result

    def resolve_transaction_base64(
        self,
        *,
        transaction_base64: str | None = None,
        transaction: VersionedTransaction | None = None,
    ) -> str:
        if transaction_base64:
            return transaction_base64
        if transaction is None:
            raise MissingPayload(
                "Client submission requires either a pre-signed transaction_base64 "
                "or a VersionedTransaction instance"
            )
        return self.signer.sign_and_encode_transaction(transaction)

    # -- internal -----------------------------------------------------------

    @staticmethod
    def _json_or_raise(response: httpx.Response, message: str) -> dict[str, Any]:
        if not response.is_success:
            logger.warning("%s: %d %s", message, response.status_code, response.reason_phrase)
            raise TransportError(
                message,
                status_code=response.status_code,
                reason=response.reason_phrase,
                text=response.text,
            )
        try:
            payload = response.json()
        except ValueError:
            raise SubmissionClient._malformed(response, message) from None
        if not isinstance(payload, dict):
            raise SubmissionClient._malformed(response, message)
        return payload

    @staticmethod
    def _challenge(response: httpx.Response, data: Any, message: str) -> ChallengeSummary:
        if not isinstance(data, dict) or not isinstance(data.get("slug"), str):
            raise SubmissionClient._malformed(response, message)
        return ChallengeSummary.from_dict(data)

    @staticmethod
    def _malformed(response: httpx.Response, message: str) -> TransportError:
        """Error for a 2xx answer whose body is not the expected JSON object."""
        logger.warning("%s: unexpected body (status=%d).", message, response.status_code)
        return TransportError(
            f"{message}: unexpected response body",
            status_code=response.status_code,
            reason=response.reason_phrase,
            text=response.text,
        )
