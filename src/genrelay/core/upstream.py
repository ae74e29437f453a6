"""HTTP client for the asynchronous inference API.

The upstream service exposes a three-call job lifecycle, all authenticated
with the same bearer credential:

========  ====================================  ============================
Method    Path                                  Returns
========  ====================================  ============================
POST      ``{base}/async-invoke``               ``{request_id}``
GET       ``{base}/async-invoke/{id}/status``   ``{status, error?}``
GET       ``{base}/async-invoke/{id}``          final result payload
========  ====================================  ============================

:class:`InferenceClient` wraps an ``httpx.AsyncClient`` owned by the caller
(the FastAPI lifespan in production, a ``MockTransport``-backed client in
tests).  Every transport failure, HTTP error status or unparseable body is
raised as :class:`UpstreamError`, so callers only ever handle one exception
type.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from genrelay.core.config import RelayConfig
from genrelay.core.jobs import GenerationRequest

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """A call to the inference API failed.

    Attributes:
        message: Short summary suitable for logs.
        details: Upstream JSON error body when one was returned, otherwise
            the response text or the transport error message.
        status_code: HTTP status of the failing response, or ``None`` for
            transport errors.
    """

    def __init__(self, message: str, details: Any = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details if details is not None else message
        self.status_code = status_code


def _response_details(response: httpx.Response) -> Any:
    """Extract the most useful diagnostic payload from an error response."""
    try:
        return response.json()
    except ValueError:
        return response.text or response.reason_phrase


class InferenceClient:
    """Thin async wrapper around the inference API's job endpoints.

    Args:
        http: Shared ``httpx.AsyncClient``.  The client is not closed here.
        config: Relay configuration supplying the base URL, credential and
            fixed submit inputs.
    """

    def __init__(self, http: httpx.AsyncClient, config: RelayConfig) -> None:
        self._http = http
        self._config = config
        self._base_url = config.api_base_url.rstrip("/")

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.model_access_key}"}

    def _job_url(self, request_id: str, suffix: str = "") -> str:
        return f"{self._base_url}/async-invoke/{quote(request_id, safe='')}{suffix}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._http.request(method, url, headers=self._headers(), **kwargs)
        except httpx.RequestError as exc:
            raise UpstreamError(
                f"Upstream unreachable: {type(exc).__name__}",
                details=str(exc) or type(exc).__name__,
            ) from exc

        if response.is_error:
            raise UpstreamError(
                f"Upstream returned HTTP {response.status_code}",
                details=_response_details(response),
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(
                "Upstream returned a non-JSON body",
                details=response.text,
                status_code=response.status_code,
            ) from exc

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        """Build the submit body: request parameters plus fixed defaults."""
        return {
            "model_id": self._config.model_id,
            "input": {
                "prompt": request.prompt,
                "output_format": self._config.output_format,
                "num_inference_steps": request.num_inference_steps,
                "guidance_scale": request.guidance_scale,
                "num_images": request.num_images,
                "enable_safety_checker": self._config.enable_safety_checker,
            },
        }

    async def submit(self, request: GenerationRequest) -> str:
        """Start an upstream job and return its opaque request id.

        Raises:
            UpstreamError: On any failure, including a success response that
                carries no ``request_id``.
        """
        data = await self._request(
            "POST",
            f"{self._base_url}/async-invoke",
            json=self.build_payload(request),
        )
        request_id = data.get("request_id") if isinstance(data, dict) else None
        if not request_id:
            raise UpstreamError("Upstream response did not include a request_id", details=data)
        return str(request_id)

    async def status(self, request_id: str) -> dict[str, Any]:
        """Return the raw status body (``{status, error?}``) of a job."""
        data = await self._request("GET", self._job_url(request_id, "/status"))
        if not isinstance(data, dict):
            raise UpstreamError("Upstream status response was not an object", details=data)
        return data

    async def fetch(self, request_id: str) -> Any:
        """Return the final result payload of a completed job, verbatim."""
        return await self._request("GET", self._job_url(request_id))
