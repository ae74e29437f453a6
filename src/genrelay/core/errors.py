"""Error kinds reported by the generation relay.

Each failure mode of a generation maps to exactly one subclass of
:class:`RelayError`.  The class carries the HTTP status the API layer should
answer with and knows how to render its own JSON body, so the route handlers
never translate errors themselves.

========================  ====  ==========================================
Class                     HTTP  Body
========================  ====  ==========================================
InvalidRequest            400   ``{error}``
Misconfigured             500   ``{error, details}``
UpstreamSubmitFailed      500   ``{error, details}``
GenerationFailed          500   ``{error, details}``
GenerationTimedOut        408   ``{error, request_id, attempts}``
UpstreamFetchFailed       500   ``{error, details}``
ClientDisconnected        499   ``{error, details}``
========================  ====  ==========================================
"""

from __future__ import annotations

from typing import Any

from genrelay.core.jobs import RelayPhase


class RelayError(Exception):
    """Base class for every error the relay reports to its caller.

    Attributes:
        status_code: HTTP status the API layer responds with.
        phase: Phase of the generation in which the error occurred, or
            ``None`` when it was raised before submitting.
        error: Short human-readable summary.
        details: Extra diagnostic payload (upstream body, exception text).
    """

    status_code: int = 500
    phase: RelayPhase | None = None
    default_message: str = "Failed to generate image"

    def __init__(self, error: str | None = None, details: Any = None) -> None:
        self.error = error or self.default_message
        self.details = details
        super().__init__(self.error)

    def to_response(self) -> dict[str, Any]:
        """Render the JSON body returned to the caller."""
        return {"error": self.error, "details": self.details}


class InvalidRequest(RelayError):
    """The inbound request is unusable (e.g. no prompt)."""

    status_code = 400
    default_message = "Prompt is required"

    def to_response(self) -> dict[str, Any]:
        return {"error": self.error}


class Misconfigured(RelayError):
    """The relay cannot reach upstream because the credential is unset."""

    default_message = "MODEL_ACCESS_KEY is not configured"


class UpstreamSubmitFailed(RelayError):
    phase = RelayPhase.SUBMIT_ERROR
    default_message = "Failed to submit generation request"


class GenerationFailed(RelayError):
    """Upstream reported the job as FAILED."""

    phase = RelayPhase.FAILED_TERMINAL
    default_message = "Image generation failed"


class GenerationTimedOut(RelayError):
    """The attempt ceiling was reached without a terminal status.

    The upstream request id is kept so the caller can inspect the job
    out-of-band.
    """

    status_code = 408
    phase = RelayPhase.TIMED_OUT
    default_message = "Request timed out"

    def __init__(self, request_id: str, attempts: int, error: str | None = None) -> None:
        super().__init__(error or f"Request timed out after {attempts} attempts")
        self.request_id = request_id
        self.attempts = attempts

    def to_response(self) -> dict[str, Any]:
        return {
            "error": self.error,
            "request_id": self.request_id,
            "attempts": self.attempts,
        }


class UpstreamFetchFailed(RelayError):
    phase = RelayPhase.FETCHING
    default_message = "Failed to fetch generation result"


class ClientDisconnected(RelayError):
    """The caller went away while the job was still being polled."""

    status_code = 499
    phase = RelayPhase.POLLING
    default_message = "Client disconnected before the generation finished"

    def __init__(self, request_id: str, attempts: int) -> None:
        super().__init__(details={"request_id": request_id, "attempts": attempts})
        self.request_id = request_id
        self.attempts = attempts
