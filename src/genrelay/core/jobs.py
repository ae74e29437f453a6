"""Data model for a single relayed generation.

Nothing here is persisted or shared: one :class:`GenerationRequest` produces
at most one :class:`UpstreamJob`, and both live only for the duration of the
inbound HTTP request that created them.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict


class JobStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @classmethod
    def from_upstream(cls, value: Any) -> JobStatus:
        """Map an upstream status string onto a :class:`JobStatus`.

        Upstream may report intermediate states such as ``QUEUED`` or
        ``IN_PROGRESS``; anything that is neither COMPLETE nor FAILED is
        treated as PENDING.
        """
        if isinstance(value, str):
            normalised = value.strip().upper()
            if normalised == cls.COMPLETE.value:
                return cls.COMPLETE
            if normalised == cls.FAILED.value:
                return cls.FAILED
        return cls.PENDING


class RelayPhase(str, Enum):
    """Per-request state machine of the relay.

    ``SUBMITTING -> POLLING -> FETCHING -> DONE`` is the happy path.
    ``SUBMIT_ERROR``, ``FAILED_TERMINAL`` and ``TIMED_OUT`` are the
    alternate terminal states.
    """

    SUBMITTING = "submitting"
    POLLING = "polling"
    FETCHING = "fetching"
    DONE = "done"
    SUBMIT_ERROR = "submit_error"
    FAILED_TERMINAL = "failed_terminal"
    TIMED_OUT = "timed_out"


class GenerationRequest(BaseModel):
    """A validated, immutable generation request.

    Attributes:
        prompt: Text prompt.  Presence is checked by the relay, so a
            missing prompt is reported as an invalid request rather than a
            schema error.
        num_inference_steps: Diffusion steps requested from upstream.
        guidance_scale: Classifier-free guidance scale.
        num_images: Number of images upstream should produce.
    """

    model_config = ConfigDict(frozen=True)

    prompt: str | None = None
    num_inference_steps: int = 4
    guidance_scale: float = 3.5
    num_images: int = 1


class UpstreamJob(BaseModel):
    """Tracking record for one upstream asynchronous job.

    Created from the submit response and updated by each poll.  ``attempts``
    counts every status check, including those that failed in transit.
    """

    request_id: str
    status: JobStatus = JobStatus.PENDING
    attempts: int = 0
    result: Any = None
    error: Any = None


class GenerationResult(BaseModel):
    """Successful outcome of :meth:`GenerationRelay.generate`."""

    success: bool = True
    data: Any = None
    request_id: str
    attempts: int

    def to_response(self) -> dict[str, Any]:
        return {"success": self.success, "data": self.data}
