"""Unit tests for the relay data models and error kinds."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from genrelay.api.models import GenerateRequest
from genrelay.core.errors import (
    ClientDisconnected,
    GenerationFailed,
    GenerationTimedOut,
    InvalidRequest,
    Misconfigured,
    RelayError,
    UpstreamFetchFailed,
    UpstreamSubmitFailed,
)
from genrelay.core.jobs import (
    GenerationRequest,
    GenerationResult,
    JobStatus,
    RelayPhase,
    UpstreamJob,
)


class TestJobStatus:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("COMPLETE", JobStatus.COMPLETE),
            ("complete", JobStatus.COMPLETE),
            ("FAILED", JobStatus.FAILED),
            ("PENDING", JobStatus.PENDING),
            ("IN_PROGRESS", JobStatus.PENDING),
            ("QUEUED", JobStatus.PENDING),
            (None, JobStatus.PENDING),
            (42, JobStatus.PENDING),
        ],
    )
    def test_from_upstream(self, raw, expected):
        assert JobStatus.from_upstream(raw) is expected


class TestGenerationRequest:
    def test_defaults(self):
        req = GenerationRequest(prompt="a fox")
        assert req.num_inference_steps == 4
        assert req.guidance_scale == 3.5
        assert req.num_images == 1

    def test_is_immutable(self):
        req = GenerationRequest(prompt="a fox")
        with pytest.raises(ValidationError):
            req.prompt = "a wolf"


class TestUpstreamJob:
    def test_starts_pending_with_no_attempts(self):
        job = UpstreamJob(request_id="r1")
        assert job.status is JobStatus.PENDING
        assert job.attempts == 0
        assert job.result is None


class TestGenerationResult:
    def test_response_hides_tracking_fields(self):
        result = GenerationResult(data={"images": []}, request_id="r1", attempts=3)
        assert result.to_response() == {"success": True, "data": {"images": []}}


class TestGenerateRequestBody:
    """Test the API body model for POST /api/generate."""

    def test_prompt_is_optional_at_schema_level(self):
        assert GenerateRequest().prompt is None

    def test_to_generation_request(self):
        body = GenerateRequest(prompt="a fox", num_images=2)
        req = body.to_generation_request()
        assert isinstance(req, GenerationRequest)
        assert req.prompt == "a fox"
        assert req.num_images == 2
        assert req.num_inference_steps == 4

    def test_wrong_type_rejected(self):
        with pytest.raises(ValidationError):
            GenerateRequest(prompt="a fox", num_images="many")


class TestRelayErrors:
    @pytest.mark.parametrize(
        "error, status",
        [
            (InvalidRequest(), 400),
            (Misconfigured(), 500),
            (UpstreamSubmitFailed(), 500),
            (GenerationFailed(), 500),
            (GenerationTimedOut("r1", 120), 408),
            (UpstreamFetchFailed(), 500),
            (ClientDisconnected("r1", 3), 499),
        ],
    )
    def test_status_codes(self, error: RelayError, status: int):
        assert error.status_code == status

    def test_invalid_request_body(self):
        assert InvalidRequest().to_response() == {"error": "Prompt is required"}

    def test_error_with_details_body(self):
        err = GenerationFailed(details={"reason": "nsfw"})
        assert err.to_response() == {
            "error": "Image generation failed",
            "details": {"reason": "nsfw"},
        }

    def test_timeout_body(self):
        body = GenerationTimedOut("r1", 120).to_response()
        assert body["request_id"] == "r1"
        assert body["attempts"] == 120
        assert "120" in body["error"]

    def test_phases(self):
        assert InvalidRequest.phase is None
        assert UpstreamSubmitFailed.phase is RelayPhase.SUBMIT_ERROR
        assert GenerationFailed.phase is RelayPhase.FAILED_TERMINAL
        assert GenerationTimedOut.phase is RelayPhase.TIMED_OUT
