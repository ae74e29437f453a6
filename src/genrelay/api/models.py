"""Pydantic request and response models for the relay API.

FastAPI uses these for request parsing, response serialisation and the
OpenAPI schema.

Models
------
GenerateRequest
    Payload for ``POST /api/generate``.
GenerateResponse
    Success body of ``POST /api/generate``.
HealthResponse
    Body of ``GET /health``.
ProbeResponse
    Success body of ``GET /api/test``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from genrelay.core.jobs import GenerationRequest


class GenerateRequest(BaseModel):
    """Request body for the ``POST /api/generate`` endpoint.

    ``prompt`` is optional at the schema level so that a missing prompt is
    answered with the relay's own 400 rather than a 422 validation error.

    Attributes:
        prompt: Text prompt describing the image.
        num_inference_steps: Diffusion steps requested from upstream.
        guidance_scale: Classifier-free guidance scale.
        num_images: Number of images to generate.
    """

    prompt: str | None = Field(
        default=None,
        description="Text prompt describing the image (required).",
    )
    num_inference_steps: int = Field(
        default=4,
        description="Number of diffusion inference steps.",
    )
    guidance_scale: float = Field(
        default=3.5,
        description="Classifier-free guidance scale.",
    )
    num_images: int = Field(
        default=1,
        description="Number of images to generate.",
    )

    model_config = {
        "json_schema_extra": {
            "example": {
                "prompt": "A lighthouse on a cliff at dusk",
                "num_inference_steps": 4,
                "guidance_scale": 3.5,
                "num_images": 1,
            }
        }
    }

    def to_generation_request(self) -> GenerationRequest:
        return GenerationRequest(
            prompt=self.prompt,
            num_inference_steps=self.num_inference_steps,
            guidance_scale=self.guidance_scale,
            num_images=self.num_images,
        )


class GenerateResponse(BaseModel):
    success: bool = True
    data: Any = None


class HealthResponse(BaseModel):
    status: str = "healthy"
    timestamp: str


class ProbeResponse(BaseModel):
    success: bool = True
    message: str
    request_id: str
