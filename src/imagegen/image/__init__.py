"""Image generation pipeline for the Stable Diffusion WebUI bridge."""

from imagegen.image.errors import (
    EmptyResultError,
    ImageGenError,
    InvalidParamsError,
    RemoteServiceError,
    UnexpectedError,
    UnknownToolError,
)
from imagegen.image.types import GeneratedArtifact, GenerationRequest, RemoteImageResult

__all__ = [
    "EmptyResultError",
    "GeneratedArtifact",
    "GenerationRequest",
    "ImageGenError",
    "InvalidParamsError",
    "RemoteImageResult",
    "RemoteServiceError",
    "UnexpectedError",
    "UnknownToolError",
]
