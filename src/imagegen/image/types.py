"""
Image generation types for the WebUI bridge.

This module defines the request sent to txt2img, the per-image result of a
remote call and the artifact handed back to the caller.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class GenerationRequest(BaseModel):
    """Fully defaulted parameters for one txt2img call.

    Only `steps` and `batch_size` are range-checked before this model is
    built; the remaining numeric fields are forwarded as the caller gave them.
    """

    prompt: str = Field(description="Text prompt describing the desired image")
    negative_prompt: str = Field(
        default="", description="Things to exclude from the image"
    )
    steps: int | float = Field(default=4, description="Number of sampling steps")
    width: Any = Field(default=1024, description="Image width")
    height: Any = Field(default=1024, description="Image height")
    cfg_scale: Any = Field(default=1, description="CFG scale")
    distilled_cfg_scale: Any = Field(
        default=3.5, description="Distilled CFG scale"
    )
    sampler_name: Any = Field(default="Euler", description="Sampling algorithm")
    scheduler_name: Any = Field(default="Simple", description="Scheduler algorithm")
    seed: Any = Field(default=-1, description="Random seed (-1 for random)")
    batch_size: int | float = Field(
        default=1, description="Number of images to generate"
    )
    restore_faces: bool = Field(default=False, description="Enable face restoration")
    tiling: bool = Field(default=False, description="Generate tileable images")
    output_dir: str = Field(description="Directory the images are written to")

    def to_api_payload(self) -> dict[str, Any]:
        """Return the JSON body for ``POST /sdapi/v1/txt2img``."""
        return {
            "prompt": self.prompt,
            "negative_prompt": self.negative_prompt,
            "steps": self.steps,
            "width": self.width,
            "height": self.height,
            "cfg_scale": self.cfg_scale,
            "sampler_name": self.sampler_name,
            "scheduler_name": self.scheduler_name,
            "seed": self.seed,
            "n_iter": self.batch_size,
            "distilled_cfg_scale": self.distilled_cfg_scale,
            "tiling": self.tiling,
            "restore_faces": self.restore_faces,
        }


class RemoteImageResult(BaseModel):
    """One image returned by txt2img, paired with its png-info text."""

    image: str = Field(description="Base64 image data, possibly a data URI")
    info: str = Field(default="", description="Generation parameters text")


class GeneratedArtifact(BaseModel):
    """A written image file and the parameters embedded in it."""

    model_config = ConfigDict(frozen=True)

    path: str
    parameters: str
