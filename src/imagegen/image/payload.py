"""Build a fully defaulted :class:`GenerationRequest` from validated arguments."""

from __future__ import annotations

import os
from typing import Any

from imagegen.image.types import GenerationRequest

DEFAULT_STEPS = 4
DEFAULT_WIDTH = 1024
DEFAULT_HEIGHT = 1024
DEFAULT_CFG_SCALE = 1
DEFAULT_DISTILLED_CFG_SCALE = 3.5
DEFAULT_SAMPLER = "Euler"
DEFAULT_SCHEDULER = "Simple"
DEFAULT_SEED = -1
DEFAULT_BATCH_SIZE = 1


def resolve_output_dir(output_path: Any, default_dir: str) -> str:
    """Return the directory images for this call are written to.

    A caller-supplied ``output_path`` names a directory, never a file.
    """
    if isinstance(output_path, str) and output_path:
        return os.path.normpath(output_path.strip())
    return default_dir


def build_generation_request(
    arguments: dict[str, Any], default_output_dir: str
) -> GenerationRequest:
    """Apply defaults to every optional field.

    Falsy values fall back to the default (a width of 0 means "unset"), except
    for ``seed`` where 0 is a real seed and only absence selects -1.
    """
    seed = arguments.get("seed")
    return GenerationRequest(
        prompt=arguments["prompt"],
        negative_prompt=arguments.get("negative_prompt") or "",
        steps=arguments.get("steps") or DEFAULT_STEPS,
        width=arguments.get("width") or DEFAULT_WIDTH,
        height=arguments.get("height") or DEFAULT_HEIGHT,
        cfg_scale=arguments.get("cfg_scale") or DEFAULT_CFG_SCALE,
        distilled_cfg_scale=arguments.get("distilled_cfg_scale")
        or DEFAULT_DISTILLED_CFG_SCALE,
        sampler_name=arguments.get("sampler_name") or DEFAULT_SAMPLER,
        scheduler_name=arguments.get("scheduler_name") or DEFAULT_SCHEDULER,
        seed=DEFAULT_SEED if seed is None else seed,
        batch_size=arguments.get("batch_size") or DEFAULT_BATCH_SIZE,
        restore_faces=bool(arguments.get("restore_faces")),
        tiling=bool(arguments.get("tiling")),
        output_dir=resolve_output_dir(arguments.get("output_path"), default_output_dir),
    )
