#!/usr/bin/env python
"""
FastMCP server for the Stable Diffusion WebUI bridge

Exposes a single ``generate_image`` tool that calls the WebUI txt2img API,
reads back each image's generation parameters and writes the images, with
those parameters embedded, to disk.

Run with: imagegen mcp
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError
from pydantic import Field

from imagegen.api.process_hooks import install_loop_exception_handler, install_process_hooks
from imagegen.config.logging_config import get_logger
from imagegen.config.settings import ServiceConfig
from imagegen.image.errors import ImageGenError
from imagegen.image.sd_webui_client import SDWebUIClient
from imagegen.tools.image_tools import GENERATE_IMAGE_DESCRIPTION, ImageTools

log = get_logger(__name__)

_config: ServiceConfig | None = None
_client: SDWebUIClient | None = None


def get_service_config() -> ServiceConfig:
    global _config
    if _config is None:
        _config = ServiceConfig.from_environment()
    return _config


def get_image_client() -> SDWebUIClient:
    """Return the process-wide WebUI client, creating it on first use."""
    global _client
    if _client is None:
        config = get_service_config()
        _client = SDWebUIClient(config)
        log.info(
            f"WebUI client ready: {config.base_url} "
            f"(timeout {config.request_timeout_ms} ms, auth {'on' if config.auth else 'off'})"
        )
    return _client


async def close_image_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    install_loop_exception_handler()
    get_image_client()
    try:
        yield {}
    finally:
        await close_image_client()


mcp = FastMCP("image-gen", lifespan=lifespan)


@mcp.tool(description=GENERATE_IMAGE_DESCRIPTION)
async def generate_image(
    prompt: Annotated[str, Field(description="The prompt describing the desired image")],
    negative_prompt: Annotated[
        Any,
        Field(
            description="Things to exclude from the image",
            json_schema_extra={"type": "string"},
        ),
    ] = None,
    steps: Annotated[
        Any,
        Field(
            description="Number of sampling steps (default: 4)",
            json_schema_extra={"type": "number", "minimum": 1, "maximum": 150},
        ),
    ] = None,
    width: Annotated[
        Any,
        Field(
            description="Image width (default: 1024)",
            json_schema_extra={"type": "number", "minimum": 512, "maximum": 2048},
        ),
    ] = None,
    height: Annotated[
        Any,
        Field(
            description="Image height (default: 1024)",
            json_schema_extra={"type": "number", "minimum": 512, "maximum": 2048},
        ),
    ] = None,
    cfg_scale: Annotated[
        Any,
        Field(
            description="CFG scale (default: 1)",
            json_schema_extra={"type": "number", "minimum": 1, "maximum": 30},
        ),
    ] = None,
    distilled_cfg_scale: Annotated[
        Any,
        Field(
            description="Distilled CFG scale (default: 3.5)",
            json_schema_extra={"type": "number", "minimum": 1, "maximum": 30},
        ),
    ] = None,
    sampler_name: Annotated[
        Any,
        Field(
            description="Sampling algorithm (default: Euler)",
            json_schema_extra={"type": "string"},
        ),
    ] = None,
    scheduler_name: Annotated[
        Any,
        Field(
            description="Scheduler algorithm (default: Simple)",
            json_schema_extra={"type": "string"},
        ),
    ] = None,
    seed: Annotated[
        Any,
        Field(
            description="Random seed (-1 for random)",
            json_schema_extra={"type": "number", "minimum": -1},
        ),
    ] = None,
    batch_size: Annotated[
        Any,
        Field(
            description="Number of images to generate (default: 1)",
            json_schema_extra={"type": "number", "minimum": 1, "maximum": 4},
        ),
    ] = None,
    restore_faces: Annotated[
        Any,
        Field(description="Enable face restoration", json_schema_extra={"type": "boolean"}),
    ] = None,
    tiling: Annotated[
        Any,
        Field(description="Generate tileable images", json_schema_extra={"type": "boolean"}),
    ] = None,
    output_path: Annotated[
        Any,
        Field(
            description="Custom output directory for the generated images",
            json_schema_extra={"type": "string"},
        ),
    ] = None,
) -> str:
    """
    Generate an image using Stable Diffusion.

    Optional arguments are accepted as given here; range and type checks, and
    their invalid-parameters errors, come from the shared validator.

    Returns:
        JSON array of {path, parameters} objects, one per generated image
    """
    arguments = {
        key: value
        for key, value in {
            "prompt": prompt,
            "negative_prompt": negative_prompt,
            "steps": steps,
            "width": width,
            "height": height,
            "cfg_scale": cfg_scale,
            "distilled_cfg_scale": distilled_cfg_scale,
            "sampler_name": sampler_name,
            "scheduler_name": scheduler_name,
            "seed": seed,
            "batch_size": batch_size,
            "restore_faces": restore_faces,
            "tiling": tiling,
            "output_path": output_path,
        }.items()
        if value is not None
    }

    try:
        artifacts = await ImageTools.generate_image(
            arguments, get_image_client(), get_service_config()
        )
    except ImageGenError as e:
        raise ToolError(f"[{e.kind}] {e.message}") from e
    return json.dumps(artifacts)


def run_server() -> None:
    """Serve over stdio until the client disconnects or the process is interrupted."""
    install_process_hooks()
    get_service_config()
    log.info("Starting image-gen MCP server (tools: generate_image)")
    try:
        mcp.run()
    except KeyboardInterrupt:
        log.info("Interrupted, MCP server stopped")


if __name__ == "__main__":
    run_server()
