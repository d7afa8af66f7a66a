"""Image generation tools.

Composes validation, payload building, the WebUI calls and file output into
the single ``generate_image`` operation.
"""

from __future__ import annotations

import json
from typing import Any

from imagegen.config.logging_config import get_logger
from imagegen.config.settings import ServiceConfig
from imagegen.image.errors import ImageGenError, UnexpectedError, UnknownToolError
from imagegen.image.materializer import ensure_output_dir, materialize_results
from imagegen.image.payload import build_generation_request
from imagegen.image.sd_webui_client import SDWebUIClient
from imagegen.image.validation import GENERATE_IMAGE_INPUT_SCHEMA, validate_arguments

log = get_logger(__name__)

GENERATE_IMAGE = "generate_image"
TOOL_NAMES = (GENERATE_IMAGE,)
GENERATE_IMAGE_DESCRIPTION = "Generate an image using Stable Diffusion"


def format_tool_result(artifacts: list[dict[str, str]]) -> dict[str, Any]:
    """Wrap artifacts in a tool-call result with a single JSON text block."""
    return {"content": [{"type": "text", "text": json.dumps(artifacts)}]}


class ImageTools:
    """Image generation tools."""

    @staticmethod
    def list_tools() -> list[dict[str, Any]]:
        """Describe the tools this server provides, with their input schemas."""
        return [
            {
                "name": GENERATE_IMAGE,
                "description": GENERATE_IMAGE_DESCRIPTION,
                "inputSchema": GENERATE_IMAGE_INPUT_SCHEMA,
            }
        ]

    @staticmethod
    async def call_tool(
        name: str,
        arguments: Any,
        client: SDWebUIClient,
        config: ServiceConfig,
    ) -> list[dict[str, str]]:
        """Dispatch a tool call by name."""
        if name != GENERATE_IMAGE:
            log.warning(f"Rejected call to unknown tool {name!r}")
            raise UnknownToolError(name)
        return await ImageTools.generate_image(arguments, client, config)

    @staticmethod
    async def generate_image(
        arguments: Any,
        client: SDWebUIClient,
        config: ServiceConfig,
    ) -> list[dict[str, str]]:
        """
        Generate images with the WebUI and save them to disk.

        Args:
            arguments: Raw tool arguments (see GENERATE_IMAGE_INPUT_SCHEMA)
            client: Shared WebUI client
            config: Service configuration (supplies the default output dir)

        Returns:
            One ``{"path", "parameters"}`` dict per image, in generation order

        Raises:
            ImageGenError: the classified failure; no partial results are returned
        """
        try:
            validated = validate_arguments(arguments)
            request = build_generation_request(validated, config.output_dir)
            log.info(
                f"generate_image: prompt={len(request.prompt)} chars, "
                f"batch_size={request.batch_size}, output_dir={request.output_dir}"
            )

            ensure_output_dir(request.output_dir)
            results = await client.generate(request)
            artifacts = await materialize_results(results, request.output_dir)
        except ImageGenError as e:
            log.warning(f"generate_image failed ({e.kind}): {e.message}")
            raise
        except Exception as e:
            log.error(f"generate_image failed unexpectedly: {e}", exc_info=True)
            raise UnexpectedError(str(e) or type(e).__name__) from e

        return [artifact.model_dump() for artifact in artifacts]
