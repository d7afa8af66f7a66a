"""
Write generated images to disk with their generation parameters embedded.

Each image is saved as PNG under a fresh ``sd_<uuid>.png`` name. The
parameters text is stored twice: in the EXIF ``ImageDescription`` tag and in a
``parameters`` text chunk, the key the WebUI's png-info endpoint reads.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from io import BytesIO
from pathlib import Path

import PIL.Image
from PIL.PngImagePlugin import PngInfo

from imagegen.config.logging_config import get_logger
from imagegen.image.image_utils import decode_base64_image
from imagegen.image.types import GeneratedArtifact, RemoteImageResult

log = get_logger(__name__)

FILENAME_PREFIX = "sd_"
IMAGE_EXTENSION = ".png"
EXIF_IMAGE_DESCRIPTION = 0x010E
PNG_PARAMETERS_KEY = "parameters"


def ensure_output_dir(path: str) -> None:
    """Create ``path`` and any missing parents; existing directories are fine."""
    Path(path).mkdir(parents=True, exist_ok=True)


def unique_image_path(directory: str) -> str:
    return os.path.join(directory, f"{FILENAME_PREFIX}{uuid.uuid4()}{IMAGE_EXTENSION}")


def encode_png_with_parameters(image_bytes: bytes, parameters: str) -> bytes:
    """Re-encode ``image_bytes`` as PNG with ``parameters`` embedded."""
    with PIL.Image.open(BytesIO(image_bytes)) as image:
        image.load()
        exif = PIL.Image.Exif()
        exif[EXIF_IMAGE_DESCRIPTION] = parameters
        pnginfo = PngInfo()
        pnginfo.add_text(PNG_PARAMETERS_KEY, parameters)

        buf = BytesIO()
        image.save(buf, format="PNG", pnginfo=pnginfo, exif=exif)
        return buf.getvalue()


def _write_artifact(result: RemoteImageResult, directory: str) -> GeneratedArtifact:
    png_bytes = encode_png_with_parameters(decode_base64_image(result.image), result.info)
    path = unique_image_path(directory)
    with open(path, "xb") as f:
        try:
            f.write(png_bytes)
        except OSError:
            Path(path).unlink(missing_ok=True)
            raise
    return GeneratedArtifact(path=path, parameters=result.info)


async def materialize_results(
    results: list[RemoteImageResult], output_dir: str
) -> list[GeneratedArtifact]:
    """Write every result to ``output_dir``, preserving order.

    The directory must already exist (see :func:`ensure_output_dir`). If any
    image fails to decode or write, or the task is cancelled, the files written
    so far are removed and the error is re-raised.
    """
    artifacts: list[GeneratedArtifact] = []
    try:
        for result in results:
            artifact = await asyncio.to_thread(_write_artifact, result, output_dir)
            log.info(f"Wrote {artifact.path}")
            artifacts.append(artifact)
    except BaseException:
        for artifact in artifacts:
            Path(artifact.path).unlink(missing_ok=True)
        raise
    return artifacts
