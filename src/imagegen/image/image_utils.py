from __future__ import annotations

import base64
import binascii

PNG_DATA_URI_PREFIX = "data:image/png;base64,"


def strip_data_uri(data: str) -> str:
    """Return the base64 payload of ``data``.

    Text containing a comma is split at the first comma and the remainder is
    returned; anything else is returned unchanged.
    """
    if "," in data:
        return data.split(",", 1)[1]
    return data


def to_png_data_uri(data: str) -> str:
    return PNG_DATA_URI_PREFIX + strip_data_uri(data)


def decode_base64_image(data: str) -> bytes:
    """Decode a bare base64 string or data URI to raw image bytes.

    Raises:
        ValueError: if the payload is not valid base64.
    """
    payload = strip_data_uri(data).strip()
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 image data: {e}") from e
