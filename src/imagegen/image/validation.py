"""
Argument validation for the ``generate_image`` tool.

The tool accepts an untyped argument object. Only the fields listed in
``GENERATE_IMAGE_FIELDS`` are checked here; every other field is forwarded to
the WebUI unchanged and defaulted by :mod:`imagegen.image.payload`. Widening
the checked set would reject inputs the WebUI currently tolerates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from imagegen.image.errors import InvalidParamsError

STRING = "string"
NUMBER = "number"


@dataclass(frozen=True)
class FieldSpec:
    name: str
    kind: str
    required: bool = False
    minimum: float | None = None
    maximum: float | None = None


GENERATE_IMAGE_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("prompt", STRING, required=True),
    FieldSpec("negative_prompt", STRING),
    FieldSpec("steps", NUMBER, minimum=1, maximum=150),
    FieldSpec("batch_size", NUMBER, minimum=1, maximum=4),
)


GENERATE_IMAGE_INPUT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "prompt": {
            "type": "string",
            "description": "The prompt describing the desired image",
        },
        "negative_prompt": {
            "type": "string",
            "description": "Things to exclude from the image",
        },
        "steps": {
            "type": "number",
            "description": "Number of sampling steps (default: 4)",
            "minimum": 1,
            "maximum": 150,
        },
        "width": {
            "type": "number",
            "description": "Image width (default: 1024)",
            "minimum": 512,
            "maximum": 2048,
        },
        "height": {
            "type": "number",
            "description": "Image height (default: 1024)",
            "minimum": 512,
            "maximum": 2048,
        },
        "cfg_scale": {
            "type": "number",
            "description": "CFG scale (default: 1)",
            "minimum": 1,
            "maximum": 30,
        },
        "distilled_cfg_scale": {
            "type": "number",
            "description": "Distilled CFG scale (default: 3.5)",
            "minimum": 1,
            "maximum": 30,
        },
        "sampler_name": {
            "type": "string",
            "description": "Sampling algorithm (default: Euler)",
            "default": "Euler",
        },
        "scheduler_name": {
            "type": "string",
            "description": "Scheduler algorithm (default: Simple)",
            "default": "Simple",
        },
        "seed": {
            "type": "number",
            "description": "Random seed (-1 for random)",
            "minimum": -1,
        },
        "batch_size": {
            "type": "number",
            "description": "Number of images to generate (default: 1)",
            "minimum": 1,
            "maximum": 4,
        },
        "restore_faces": {
            "type": "boolean",
            "description": "Enable face restoration",
        },
        "tiling": {
            "type": "boolean",
            "description": "Generate tileable images",
        },
        "output_path": {
            "type": "string",
            "description": "Custom output directory for the generated images",
        },
    },
    "required": ["prompt"],
}


def coerce_number(value: Any) -> int | float | None:
    """Convert a loosely typed value to a number.

    Numbers pass through, booleans count as 1 and 0, numeric strings are
    parsed and blank strings become 0. Returns ``None`` when the value has no
    numeric reading (including NaN).
    """
    if isinstance(value, bool):
        number: float = float(value)
    elif isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            # Integers beyond float range read as infinity, which fails any bound
            number = math.inf if value > 0 else -math.inf
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            number = 0.0
        else:
            try:
                number = float(text)
            except ValueError:
                return None
    else:
        return None

    if math.isnan(number):
        return None
    if math.isfinite(number) and number.is_integer():
        return int(number)
    return number


def _check_field(spec: FieldSpec, arguments: dict[str, Any]) -> None:
    if spec.name not in arguments or arguments[spec.name] is None:
        if spec.required:
            raise InvalidParamsError(f"'{spec.name}' is required")
        # Explicit nulls are treated as absent
        arguments.pop(spec.name, None)
        return

    value = arguments[spec.name]
    if spec.kind == STRING:
        if not isinstance(value, str):
            raise InvalidParamsError(f"'{spec.name}' must be a string")
        return

    number = coerce_number(value)
    if number is None:
        raise InvalidParamsError(f"'{spec.name}' must be a number")
    if spec.minimum is not None and number < spec.minimum:
        raise InvalidParamsError(
            f"'{spec.name}' must be between {spec.minimum} and {spec.maximum}"
        )
    if spec.maximum is not None and number > spec.maximum:
        raise InvalidParamsError(
            f"'{spec.name}' must be between {spec.minimum} and {spec.maximum}"
        )
    arguments[spec.name] = number


def validate_arguments(
    value: Any, fields: tuple[FieldSpec, ...] = GENERATE_IMAGE_FIELDS
) -> dict[str, Any]:
    """Check ``value`` against ``fields`` and normalize it in place.

    Numeric fields that pass are replaced by their coerced value so later
    stages see numbers, not strings.

    Raises:
        InvalidParamsError: if ``value`` is not an object or a checked field
            is missing, mistyped or out of range.
    """
    if not isinstance(value, dict):
        raise InvalidParamsError("arguments must be an object")

    for spec in fields:
        _check_field(spec, value)
    return value
