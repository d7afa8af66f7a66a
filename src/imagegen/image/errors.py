"""
Exception classes for the image generation pipeline.

Every failure an invocation can surface maps to exactly one of these kinds.
None of them is retried.
"""

from __future__ import annotations

from typing import Any

from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, METHOD_NOT_FOUND


class ImageGenError(Exception):
    """Base exception for classified invocation failures."""

    kind: str = "unexpected"
    code: int = INTERNAL_ERROR

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": {
                "kind": self.kind,
                "code": self.code,
                "message": self.message,
            }
        }


class InvalidParamsError(ImageGenError):
    """Raised when tool arguments fail shape or range checks."""

    kind = "invalid_params"
    code = INVALID_PARAMS

    def __init__(self, reason: str | None = None):
        message = "Invalid parameters"
        if reason:
            message = f"{message}: {reason}"
        self.reason = reason
        super().__init__(message)


class UnknownToolError(ImageGenError):
    """Raised when an invocation names a tool this server does not provide."""

    kind = "unknown_tool"
    code = METHOD_NOT_FOUND

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown tool: {name}")


class RemoteServiceError(ImageGenError):
    """Raised when a call to the WebUI API fails or returns a non-2xx status."""

    kind = "transport_error"

    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class EmptyResultError(ImageGenError):
    """Raised when txt2img succeeds but returns no images."""

    kind = "empty_result"

    def __init__(self, message: str = "No images generated"):
        super().__init__(message)


class UnexpectedError(ImageGenError):
    """Raised for any other failure (decode, filesystem, malformed response)."""

    kind = "unexpected"
