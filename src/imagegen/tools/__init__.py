"""Reusable tools module for the image-gen bridge.

Tool functions here are called from both:
- the MCP server via @mcp.tool() decorators
- CLI commands via direct function calls
"""

from __future__ import annotations

from .image_tools import TOOL_NAMES, ImageTools, format_tool_result

__all__ = ["TOOL_NAMES", "ImageTools", "format_tool_result"]
