import json
from typing import Any, TypedDict

from mcp.types import TextContent


class ToolResponse(TypedDict):
    success: bool
    data: Any
    error: Any


def success_response(data: Any) -> ToolResponse:
    return {"success": True, "data": data, "error": None}


def error_response(error: Any) -> ToolResponse:
    return {"success": False, "data": None, "error": error}


def render_tool_response(response: ToolResponse) -> list[TextContent]:
    """Render a ToolResponse as MCP text content"""
    if response["success"]:
        return [TextContent(type="text", text=json.dumps(response["data"], indent=2))]
    return [TextContent(type="text", text=f"Error: {response['error']}")]
