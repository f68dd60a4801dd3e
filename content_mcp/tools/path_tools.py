"""Path Tools.

This module contains the MCP tool for checking field path expressions:
- parse_path: Parse a path and return its canonical form and segments
"""

from mcp.server import FastMCP

from ..error_handler import handle_mcp_tool_error
from ..logger_config import log_mcp_call
from ..models import OperationStatus
from ..models import ParsedPath
from ..paths import parse_path as compile_path
from ..paths import serialize_path


def register_path_tools(mcp_server: FastMCP) -> None:
    """Register path tools with the MCP server."""

    @mcp_server.tool()
    @log_mcp_call
    def parse_path(path: str) -> ParsedPath | OperationStatus:
        """Parse a field path such as ``body[_key=="a1"].children[0].text``.

        Supported segments: ``name``, ``[3]`` / ``[-1]``, ``[1:3]`` (read
        only), ``[_key=="value"]`` and ``['quoted-name']``.

        Parameters:
            path (str): The path expression.

        Returns:
            ParsedPath: canonical string, one entry per segment, and whether
            the path can only be read (it contains a range). Invalid paths
            return a failed OperationStatus with ``PATH_SYNTAX_ERROR``.
        """
        try:
            address = compile_path(path)
        except Exception as e:
            return handle_mcp_tool_error("parse_path", e, {"path": path})
        return ParsedPath(
            path=path,
            canonical=serialize_path(address),
            segments=address.to_json(),
            read_only=address.is_read_only,
        )
