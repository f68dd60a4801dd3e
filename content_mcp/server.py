"""MCP Server for a structured content store.

This module builds the FastMCP server that exposes schema inspection, path
parsing, document queries and atomic mutations against the configured
content store.
"""

import argparse
import logging

from mcp.server import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.responses import Response

from .config import get_settings
from .context import ServerContext
from .error_handler import safe_operation
from .logger_config import configure_logging
from .metrics_config import ensure_metrics_initialized
from .metrics_config import get_metrics_export
from .metrics_config import get_metrics_summary
from .metrics_config import is_metrics_enabled
from .metrics_config import shutdown_metrics
from .store.factory import get_store_info
from .tools import register_mutation_tools
from .tools import register_path_tools
from .tools import register_query_tools
from .tools import register_schema_tools

logger = logging.getLogger(__name__)


def create_server(context: ServerContext | None = None) -> FastMCP:
    """Build a server with every tool category registered against ``context``."""
    context = context or ServerContext.from_settings()
    mcp_server = FastMCP(name="ContentStoreTools")

    register_schema_tools(mcp_server, context)
    register_path_tools(mcp_server)
    register_query_tools(mcp_server, context)
    register_mutation_tools(mcp_server, context)
    register_http_routes(mcp_server, context)
    return mcp_server


@safe_operation("metrics_summary", default_return={"status": "error"})
def _metrics_summary(context: ServerContext) -> dict:
    summary = get_metrics_summary()
    summary["store"] = get_store_info(context.store)
    return summary


def register_http_routes(mcp_server: FastMCP, context: ServerContext) -> None:
    """Expose health and Prometheus endpoints next to the SSE transport."""

    @mcp_server.custom_route("/health", methods=["GET"], name="health")
    async def health_endpoint(request: Request) -> Response:
        return JSONResponse({"status": "healthy", "server": mcp_server.name})

    @mcp_server.custom_route("/metrics", methods=["GET"], name="metrics")
    async def metrics_endpoint(request: Request) -> Response:
        metrics_data, content_type = get_metrics_export()
        return Response(content=metrics_data, status_code=200, media_type=content_type)

    @mcp_server.custom_route("/metrics/summary", methods=["GET"], name="metrics_summary")
    async def metrics_summary_endpoint(request: Request) -> Response:
        return JSONResponse(_metrics_summary(context))


# --- Main Server Execution ---
def main():
    """Run the main entry point for the server with argument parsing."""
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Content Store MCP Server")
    parser.add_argument(
        "transport",
        choices=["sse", "stdio"],
        default="stdio",
        nargs="?",
        help="Transport: 'sse' for HTTP SSE or 'stdio' for standard I/O (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default=settings.sse_host,
        help=f"Host to bind to for SSE transport (default: {settings.sse_host})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.sse_port,
        help=f"Port to bind to for SSE transport (default: {settings.sse_port})",
    )
    args = parser.parse_args()

    # stdout carries the stdio protocol, so status goes through logging (stderr).
    configure_logging(settings.log_file, settings.log_level)
    if settings.enable_metrics:
        ensure_metrics_initialized()

    context = ServerContext.from_settings(settings)
    mcp_server = create_server(context)
    logger.info("Content store: %s", get_store_info(context.store))
    logger.info("Metrics: %s", "enabled" if is_metrics_enabled() else "disabled")

    try:
        if args.transport == "stdio":
            logger.info("MCP server running with stdio transport. Waiting for client connection...")
            mcp_server.run(transport="stdio")
        else:
            logger.info("MCP server running with HTTP SSE transport on %s:%s", args.host, args.port)
            mcp_server.settings.host = args.host
            mcp_server.settings.port = args.port
            mcp_server.run(transport="sse")
    finally:
        shutdown_metrics()


if __name__ == "__main__":
    main()
