"""Content MCP: schema-aware tools for a structured content store."""

__version__ = "0.1.0"
