"""Tool category modules for the Content MCP server.

This package contains MCP tools organized by functional categories:
- schema_tools: Schema inspection (list ids, overview, type definition, validate)
- path_tools: Field path parsing (parse_path)
- query_tools: Document reads (query_documents, get_document)
- mutation_tools: Document writes (create, patch, delete, mutate)
"""

from .mutation_tools import register_mutation_tools
from .path_tools import register_path_tools
from .query_tools import register_query_tools
from .schema_tools import register_schema_tools

__all__ = [
    "register_schema_tools",
    "register_path_tools",
    "register_query_tools",
    "register_mutation_tools",
]
