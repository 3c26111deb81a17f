"""Azure DevOps MCP Server - Model Context Protocol integration.

This package exposes read-only Azure DevOps access to AI assistants.

Modules:
- server: stdio MCP server implementation
- formatters: Response formatting utilities
- tools: MCP tool definitions
- handlers: Tool implementation handlers
"""

from ado_core import __version__

from . import formatters
from . import tools
from . import handlers

__all__ = ["formatters", "tools", "handlers", "__version__"]
