"""Azure DevOps MCP Server - Expose work items, pull requests and files to AI assistants."""
import sys
import asyncio
import logging
import traceback
from typing import Any, Awaitable, Callable, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    Tool,
    TextContent,
    ImageContent,
    EmbeddedResource,
)
from pydantic import ValidationError

from ado_core import __version__
from ado_core.backend import AzureDevOpsClient
from ado_core.config import Settings, get_settings
from ado_core.errors import (
    DevOpsError,
    OperationCancelledError,
    PolicyBlockedError,
    sanitize_error,
)
from ado_core.policy import PolicyGate
from ado_core.services import Services

from . import tools
from . import handlers


# Configure logging to stderr (stdout carries the MCP stream)
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    stream=sys.stderr,
    force=True
)
logger = logging.getLogger("ado-mcp")

SERVER_NAME = "azure-devops-mcp-server"

# MCP Server instance
app = Server(SERVER_NAME)

# Built once at startup from settings and read-only afterwards
_policy_gate: Optional[PolicyGate] = None

Handler = Callable[[dict, Services], Awaitable[list[TextContent]]]


def get_policy_gate(settings: Optional[Settings] = None) -> PolicyGate:
    """Get the process-wide PolicyGate, building it on first use."""
    global _policy_gate
    if _policy_gate is None:
        settings = settings or get_settings()
        _policy_gate = PolicyGate(settings.gdpr_blocked_work_item_types)
    return _policy_gate


def _error(message: str) -> list[TextContent]:
    return [TextContent(type="text", text=f"Error: {message}")]


@app.list_tools()
async def list_tools() -> list[Tool]:
    """List available MCP tools."""
    logger.info("Listing available tools...")
    return tools.get_tools()


async def run_handler(
    name: str,
    handler: Handler,
    arguments: dict,
    services: Services,
    deadline_seconds: Optional[float] = None,
    abort: Optional[asyncio.Event] = None,
) -> list[TextContent]:
    """Run one handler and translate failures into caller-visible text.

    When the deadline passes, the abort signal is set, the pending fetch is
    cancelled and the caller gets a cancellation error instead of a partial
    result.
    """
    try:
        if deadline_seconds is None:
            return await handler(arguments, services)
        try:
            return await asyncio.wait_for(handler(arguments, services), timeout=deadline_seconds)
        except asyncio.TimeoutError:
            if abort is not None:
                abort.set()
            raise OperationCancelledError(name) from None

    except PolicyBlockedError as e:
        logger.warning(f"GDPR policy blocked {name}: work item #{e.work_item_id} ({e.work_item_type})")
        return _error(sanitize_error(e))

    except DevOpsError as e:
        logger.error(f"{type(e).__name__} during {name} call: {e}")
        return _error(sanitize_error(e))

    except ValidationError as e:
        # Backend payload that does not fit the models; the arguments were fine
        logger.error(f"Malformed backend record during {name} call: {e.error_count()} invalid value(s)")
        return _error("Azure DevOps returned a record that could not be read.")

    except (KeyError, ValueError, TypeError) as e:
        # Missing or malformed tool arguments
        logger.error(f"Invalid arguments for {name}: {arguments}")
        logger.error(f"  Error: {type(e).__name__}: {e}")
        return _error(f"Invalid arguments for {name}: {sanitize_error(e)}")

    except Exception as e:
        logger.error(f"Unexpected error during {name} call:")
        logger.error(f"  Error type: {type(e).__name__}")
        logger.error(f"  Error message: {str(e)}")
        logger.error(f"  Arguments: {arguments}")
        logger.error(f"  Traceback:\n{traceback.format_exc()}")
        return _error(sanitize_error(e))


@app.call_tool()
async def call_tool(name: str, arguments: Any) -> list[TextContent | ImageContent | EmbeddedResource]:
    """Handle MCP tool calls by delegating to handlers."""
    logger.info(f"Tool call: {name} with arguments: {arguments}")

    handler = handlers.HANDLERS.get(name)
    if not handler:
        logger.warning(f"Unknown tool requested: {name}")
        return [TextContent(type="text", text=f"Unknown tool: {name}")]

    settings = get_settings()
    abort = asyncio.Event()

    async with AzureDevOpsClient(settings) as backend:
        services = Services.build(backend, get_policy_gate(settings), settings, abort)
        return await run_handler(
            name,
            handler,
            dict(arguments or {}),
            services,
            deadline_seconds=settings.tool_deadline_seconds,
            abort=abort,
        )


async def main():
    """Load configuration, verify the connection and run the MCP server."""
    logger.info("=" * 60)
    logger.info(f"Azure DevOps MCP Server v{__version__}")
    logger.info("=" * 60)

    try:
        logger.info("Loading configuration...")
        settings = get_settings()

        logger.info("Initializing GDPR policy gate...")
        get_policy_gate(settings)

        logger.info("Connecting to Azure DevOps...")
        async with AzureDevOpsClient(settings) as backend:
            await backend.validate_connection()
    except DevOpsError as e:
        logger.error(f"Failed to start server: {e}")
        sys.exit(1)

    logger.info(f"Starting MCP server with {len(tools.get_tools())} tools...")
    async with stdio_server() as (read_stream, write_stream):
        await app.run(read_stream, write_stream, app.create_initialization_options())
    logger.info("Shutting down server...")


def run():
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutting down server...")


if __name__ == "__main__":
    run()
