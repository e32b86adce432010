"""MCP server for symtree-mcp."""

import asyncio
import json
import logging
import sys
from typing import Any, Callable, Optional

from mcp.server import Server
from mcp.types import Tool, TextContent

from .config import ServerConfig
from .errors import OutlineError
from .outline import CancellationToken
from .tools.file_structure import file_structure
from .tools.update_workspace import update_workspace
from .workspace import Workspace

logger = logging.getLogger(__name__)


# Create server
server = Server("symtree-mcp")

_workspace: Optional[Workspace] = None


def get_workspace() -> Workspace:
    """Workspace shared by all requests, created from the environment on first use."""
    global _workspace
    if _workspace is None:
        config = ServerConfig.from_env()
        _workspace = Workspace(
            folders=config.workspace_folders,
            library_paths=config.library_paths,
            max_files=config.max_files,
            max_size=config.max_file_size,
        )
        logger.info("Workspace folders: %s", ", ".join(str(f) for f in _workspace.folders))
    return _workspace


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="file_structure",
            description="Get the structure of a source file: its types with their methods, fields and initializers, nested, with locations. Optionally includes members inherited from supertypes, qualified with the type declaring them.",
            inputSchema={
                "type": "object",
                "properties": {
                    "uri": {
                        "type": "string",
                        "description": "file:// URI or path of the source file"
                    },
                    "showInherited": {
                        "type": "boolean",
                        "description": "Include members inherited from all supertypes. Members declared closer to the type shadow inherited ones.",
                        "default": False
                    }
                },
                "required": ["uri"]
            }
        ),
        Tool(
            name="update_workspace",
            description="Add and remove workspace folders. Supertypes are resolved across all workspace folders.",
            inputSchema={
                "type": "object",
                "properties": {
                    "addedProjectsUri": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "file:// URIs or paths of folders to add",
                        "default": []
                    },
                    "removedProjectsUri": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "file:// URIs or paths of folders to remove",
                        "default": []
                    }
                }
            }
        ),
    ]


async def _run_cancellable(func: Callable, arguments: dict, model: Any) -> Any:
    """Run a command in a worker thread; task cancellation sets its token."""
    token = CancellationToken()
    try:
        return await asyncio.to_thread(func, arguments, model, token)
    except asyncio.CancelledError:
        token.cancel()
        raise


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    workspace = get_workspace()

    try:
        if name == "file_structure":
            symbols = await _run_cancellable(file_structure, arguments, workspace)
            result = {
                "uri": arguments.get("uri"),
                "symbols": symbols
            }
        elif name == "update_workspace":
            job = await _run_cancellable(update_workspace, arguments, workspace)
            result = job.to_dict()
        else:
            result = {"error": f"Unknown tool: {name}"}

        return [TextContent(type="text", text=json.dumps(result, indent=2))]

    except OutlineError as e:
        logger.info("Tool %s failed (%s): %s", name, e.outcome, e)
        return [TextContent(type="text", text=json.dumps({"error": str(e), "outcome": e.outcome}, indent=2))]

    except Exception as e:
        logger.exception("Tool %s failed", name)
        return [TextContent(type="text", text=json.dumps({"error": str(e), "outcome": "error"}, indent=2))]


async def run_server():
    """Run the MCP server."""
    from mcp.server.stdio import stdio_server

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options()
        )


def main():
    """Main entry point."""
    config = ServerConfig.from_env()
    # stdout carries the MCP stream
    logging.basicConfig(
        stream=sys.stderr,
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    asyncio.run(run_server())


if __name__ == "__main__":
    main()
