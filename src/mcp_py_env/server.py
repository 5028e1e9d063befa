"""MCP server implementation."""
import asyncio
import json
import logging
from typing import Any, Dict, List

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.models import InitializationOptions
from mcp.server import stdio

from mcp_py_env.config import log_level
from mcp_py_env.environments.registry import (
    cleanup_all,
    cleanup_environment,
    create_environment,
    require_environment,
)
from mcp_py_env.errors import PyEnvError, log_error
from mcp_py_env.types import DependencyMode
from mcp_py_env import __version__
from mcp_py_env.logging import configure_logging, get_logger, log_with_data

logger = get_logger("server")

tools = [
    types.Tool(
        name="py_env_create",
        description="Create an isolated Python environment with a private package directory",
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Root directory, a temporary one is used when omitted",
                },
                "persistent": {
                    "type": "boolean",
                    "description": "Keep the root directory after cleanup",
                },
            },
        },
    ),
    types.Tool(
        name="py_env_install",
        description="Install packages into an environment",
        inputSchema={
            "type": "object",
            "properties": {
                "env_id": {"type": "string", "description": "Environment identifier"},
                "packages": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "Package requirements to install",
                },
            },
            "required": ["env_id", "packages"],
        },
    ),
    types.Tool(
        name="py_env_execute",
        description="Run Python source in an environment and return its output",
        inputSchema={
            "type": "object",
            "properties": {
                "env_id": {"type": "string", "description": "Environment identifier"},
                "code": {"type": "string", "description": "Python source to run"},
                "auto_install": {
                    "type": "boolean",
                    "description": "Install missing imported modules before running",
                },
            },
            "required": ["env_id", "code"],
        },
    ),
    types.Tool(
        name="py_env_cleanup",
        description="Dispose an environment",
        inputSchema={
            "type": "object",
            "properties": {
                "env_id": {"type": "string", "description": "Environment identifier"}
            },
            "required": ["env_id"],
        },
    ),
]


def _text(payload: Dict[str, Any]) -> list[types.TextContent]:
    return [types.TextContent(type="text", text=json.dumps(payload))]


async def handle_tool_call(name: str, arguments: Dict[str, Any]) -> list[types.TextContent]:
    """Dispatch one tool call and render the JSON response."""
    try:
        log_with_data(logger, logging.DEBUG, "tool_call", {"name": name, "arguments": list(arguments)})

        if name == "py_env_create":
            managed = create_environment(
                path=arguments.get("path"), persistent=arguments.get("persistent")
            )
            return _text({
                "success": True,
                "data": {
                    "id": managed.id,
                    "root": str(managed.root),
                    "persistent": managed.env.persistent,
                    "created_at": managed.created_at.isoformat(),
                },
            })

        elif name == "py_env_install":
            managed = require_environment(arguments["env_id"])
            packages = arguments["packages"]
            if isinstance(packages, str):
                packages = packages.split()
            if not packages:
                return _text({"success": False, "error": "No packages given"})
            result = await managed.env.install(*packages)
            stdout, stderr, info = managed.output.drain()
            return _text({
                "success": result.success,
                "data": {
                    "returncode": result.returncode,
                    "stdout": stdout,
                    "stderr": stderr,
                    "info": info,
                },
            })

        elif name == "py_env_execute":
            managed = require_environment(arguments["env_id"])
            mode = DependencyMode.AUTO if arguments.get("auto_install") else DependencyMode.WARN
            result = await managed.env.execute(arguments["code"], dependency_mode=mode)
            stdout, stderr, info = managed.output.drain()
            return _text({
                "success": result.success,
                "data": {
                    "returncode": result.returncode,
                    "stdout": stdout,
                    "stderr": stderr,
                    "info": info,
                    "missing_dependencies": result.missing_dependencies,
                },
            })

        elif name == "py_env_cleanup":
            cleanup_environment(arguments["env_id"])
            return _text({
                "success": True,
                "data": {"message": "Environment cleaned up successfully"},
            })

        return _text({"success": False, "error": f"Unknown tool: {name}"})

    except PyEnvError as e:
        log_error(e, context={"tool": name}, logger=logger)
        return _text({"success": False, "error": str(e), "code": e.code})
    except (KeyError, ValueError) as e:
        return _text({"success": False, "error": f"Invalid arguments: {e}"})
    except Exception as e:
        log_error(e, context={"tool": name}, logger=logger)
        return _text({"success": False, "error": str(e)})


async def init_server() -> Server:
    logger.info(f"Registered tools: {', '.join(t.name for t in tools)}")

    server = Server("mcp-py-env")

    @server.list_tools()
    async def list_tools() -> List[types.Tool]:
        logger.debug("Tools requested")
        return tools

    @server.call_tool()
    async def call_tool(
        name: str, arguments: Dict[str, Any]
    ) -> list[types.TextContent | types.ImageContent | types.EmbeddedResource]:
        return await handle_tool_call(name, arguments or {})

    return server


async def serve() -> None:
    configure_logging(log_level())
    logger.info("Starting MCP py-env server")
    server = await init_server()
    try:
        async with stdio.stdio_server() as (read_stream, write_stream):
            init_options = InitializationOptions(
                server_name="mcp-py-env",
                server_version=__version__,
                capabilities=types.ServerCapabilities(
                    tools=types.ToolsCapability(listChanged=False),
                    logging=types.LoggingCapability(),
                ),
            )
            await server.run(read_stream, write_stream, init_options)
    finally:
        cleanup_all()


def main() -> None:
    """Run the MCP server."""
    asyncio.run(serve())
