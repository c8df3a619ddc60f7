import asyncio
import logging

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    CallToolResult,
    TextContent,
    Tool,
)

from jstack_analyzer_mcp.config import get_settings
from jstack_analyzer_mcp.tools_adapter import (
    DIFF_MODES,
    Result,
    analyze_tool_call,
    compare_tool_call,
)

logger = logging.getLogger("jstack_analyzer_mcp")


def to_call_tool_result(result: Result) -> CallToolResult:
    if result.ok:
        return CallToolResult(content=[TextContent(type="text", text=result.text or "")])
    return CallToolResult(
        content=[TextContent(type="text", text=f"{result.error_code}: {result.error_message}")],
        isError=True,
    )


async def main_async() -> None:
    settings = get_settings()
    server = Server(settings.server_name)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return [
            Tool(
                name="analyze_thread_dump",
                description=(
                    "Parses a jstack thread dump file and returns the thread model, counts by "
                    "status and by identical stack, lock owners and detected problems."
                ),
                inputSchema={
                    "type": "object",
                    "required": ["path"],
                    "properties": {
                        "path": {"type": "string", "description": "Path to jstack output file"},
                        "problems_only": {
                            "type": "boolean",
                            "default": False,
                            "description": "Only return totals, status counts and problems",
                        },
                    },
                    "additionalProperties": False,
                },
            ),
            Tool(
                name="compare_thread_dumps",
                description=(
                    "Parses two jstack thread dump files and compares thread status counts and problems."
                ),
                inputSchema={
                    "type": "object",
                    "required": ["path_a", "path_b"],
                    "properties": {
                        "path_a": {"type": "string", "description": "Path to first jstack output file"},
                        "path_b": {"type": "string", "description": "Path to second jstack output file"},
                        "diff_mode": {"type": "string", "enum": list(DIFF_MODES), "default": "full"},
                    },
                    "additionalProperties": False,
                },
            ),
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict) -> CallToolResult:
        logger.debug("Tool call %s %s", name, arguments)
        if name == "analyze_thread_dump":
            result = analyze_tool_call(
                arguments.get("path"),
                problems_only=bool(arguments.get("problems_only", False)),
                settings=settings,
            )
        elif name == "compare_thread_dumps":
            result = compare_tool_call(
                arguments.get("path_a"),
                arguments.get("path_b"),
                diff_mode=arguments.get("diff_mode", "full"),
                settings=settings,
            )
        else:
            result = Result.err("INVALID_PARAMS", f"Unknown tool: {name}")
        return to_call_tool_result(result)

    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    settings = get_settings()
    # stdout carries the MCP transport, so logs go to stderr.
    logging.basicConfig(
        level=settings.log_level_number,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    asyncio.run(main_async())


if __name__ == "__main__":
    main()
