"""MCP server that exposes hmake targets as tools."""

import logging
import sys
import uuid
from pathlib import Path

from mcp.server import Server
from mcp.types import TextContent, Tool

from hmake.config import DEFAULT_TIMEOUT
from hmake.core.executor import CommandRunner, ShellCommandRunner, TargetExecutor
from hmake.core.graph import DependencyGraph, build_graph
from hmake.core.models import Makefile, TargetRun
from hmake.core.parser import LineMakefileParser, MakefileParser
from hmake.exceptions import ExecutionError, TargetNotFoundError

logger = logging.getLogger(__name__)


def setup_logging(level: str = "INFO") -> None:
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )


def format_runs(runs: list[TargetRun]) -> str:
    """Render executed steps as plain text."""
    output = ""
    for run in runs:
        output += f"running commands for target: {run.target}\n"
        for result in run.results:
            output += f"    {result.command}\n"
            if result.stdout:
                output += result.stdout if result.stdout.endswith("\n") else result.stdout + "\n"
            if result.stderr:
                output += "STDERR:\n" + result.stderr + "\n"
    return output


class HMakeMCPServer:
    """MCP server that runs Makefile targets with their dependencies."""

    def __init__(
        self,
        makefile_path: Path,
        parser: MakefileParser | None = None,
        runner: CommandRunner | None = None,
        allowed_targets: list[str] | None = None,
        max_output_chars: int = 0,
        timeout: int | None = DEFAULT_TIMEOUT,
    ):
        self.makefile_path = makefile_path
        self.parser = parser or LineMakefileParser()
        self.runner = runner or ShellCommandRunner()
        self.allowed_targets = set(allowed_targets) if allowed_targets else None
        self.max_output_chars = max_output_chars
        self.timeout = timeout
        self.makefile: Makefile | None = None
        self.graph: DependencyGraph | None = None
        self.server = Server("hmake")

        @self.server.list_tools()
        async def handle_list_tools() -> list[Tool]:
            return await self._handle_list_tools()

        @self.server.call_tool()
        async def handle_call_tool(name: str, arguments: dict) -> list[TextContent]:
            return await self._handle_call_tool(name, arguments)

    async def initialize(self) -> None:
        """Parse the Makefile and build its dependency graph."""
        logger.info(f"Parsing Makefile: {self.makefile_path}")
        self.makefile = self.parser.parse(self.makefile_path)
        self.graph = build_graph(self.makefile.targets)

        if self.allowed_targets:
            missing_targets = self.allowed_targets - set(self.graph.vertices)
            if missing_targets:
                missing_list = ", ".join(sorted(missing_targets))
                raise ValueError(
                    f"Allowed targets not found in Makefile: {missing_list}. "
                    f"Available targets: {', '.join(sorted(self.graph.vertices))}"
                )
            logger.info(f"Allowed targets filter: {len(self.allowed_targets)} targets")

    def _is_exposed(self, name: str) -> bool:
        return self.allowed_targets is None or name in self.allowed_targets

    async def _handle_list_tools(self) -> list[Tool]:
        """Return graph targets as MCP tools."""
        if not self.makefile or not self.graph:
            return []

        tools = []
        for name in self.graph.vertices:
            if not self._is_exposed(name):
                logger.debug(f"Skipping non-allowed target: {name}")
                continue

            target = self.makefile.targets[name]
            description = target.description or f"Run target '{name}'"
            if target.dependencies:
                description += f" (depends on: {', '.join(target.dependencies)})"
            description += f" [{len(target.commands)} commands]"

            tools.append(
                Tool(
                    name=name,
                    description=description,
                    inputSchema={
                        "type": "object",
                        "properties": {
                            "variables": {
                                "type": "object",
                                "description": "Environment variables for the commands (e.g., {'DEBUG': '1'})",
                            },
                            "timeout": {
                                "type": "integer",
                                "description": "Per-command timeout in seconds (default: no timeout)",
                                "minimum": 1,
                            },
                        },
                    },
                )
            )

        logger.info(f"Exposing {len(tools)} targets as MCP tools")
        return tools

    async def _notify_progress(self, token: str, progress: int) -> None:
        try:
            await self.server.request_context.session.send_progress_notification(
                progress_token=token,
                progress=progress,
                total=1,
            )
        except Exception:
            logger.debug("Could not send progress notification (client may not support it)")

    async def _handle_call_tool(self, name: str, arguments: dict) -> list[TextContent]:
        """Run a target and everything it depends on."""
        try:
            if not self.makefile or not self.graph or name not in self.graph:
                raise TargetNotFoundError(name)

            if not self._is_exposed(name):
                allowed = ", ".join(sorted(self.allowed_targets or ()))
                raise ValueError(f"Target '{name}' is not in the allowlist. Allowed targets: {allowed}")
        except (TargetNotFoundError, ValueError) as e:
            logger.warning(f"Tool call rejected: {e}")
            return [TextContent(type="text", text=f"Error: {e}")]

        executor = TargetExecutor(
            self.graph,
            self.makefile.targets,
            runner=self.runner,
            cwd=self.makefile_path.parent,
            timeout=arguments.get("timeout", self.timeout),
            env=dict(arguments.get("variables") or {}),
        )

        progress_token = str(uuid.uuid4())
        await self._notify_progress(progress_token, 0)

        status = "succeeded"
        try:
            await executor.execute(name)
        except ExecutionError as e:
            logger.error(str(e))
            status = f"failed: {e}"
        except Exception as e:
            logger.exception(f"Execution failed for target '{name}'")
            await self._notify_progress(progress_token, 1)
            return [TextContent(type="text", text=f"Execution failed: {e}. Check server logs for details.")]

        await self._notify_progress(progress_token, 1)

        body = format_runs(executor.history)
        if self.max_output_chars > 0 and len(body) > self.max_output_chars:
            omitted = len(body) - self.max_output_chars
            body = body[: self.max_output_chars] + f"\n\n... (truncated, {omitted} chars omitted)\n"

        return [TextContent(type="text", text=f"Target: {name}\nStatus: {status}\n\n{body}")]

    async def run(self) -> None:
        """Run the MCP server with stdio transport."""
        from mcp.server.stdio import stdio_server

        await self.initialize()

        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )
