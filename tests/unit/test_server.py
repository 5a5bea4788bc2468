"""Tests for MCP server."""

from pathlib import Path

import pytest

from hmake.core.executor import DryRunCommandRunner
from hmake.exceptions import CycleDetectedError, MakefileNotFoundError
from hmake.server import HMakeMCPServer

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


class TestHMakeMCPServer:
    """Tests for HMakeMCPServer."""

    @pytest.mark.anyio
    async def test_initialize_with_valid_makefile(self) -> None:
        """Server parses the Makefile and builds its graph."""
        server = HMakeMCPServer(FIXTURES_DIR / "hmake.mk")

        await server.initialize()

        assert server.makefile is not None
        assert server.graph is not None
        assert set(server.graph.vertices) == {"build", "init", "tidy", "help"}

    @pytest.mark.anyio
    async def test_initialize_with_missing_makefile(self) -> None:
        """Server fails with a missing Makefile."""
        server = HMakeMCPServer(Path("/nonexistent/Makefile"))

        with pytest.raises(MakefileNotFoundError):
            await server.initialize()

    @pytest.mark.anyio
    async def test_initialize_with_cycle(self) -> None:
        """A cyclic Makefile cannot be served."""
        server = HMakeMCPServer(FIXTURES_DIR / "cycle.mk")

        with pytest.raises(CycleDetectedError):
            await server.initialize()

    @pytest.mark.anyio
    async def test_initialize_rejects_unknown_allowed_targets(self) -> None:
        """Allowed targets must exist in the graph."""
        server = HMakeMCPServer(FIXTURES_DIR / "simple.mk", allowed_targets=["deploy"])

        with pytest.raises(ValueError, match="Allowed targets not found"):
            await server.initialize()

    @pytest.mark.anyio
    async def test_list_tools_excludes_phony(self) -> None:
        """Every graph vertex is a tool; .PHONY is not."""
        server = HMakeMCPServer(FIXTURES_DIR / "hmake.mk")
        await server.initialize()

        tools = await server._handle_list_tools()

        tool_names = [t.name for t in tools]
        assert set(tool_names) == {"build", "init", "tidy", "help"}

        build = next(t for t in tools if t.name == "build")
        assert build.description.startswith("Build hmake")
        assert "depends on: init" in build.description

    @pytest.mark.anyio
    async def test_list_tools_before_initialize(self) -> None:
        """No tools before the Makefile is parsed."""
        server = HMakeMCPServer(FIXTURES_DIR / "simple.mk")

        assert await server._handle_list_tools() == []

    @pytest.mark.anyio
    async def test_list_tools_respects_allowed_targets(self) -> None:
        """list_tools() respects allowed_targets filter."""
        server = HMakeMCPServer(FIXTURES_DIR / "simple.mk", allowed_targets=["build"])
        await server.initialize()

        tools = await server._handle_list_tools()

        assert [t.name for t in tools] == ["build"]

    @pytest.mark.anyio
    async def test_call_tool_runs_dependencies_first(self) -> None:
        """Calling a tool runs the target's dependencies before it."""
        runner = DryRunCommandRunner()
        server = HMakeMCPServer(FIXTURES_DIR / "simple.mk", runner=runner)
        await server.initialize()

        result = await server._handle_call_tool("build", {})

        assert runner.executed_commands == ["echo initializing", "echo building"]
        text = result[0].text
        assert "Target: build" in text
        assert "Status: succeeded" in text
        assert text.index("running commands for target: init") < text.index("running commands for target: build")

    @pytest.mark.anyio
    async def test_call_tool_unknown_target(self) -> None:
        """Unknown targets return an error without running anything."""
        runner = DryRunCommandRunner()
        server = HMakeMCPServer(FIXTURES_DIR / "simple.mk", runner=runner)
        await server.initialize()

        result = await server._handle_call_tool("deploy", {})

        assert result[0].text.startswith("Error:")
        assert "deploy" in result[0].text
        assert runner.executed_commands == []

    @pytest.mark.anyio
    async def test_call_tool_not_allowed(self) -> None:
        """Targets outside the allowlist are refused."""
        runner = DryRunCommandRunner()
        server = HMakeMCPServer(FIXTURES_DIR / "simple.mk", runner=runner, allowed_targets=["init"])
        await server.initialize()

        result = await server._handle_call_tool("build", {})

        assert "not in the allowlist" in result[0].text
        assert runner.executed_commands == []

    @pytest.mark.anyio
    async def test_call_tool_reports_failure(self) -> None:
        """A failing command is reported in the result."""
        runner = DryRunCommandRunner(mock_success=False)
        server = HMakeMCPServer(FIXTURES_DIR / "simple.mk", runner=runner)
        await server.initialize()

        result = await server._handle_call_tool("build", {})

        text = result[0].text
        assert "Status: failed" in text
        assert "echo initializing" in text
        assert runner.executed_commands == ["echo initializing"]

    @pytest.mark.anyio
    async def test_call_tool_truncates_output(self) -> None:
        """Output longer than max_output_chars is truncated."""
        runner = DryRunCommandRunner(mock_output="x" * 500)
        server = HMakeMCPServer(FIXTURES_DIR / "simple.mk", runner=runner, max_output_chars=100)
        await server.initialize()

        result = await server._handle_call_tool("build", {})

        assert "truncated" in result[0].text
        assert "x" * 500 not in result[0].text
