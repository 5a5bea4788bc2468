"""Command execution for targets."""

import asyncio
import logging
import os
import signal
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from pathlib import Path

from hmake.config import DEFAULT_TIMEOUT
from hmake.core.graph import DependencyGraph
from hmake.core.models import ExecutionResult, Target, TargetRun
from hmake.exceptions import ExecutionError, TargetNotFoundError

logger = logging.getLogger(__name__)


class CommandRunner(ABC):
    """Abstract base class for running a single command line."""

    @abstractmethod
    async def run(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = DEFAULT_TIMEOUT,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run command and return result."""
        pass


class ShellCommandRunner(CommandRunner):
    """Run commands through the system shell."""

    async def run(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = DEFAULT_TIMEOUT,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Run command."""
        if timeout is not None and timeout <= 0:
            raise ValueError(f"Timeout must be positive, got: {timeout}")

        if timeout is not None and timeout > 3600:  # 1 hour max
            logger.warning(f"Very long timeout specified: {timeout}s (max recommended: 3600s)")

        if cwd is not None:
            if not cwd.exists():
                raise FileNotFoundError(f"Working directory does not exist: {cwd}")
            if not cwd.is_dir():
                raise ValueError(f"Working directory is not a directory: {cwd}")

        proc_env = os.environ.copy()
        if env:
            proc_env.update(env)

        logger.info(f"Running: {command}")

        start_time = time.time()
        process = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=cwd,
            env=proc_env,
            start_new_session=True,  # Own process group so children die with it
        )

        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            duration = time.time() - start_time
            logger.error(f"Command timed out after {timeout}s: {command}")
            await self._kill(process)
            return ExecutionResult(
                success=False,
                exit_code=-1,
                stdout="",
                stderr=f"Execution timed out after {timeout} seconds",
                duration=duration,
                command=command,
            )
        except asyncio.CancelledError:
            logger.info(f"Command cancelled, killing process: {command}")
            await self._kill(process)
            raise

        duration = time.time() - start_time
        exit_code = process.returncode or 0
        logger.debug(f"Command finished in {duration:.2f}s with exit code {exit_code}")

        return ExecutionResult(
            success=exit_code == 0,
            exit_code=exit_code,
            stdout=stdout_bytes.decode("utf-8", errors="replace"),
            stderr=stderr_bytes.decode("utf-8", errors="replace"),
            duration=duration,
            command=command,
        )

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        """Kill the process group of a running command."""
        try:
            os.killpg(process.pid, signal.SIGKILL)
            await asyncio.wait_for(process.wait(), timeout=5.0)
        except asyncio.TimeoutError:
            logger.warning("Process did not terminate within 5s after SIGKILL (may have orphaned children)")
        except ProcessLookupError:
            # Process already terminated
            pass


class DryRunCommandRunner(CommandRunner):
    """Record commands without running them."""

    def __init__(self, mock_success: bool = True, mock_output: str = "") -> None:
        self.mock_success = mock_success
        self.mock_output = mock_output
        self.executed_commands: list[str] = []

    async def run(
        self,
        command: str,
        cwd: Path | None = None,
        timeout: int | None = DEFAULT_TIMEOUT,
        env: dict[str, str] | None = None,
    ) -> ExecutionResult:
        """Return mock result without running."""
        self.executed_commands.append(command)

        logger.debug(f"DryRun: Would run '{command}'")

        return ExecutionResult(
            success=self.mock_success,
            exit_code=0 if self.mock_success else 1,
            stdout=self.mock_output,
            stderr="" if self.mock_success else "Mock error",
            duration=0.0,
            command=command,
        )


TargetCallback = Callable[[str], None]
ResultCallback = Callable[[str, ExecutionResult], None]


class TargetExecutor:
    """Run requested targets and everything they depend on.

    The run order for a target is its depth-first pre-order traversal,
    reversed: dependencies are discovered after the targets naming them, so
    reversing puts them first. For diamond shaped graphs this is not a strict
    topological order, which is the behaviour hmake has always had.
    """

    def __init__(
        self,
        graph: DependencyGraph,
        targets: Mapping[str, Target],
        runner: CommandRunner | None = None,
        cwd: Path | None = None,
        timeout: int | None = DEFAULT_TIMEOUT,
        env: dict[str, str] | None = None,
        on_target: TargetCallback | None = None,
        on_result: ResultCallback | None = None,
    ) -> None:
        self.graph = graph
        self.targets = targets
        self.runner = runner or ShellCommandRunner()
        self.cwd = cwd
        self.timeout = timeout
        self.env = env
        self.on_target = on_target
        self.on_result = on_result
        self.history: list[TargetRun] = []

    def validate(self, names: list[str]) -> None:
        """Raise TargetNotFoundError for the first undeclared name."""
        for name in names:
            if name not in self.targets:
                raise TargetNotFoundError(name)

    def plan(self, name: str) -> list[str]:
        """Return the order in which targets run for ``name``."""
        if name not in self.targets:
            raise TargetNotFoundError(name)

        if not self.graph.has_vertex(name):
            # Declared but excluded from the graph (.PHONY)
            logger.warning(f"Target '{name}' is not part of the dependency graph, nothing to run")
            return []

        visited = self.graph.dfs(name)
        logger.debug(f"Traversal from '{name}': {' '.join(visited)}")
        return list(reversed(visited))

    async def execute(self, name: str) -> list[TargetRun]:
        """Run one requested target and its dependencies."""
        runs = []
        for step in self.plan(name):
            runs.append(await self._run_target(self.targets[step]))
        return runs

    async def run(self, names: list[str]) -> list[TargetRun]:
        """Run requested targets in order.

        All names are checked before anything runs. Shared dependencies run
        again for every requested target that reaches them.
        """
        self.validate(names)

        runs = []
        for name in names:
            logger.info(f"Target: {name}")
            runs.extend(await self.execute(name))
        return runs

    async def _run_target(self, target: Target) -> TargetRun:
        logger.info(f"Running commands for target: {target.name}")
        run = TargetRun(target=target.name)
        self.history.append(run)

        if self.on_target:
            self.on_target(target.name)

        for command in target.commands:
            result = await self.runner.run(command, cwd=self.cwd, timeout=self.timeout, env=self.env)
            run.results.append(result)

            if self.on_result:
                self.on_result(target.name, result)

            if not result.success:
                raise ExecutionError(target.name, command, result.exit_code, result.stderr)

        return run
