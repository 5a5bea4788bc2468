"""hmake - run Makefile targets in dependency order."""

from hmake.core.executor import CommandRunner, DryRunCommandRunner, ShellCommandRunner, TargetExecutor
from hmake.core.graph import DependencyGraph, build_graph
from hmake.core.models import ExecutionResult, Makefile, Target, TargetRun
from hmake.core.parser import LineMakefileParser, MakefileParser
from hmake.exceptions import (
    CycleDetectedError,
    DependencyNotFoundError,
    ExecutionError,
    HMakeError,
    MakefileNotFoundError,
    MakefileParseError,
    TargetNotFoundError,
)
from hmake.server import HMakeMCPServer, setup_logging

__version__ = "0.1.0"

__all__ = [
    "Target",
    "Makefile",
    "ExecutionResult",
    "TargetRun",
    "MakefileParser",
    "LineMakefileParser",
    "DependencyGraph",
    "build_graph",
    "CommandRunner",
    "ShellCommandRunner",
    "DryRunCommandRunner",
    "TargetExecutor",
    "HMakeMCPServer",
    "setup_logging",
    "HMakeError",
    "MakefileNotFoundError",
    "MakefileParseError",
    "TargetNotFoundError",
    "DependencyNotFoundError",
    "CycleDetectedError",
    "ExecutionError",
]
