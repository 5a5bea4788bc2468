#!/usr/bin/env python3
"""Entry point for hmake."""

import argparse
import asyncio
import sys
from pathlib import Path

from hmake.config import load_settings
from hmake.core.executor import DryRunCommandRunner, ShellCommandRunner, TargetExecutor
from hmake.core.graph import build_graph
from hmake.core.models import ExecutionResult
from hmake.core.parser import LineMakefileParser
from hmake.exceptions import HMakeError
from hmake.server import HMakeMCPServer, setup_logging

SUBCOMMANDS = ["run", "list", "serve"]


def print_target(name: str) -> None:
    print(f"running commands for target: {name}")


def print_result(name: str, result: ExecutionResult) -> None:
    print(f"    {result.command}")
    if result.stdout:
        print(result.stdout, end="" if result.stdout.endswith("\n") else "\n")
    if result.stderr:
        print(result.stderr, end="" if result.stderr.endswith("\n") else "\n", file=sys.stderr)


def cmd_run(args):
    """Parse the Makefile, build the graph and run the requested targets."""
    settings = load_settings(
        makefile=args.makefile,
        log_level="DEBUG" if args.debug else None,
        timeout=args.timeout,
    )
    setup_logging(settings.log_level)

    makefile = LineMakefileParser().parse(settings.makefile)
    graph = build_graph(makefile.targets)

    executor = TargetExecutor(
        graph,
        makefile.targets,
        runner=DryRunCommandRunner() if args.dry_run else ShellCommandRunner(),
        timeout=settings.timeout,
        on_target=print_target,
        on_result=print_result,
    )
    asyncio.run(executor.run(args.targets))


def cmd_list(args):
    """List targets with their dependencies."""
    settings = load_settings(makefile=args.makefile)
    setup_logging(settings.log_level)

    makefile = LineMakefileParser().parse(settings.makefile)
    graph = build_graph(makefile.targets)

    print(f"Makefile: {settings.makefile}")
    print(f"Targets: {len(graph)}")
    print(f"Documented: {len(makefile.get_documented_targets())}")
    print(f"Variables: {len(makefile.variables)}")
    print()

    for name in sorted(graph):
        target = makefile.targets[name]
        deps = f" → depends on: {', '.join(graph.dependencies_of(name))}" if target.dependencies else ""
        print(f"  {name}{deps}")
        if target.description:
            print(f"    {target.description}")


def cmd_serve(args):
    """Run the MCP server."""
    settings = load_settings(
        makefile=args.makefile,
        log_level=args.log_level,
        allowed_targets=args.allowed_targets,
    )
    setup_logging(settings.log_level)

    server = HMakeMCPServer(
        makefile_path=settings.makefile,
        allowed_targets=settings.allowed_targets,
        timeout=settings.timeout,
    )

    asyncio.run(server.run())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hmake",
        description="Run Makefile targets in dependency order",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Build the 'build' target and everything it depends on
  hmake build

  # Show what would run without running it
  hmake -n build

  # List targets and their dependencies
  hmake list

  # Expose targets as MCP tools
  hmake serve -f ./Makefile --allowed-targets build test
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    makefile_args = argparse.ArgumentParser(add_help=False)
    makefile_args.add_argument(
        "-f",
        "--file",
        dest="makefile",
        type=Path,
        default=None,
        help="Path to Makefile (default: $HMAKE_MAKEFILE or ./Makefile)",
    )

    run_parser = subparsers.add_parser("run", parents=[makefile_args], help="Run targets (default)")
    run_parser.add_argument("-d", "--debug", action="store_true", help="Enable debug logging")
    run_parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Print commands without running them",
    )
    run_parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        help="Per-command timeout in seconds (default: $HMAKE_TIMEOUT, otherwise none)",
    )
    run_parser.add_argument("targets", nargs="*", help="Targets to run")
    run_parser.set_defaults(func=cmd_run)

    list_parser = subparsers.add_parser("list", parents=[makefile_args], help="List targets")
    list_parser.set_defaults(func=cmd_list)

    serve_parser = subparsers.add_parser("serve", parents=[makefile_args], help="Run MCP server")
    serve_parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: $HMAKE_LOG_LEVEL or WARNING)",
    )
    serve_parser.add_argument(
        "--allowed-targets",
        nargs="+",
        help="Allowlist of targets to expose (default: all)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    return parser


def main(argv: list[str] | None = None):
    """Main entry point with subcommands."""
    argv = list(sys.argv[1:] if argv is None else argv)

    # Plain "hmake [flags] targets..." means "hmake run ..."
    if not argv or argv[0] not in SUBCOMMANDS + ["-h", "--help"]:
        argv.insert(0, "run")

    args = build_parser().parse_args(argv)

    try:
        args.func(args)
    except (HMakeError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
