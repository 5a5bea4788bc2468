"""Data models for Makefile parsing and execution."""

from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

PHONY = ".PHONY"


@dataclass
class Target:
    """A named unit of work: dependencies plus the commands that produce it."""

    name: str
    dependencies: list[str] = field(default_factory=list)
    commands: list[str] = field(default_factory=list)
    description: str | None = None  # From a trailing "## text" help comment

    @property
    def is_phony(self) -> bool:
        return self.name == PHONY

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "dependencies": list(self.dependencies),
            "commands": list(self.commands),
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Target":
        """Deserialize from dictionary."""
        return cls(
            name=data["name"],
            dependencies=data.get("dependencies", []),
            commands=data.get("commands", []),
            description=data.get("description"),
        )


@dataclass
class Makefile:
    """A parsed Makefile: its targets and raw variable assignments."""

    path: Path
    targets: dict[str, Target] = field(default_factory=dict)
    variables: dict[str, str] = field(default_factory=dict)

    def get_target(self, name: str) -> Target | None:
        """Get target by name."""
        return self.targets.get(name)

    def get_documented_targets(self) -> dict[str, Target]:
        """Get targets that carry a "## description" comment."""
        return {name: target for name, target in self.targets.items() if target.description}


@dataclass
class ExecutionResult:
    """Result of running a single command."""

    success: bool
    exit_code: int
    stdout: str
    stderr: str
    duration: float
    command: str
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "success": self.success,
            "exit_code": self.exit_code,
            "stdout": self.stdout,
            "stderr": self.stderr,
            "duration": self.duration,
            "command": self.command,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TargetRun:
    """One step of an execution plan: a target and the results of its commands."""

    target: str
    results: list[ExecutionResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)
