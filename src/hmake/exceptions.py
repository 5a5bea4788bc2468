"""Custom exceptions for hmake."""


class HMakeError(Exception):
    """Base exception for all hmake errors."""

    pass


class MakefileNotFoundError(HMakeError):
    """Makefile not found at specified path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Makefile not found: {path}")


class MakefileParseError(HMakeError):
    """Makefile could not be opened or read."""

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"Failed to parse {path}: {message}")


class TargetNotFoundError(HMakeError):
    """Requested target is not declared in the Makefile."""

    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"Target not found: {target}")


class DependencyNotFoundError(HMakeError):
    """A target depends on a name that is not a vertex of the graph."""

    def __init__(self, target: str, dependency: str) -> None:
        self.target = target
        self.dependency = dependency
        super().__init__(f"Target '{target}' depends on '{dependency}' which is not a declared target")


class CycleDetectedError(HMakeError):
    """Adding a dependency edge would create a cycle."""

    def __init__(self, cycle: list[str]) -> None:
        self.cycle = cycle
        super().__init__(f"Dependency cycle detected: {' -> '.join(cycle)}")


class ExecutionError(HMakeError):
    """A command of a target failed."""

    def __init__(self, target: str, command: str, exit_code: int, stderr: str) -> None:
        self.target = target
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        super().__init__(f"Target '{target}' failed with exit code {exit_code}: {command}")
