"""Makefile parsing functionality."""

import logging
import os
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

from hmake.config import DEFAULT_MAKEFILE
from hmake.core.models import Makefile, Target
from hmake.exceptions import MakefileNotFoundError, MakefileParseError

logger = logging.getLogger(__name__)


class MakefileParser(ABC):
    """Abstract base class for Makefile parsing."""

    @abstractmethod
    def parse(self, makefile_path: Path) -> Makefile:
        """Parse Makefile and return its definitions."""
        pass

    @abstractmethod
    def parse_lines(self, lines: Iterable[str], path: Path | None = None) -> Makefile:
        """Parse Makefile from an iterable of text lines."""
        pass

    def parse_string(self, content: str, path: Path | None = None) -> Makefile:
        """Parse Makefile from string content."""
        return self.parse_lines(content.split("\n"), path)


class LineMakefileParser(MakefileParser):
    """Classify a Makefile line by line.

    Every line is one of: blank or comment (skipped), command (leading tab),
    variable assignment (``NAME = value``) or target header
    (``name: dep1 dep2 ## description``). Nothing here ever rejects a line;
    text that fits no other rule is read as a target header.
    """

    # Pattern for variable assignments: NAME = value
    VARIABLE_PATTERN = re.compile(r"^(\w+)\s*=\s*(.*)$", re.ASCII)

    # Pattern for help comments after the dependency list: ## description
    DESCRIPTION_PATTERN = re.compile(r"##\s*(.*)$")

    def parse(self, makefile_path: Path) -> Makefile:
        """Parse Makefile from file."""
        if not makefile_path.exists():
            raise MakefileNotFoundError(str(makefile_path))

        if not makefile_path.is_file():
            raise MakefileParseError(str(makefile_path), f"Path is not a file: {makefile_path}")

        if not os.access(makefile_path, os.R_OK):
            raise MakefileParseError(str(makefile_path), f"File is not readable: {makefile_path}")

        try:
            # newline="" keeps a lone "\r" inside its line
            with makefile_path.open(encoding="utf-8", newline="") as f:
                return self.parse_string(f.read(), makefile_path)
        except UnicodeDecodeError as e:
            raise MakefileParseError(str(makefile_path), f"File is not valid UTF-8: {e}")
        except PermissionError as e:
            raise MakefileParseError(str(makefile_path), f"Permission denied reading file: {e}")
        except OSError as e:
            logger.exception("Failed to read Makefile")
            raise MakefileParseError(str(makefile_path), f"Failed to read file: {e}")

    def parse_lines(self, lines: Iterable[str], path: Path | None = None) -> Makefile:
        """Parse Makefile from text lines."""
        makefile = Makefile(path=path or DEFAULT_MAKEFILE)
        # The target currently open for commands. Redeclaring a name replaces
        # its record, so the last declaration wins.
        current: Target | None = None

        for lineno, raw in enumerate(lines, start=1):
            line = raw.rstrip("\r\n")

            if not line or line.startswith("#"):
                continue

            if line.startswith("\t"):
                if current is None:
                    logger.debug(f"Line {lineno}: dropping command outside of any target")
                    continue
                current.commands.append(line.strip())
                continue

            variable_match = self.VARIABLE_PATTERN.match(line)
            if variable_match:
                makefile.variables[variable_match.group(1)] = variable_match.group(2)
                continue

            target = self._parse_header(line)
            if target.name in makefile.targets:
                logger.debug(f"Line {lineno}: target '{target.name}' redeclared, replacing earlier definition")
            makefile.targets[target.name] = target

            # A header with an empty name is recorded but opens no target
            current = target if target.name else None
            if current is None:
                logger.debug(f"Line {lineno}: header has no target name")

        logger.info(
            f"Parsed Makefile {makefile.path}: {len(makefile.targets)} targets, {len(makefile.variables)} variables"
        )

        if not makefile.targets:
            logger.warning(f"No targets found in {makefile.path}")

        return makefile

    def _parse_header(self, line: str) -> Target:
        """Build a target record from a ``name: deps`` header line."""
        name, sep, rest = line.partition(":")
        name = name.strip()

        dependencies: list[str] = []
        description = None
        if sep:
            description_match = self.DESCRIPTION_PATTERN.search(rest)
            if description_match:
                description = description_match.group(1).strip() or None

            # Strip trailing comments from the dependency list
            deps, _, _ = rest.partition("#")
            dependencies = [dep.strip() for dep in deps.split(" ") if dep.strip()]

        return Target(name=name, dependencies=dependencies, description=description)
