"""Selection of the authoritative compiler invocation for one result.

WHY: A design-time build may call the compiler more than once for the
same project: a throwaway probe outside any target, then the real call
inside CoreCompile. Only one of them describes the project.

HOW: Each AnalyzerResult owns an InvocationSelector. Every captured
command line is offered together with whether the emitting project was
inside CoreCompile at the time. The kept invocation is parsed eagerly;
a parse failure is stored on the invocation instead of being raised.

RULES:
- The first invocation observed is kept
- An invocation inside CoreCompile replaces a kept one that was not
- Once a parsed CoreCompile invocation is kept, later ones are ignored
- An unparsable invocation is replaced by any later one of equal or higher
  rank, and never replaces a parsed one
- Unparsable command lines never escape the selector
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from buildtrace.compiler.base import CompilerCommand, CompilerFamily
from buildtrace.errors import UnparsableCommandLine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Invocation:
    """One captured compiler call and the outcome of parsing it."""

    command_line: str
    family: CompilerFamily
    in_core_compile: bool
    command: CompilerCommand | None = None
    error: str | None = None

    @classmethod
    def capture(
        cls,
        command_line: str,
        family: CompilerFamily,
        in_core_compile: bool,
    ) -> Invocation:
        try:
            command = family.parse(command_line)
        except UnparsableCommandLine as exc:
            logger.warning("Ignoring unparsable %s command line: %s", family.task_name, exc)
            return cls(command_line, family, in_core_compile, error=str(exc))
        return cls(command_line, family, in_core_compile, command=command)


class InvocationSelector:
    """Keeps the authoritative invocation among those offered."""

    def __init__(self) -> None:
        self._selected: Invocation | None = None

    @property
    def selected(self) -> Invocation | None:
        return self._selected

    def accepts(self, in_core_compile: bool) -> bool:
        """Whether an invocation with this CoreCompile flag would be kept."""
        if self._selected is None:
            return True
        if self._selected.error is not None:
            return in_core_compile or not self._selected.in_core_compile
        return in_core_compile and not self._selected.in_core_compile

    def offer(
        self,
        command_line: str,
        family: CompilerFamily,
        in_core_compile: bool,
    ) -> bool:
        """Offer a captured command line. Returns True if it was kept."""
        if not command_line or not command_line.strip():
            return False
        if not self.accepts(in_core_compile):
            logger.debug(
                "Skipping %s invocation (core_compile=%s): already selected",
                family.task_name,
                in_core_compile,
            )
            return False
        candidate = Invocation.capture(command_line, family, in_core_compile)
        kept = self._selected
        if candidate.error is not None and kept is not None and kept.error is None:
            logger.debug("Keeping parsed %s invocation over an unparsable one", family.task_name)
            return False
        self._selected = candidate
        return True
