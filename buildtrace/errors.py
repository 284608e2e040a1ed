"""Exception types raised while correlating build events.

WHY: Callers need to tell a broken event stream apart from a single
compiler invocation that could not be understood. The first ends the
session, the second only blanks out one result's compiler-derived fields.

HOW: A small hierarchy rooted at BuildTraceError. Build failures are not
exceptions at all: they are recorded as data on the results.

RULES:
- StructuralViolation is fatal to the rest of a session's stream
- UnparsableCommandLine is scoped to one invocation
- An unresolved target framework is never raised
"""

from __future__ import annotations


class BuildTraceError(Exception):
    """Base class for all buildtrace errors."""


class StructuralViolation(BuildTraceError):
    """Raised when the event stream breaks its own nesting rules.

    WHY: Target and project events must nest. A TargetFinished that does
    not match the innermost TargetStarted means every later correlation
    would be wrong, so processing of the session stops.

    HOW: Raised by the event processor with the offending project path
    and the expected/actual names for diagnostics.

    RULES:
    - Results captured before the violation remain valid and queryable
    """

    def __init__(
        self,
        message: str,
        project_path: str | None = None,
        expected: str | None = None,
        actual: str | None = None,
    ) -> None:
        self.project_path = project_path
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class UnparsableCommandLine(BuildTraceError):
    """Raised when a command line has no recognizable compiler executable."""

    def __init__(self, command_line: str, marker: str) -> None:
        self.command_line = command_line
        self.marker = marker
        super().__init__(
            "Command line could not be parsed: no '{}' executable found".format(marker)
        )
