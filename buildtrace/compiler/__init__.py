"""Compiler family registry: task name to tokenizer strategy.

WHY: The event processor sees a task name ("Csc", "Vbc", "Fsc") and
needs the matching tokenizer. A central dict keeps that lookup in one
place: adding a compiler is a new family class plus one line here.

HOW: COMPILERS maps lowercase task names to family *instances*; the
families are stateless, so one instance is shared by every session.

RULES:
- Keys are lowercase task names; lookups go through find_compiler()
- Every family listed here must be importable without side effects
"""

from __future__ import annotations

from buildtrace.compiler.base import (
    Argument,
    CompilerCommand,
    CompilerFamily,
    CompilerLanguage,
)
from buildtrace.compiler.fsharp import FSharpCompiler
from buildtrace.compiler.roslyn import CSharpCompiler, VisualBasicCompiler

COMPILERS: dict[str, CompilerFamily] = {
    "csc": CSharpCompiler(),
    "vbc": VisualBasicCompiler(),
    "fsc": FSharpCompiler(),
}

_BY_LANGUAGE: dict[CompilerLanguage, CompilerFamily] = {
    family.language: family for family in COMPILERS.values()
}


def find_compiler(task_name: str | None) -> CompilerFamily | None:
    """Return the family for a task name, or None if it is not a compiler."""
    if not task_name:
        return None
    return COMPILERS.get(task_name.lower())


def family_for(language: CompilerLanguage) -> CompilerFamily:
    return _BY_LANGUAGE[CompilerLanguage(language)]


def parse_command_line(command_line: str, language: CompilerLanguage | str) -> CompilerCommand:
    """Tokenize and classify a raw compiler command line.

    Raises:
        UnparsableCommandLine: If the family's executable marker is missing.
    """
    return family_for(CompilerLanguage(language)).parse(command_line)


__all__ = [
    "Argument",
    "COMPILERS",
    "CompilerCommand",
    "CompilerFamily",
    "CompilerLanguage",
    "find_compiler",
    "family_for",
    "parse_command_line",
]
