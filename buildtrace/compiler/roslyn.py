"""Roslyn-style (C# and Visual Basic) command-line tokenizer.

WHY: MSBuild logs the Csc/Vbc invocation as one string. The executable
path comes first and frequently contains unquoted spaces
(``C:\\Program Files\\dotnet\\dotnet.exe exec ...\\csc.dll``), so a plain
whitespace split would shred it.

HOW: A single left-to-right scan with an accumulator and an in-quote flag.
While the initial token is being read, whitespace is literal until the
accumulated text ends with the executable stem followed by a dot
(``csc.`` / ``vbc.``, case-insensitive). After that point whitespace
outside quotes separates tokens.

RULES:
- Leading whitespace before the first character is skipped
- No executable marker anywhere → UnparsableCommandLine
- Empty accumulators are never emitted as tokens
- ``/name:value`` where ``name`` contains another ``/`` is a Unix path,
  not a switch
"""

from __future__ import annotations

from buildtrace.compiler.base import (
    WHITESPACE,
    CompilerFamily,
    CompilerLanguage,
    scan_quoting,
)
from buildtrace.errors import UnparsableCommandLine


class RoslynFamily(CompilerFamily):
    """Shared tokenizer for compilers built on the Roslyn command-line parser."""

    switch_prefixes = ("/",)
    analyzer_switches = ("analyzer", "a")
    additional_file_switches = ("additionalfile",)

    @property
    def marker(self) -> str:
        return self.executable_stem.lower() + "."

    def tokenize(self, command_line: str) -> list[str]:
        marker = self.marker
        tokens: list[str] = []
        current = ""
        in_quote = False
        initial = True
        index = 0
        length = len(command_line)

        while index < length:
            quoted = scan_quoting(command_line, index, in_quote)
            if quoted is not None:
                literal, index, in_quote = quoted
                current += literal
            else:
                ch = command_line[index]
                index += 1
                if ch in WHITESPACE and not in_quote:
                    if initial:
                        # Leading whitespace is dropped, inner whitespace kept
                        if current:
                            current += ch
                        continue
                    if current:
                        tokens.append(current)
                        current = ""
                    continue
                current += ch

            if initial and current[-len(marker):].lower() == marker:
                initial = False

        if initial:
            raise UnparsableCommandLine(command_line, marker)
        if current:
            tokens.append(current)
        return tokens

    def _is_switch_name(self, prefix: str, name: str) -> bool:
        return bool(name) and "/" not in name


class CSharpCompiler(RoslynFamily):
    """The ``Csc`` task and csc.dll / csc.exe."""

    language = CompilerLanguage.CSHARP
    task_name = "Csc"
    executable_stem = "csc"


class VisualBasicCompiler(RoslynFamily):
    """The ``Vbc`` task and vbc.dll / vbc.exe.

    VB defines are ``NAME=value`` pairs; only the names are symbols.
    """

    language = CompilerLanguage.VISUAL_BASIC
    task_name = "Vbc"
    executable_stem = "vbc"

    def split_symbols(self, value: str) -> list[str]:
        names = []
        for symbol in super().split_symbols(value):
            name = symbol.split("=", 1)[0].strip()
            if name:
                names.append(name)
        return names
