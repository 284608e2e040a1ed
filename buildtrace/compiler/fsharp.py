"""F# (fsc) command-line tokenizer.

WHY: The F# compiler task logs its command line one argument per line,
with only the first line holding the host and executable (and sometimes
a few leading arguments). Source paths on later lines may contain
unquoted spaces, so only the first line is split on whitespace.

HOW: Split into lines, trim, drop blanks. Scan the first line with the
shared quote/escape primitive, splitting on whitespace outside quotes,
and skip tokens up to the one naming fsc.dll / fsc.exe. Every later line
becomes exactly one token with quotes and escapes removed.

RULES:
- No fsc.dll / fsc.exe token on the first line → UnparsableCommandLine
- Switches use ``--`` or ``-`` (``--define:DEBUG``, ``-r:lib.dll``)
- F# has no analyzer or additional-file switches
"""

from __future__ import annotations

from buildtrace.compiler.base import (
    WHITESPACE,
    CompilerFamily,
    CompilerLanguage,
    scan_quoting,
)
from buildtrace.errors import UnparsableCommandLine


def _scan(text: str, split_on_whitespace: bool) -> list[str]:
    tokens: list[str] = []
    current = ""
    in_quote = False
    index = 0
    while index < len(text):
        quoted = scan_quoting(text, index, in_quote)
        if quoted is not None:
            literal, index, in_quote = quoted
            current += literal
            continue
        ch = text[index]
        index += 1
        if split_on_whitespace and ch in WHITESPACE and not in_quote:
            if current:
                tokens.append(current)
                current = ""
            continue
        current += ch
    if current:
        tokens.append(current)
    return tokens


class FSharpCompiler(CompilerFamily):
    """The ``Fsc`` task and fsc.dll / fsc.exe."""

    language = CompilerLanguage.FSHARP
    task_name = "Fsc"
    executable_stem = "fsc"
    switch_prefixes = ("--", "-")
    command_line_in_messages = True
    # One argument per line, so a trailing backslash always ends its line
    canonical_separator = "\n"

    def tokenize(self, command_line: str) -> list[str]:
        lines = [line.strip() for line in command_line.splitlines()]
        lines = [line for line in lines if line]
        if not lines:
            raise UnparsableCommandLine(command_line, self.executable_stem + ".")

        head = _scan(lines[0], split_on_whitespace=True)
        for position, token in enumerate(head):
            if self.is_compiler_executable(token):
                break
        else:
            raise UnparsableCommandLine(command_line, self.executable_stem + ".")

        tokens = head[position:]
        for line in lines[1:]:
            tokens.extend(_scan(line, split_on_whitespace=False))
        return tokens
