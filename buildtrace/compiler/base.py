"""Compiler families, the shared quote/escape primitive, and CompilerCommand.

WHY: C#, VB and F# compilers all log a raw command line, but they differ
in how the first (executable) token is found and which switch prefix they
use. Every family must still agree on quoting and escaping so that a
value like ``/reference:Data1="C:\\x\\System.Data.dll"`` comes out the same
everywhere. This module holds what the families share and the abstract
interface they implement.

HOW: ``scan_quoting`` is the only lexical primitive shared between the
tokenizer strategies. ``CompilerFamily`` is an ABC with one abstract
method, ``tokenize``; classification of the tokens that follow the
executable is common code driven by per-family class attributes.
``CompilerCommand`` is the frozen result handed to the result aggregate.

RULES:
- ``\\"`` yields a literal quote; ``\\`` before anything else is kept verbatim
  together with the following character
- A bare ``"`` toggles quoting and never appears in output
- Switch names are case-insensitive for lookups, but kept as written
- Alias-style values (``Name=Path``) are never split
"""

from __future__ import annotations

import enum
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import NamedTuple, Optional

WHITESPACE = frozenset(" \t\n\v\f\r")

_SYMBOL_SEPARATORS = re.compile(r"[;,]")


class CompilerLanguage(str, enum.Enum):
    """Languages whose compiler invocations can be parsed."""

    CSHARP = "csharp"
    VISUAL_BASIC = "visualbasic"
    FSHARP = "fsharp"


class Argument(NamedTuple):
    """One classified command-line argument.

    ``name`` is None for positional arguments; ``value`` is None for bare
    switches such as ``/noconfig``.
    """

    name: Optional[str]
    value: Optional[str]

    @property
    def is_switch(self) -> bool:
        return self.name is not None


def scan_quoting(text: str, index: int, in_quote: bool) -> tuple[str, int, bool] | None:
    """Consume a quote or escape sequence at ``text[index]``.

    Returns ``(literal, next_index, in_quote)`` when the character at
    ``index`` is a backslash or a double quote, or None for any other
    character so the caller can apply its own whitespace rules.
    """
    ch = text[index]
    if ch == "\\":
        if index + 1 < len(text):
            following = text[index + 1]
            if following == '"':
                return '"', index + 2, in_quote
            return ch + following, index + 2, in_quote
        return ch, index + 1, in_quote
    if ch == '"':
        return "", index + 1, not in_quote
    return None


def quote_token(token: str) -> str:
    """Render one token so that re-tokenizing yields it again.

    A trailing run of backslashes stays outside the closing quote, where
    it cannot turn the quote into a literal. An odd run still has to end
    the line, which the families guarantee for the tokens they produce.
    """
    body = token.rstrip("\\")
    tail = token[len(body):]
    escaped = body.replace('"', '\\"')
    if any(ch in WHITESPACE for ch in body):
        return '"{}"{}'.format(escaped, tail)
    return escaped + tail


@dataclass(frozen=True)
class CompilerCommand:
    """A parsed compiler invocation.

    WHY: The aggregate needs source files, references and switches, but
    callers also want the raw text and the executable location to re-run
    or display the command.

    RULES:
    - tokens[0] is the executable location; arguments classify tokens[1:]
    - Derived views delegate to the family so switch aliases stay in one place
    """

    language: CompilerLanguage
    text: str
    location: str
    tokens: tuple[str, ...]
    arguments: tuple[Argument, ...]
    family: "CompilerFamily"

    @property
    def argument_tokens(self) -> tuple[str, ...]:
        return self.tokens[1:]

    def switch_values(self, *names: str) -> list[str]:
        """Values of every switch whose name matches one of ``names``."""
        wanted = {n.lower() for n in names}
        return [
            arg.value
            for arg in self.arguments
            if arg.name is not None and arg.name.lower() in wanted and arg.value is not None
        ]

    def has_switch(self, name: str) -> bool:
        lowered = name.lower()
        return any(arg.name is not None and arg.name.lower() == lowered for arg in self.arguments)

    @property
    def positional(self) -> list[str]:
        return [arg.value for arg in self.arguments if arg.name is None and arg.value is not None]

    @property
    def source_files(self) -> list[str]:
        """Positional arguments, minus any stray compiler executable."""
        return [v for v in self.positional if not self.family.is_compiler_executable(v)]

    @property
    def references(self) -> list[str]:
        return self.switch_values(*self.family.reference_switches)

    @property
    def analyzer_references(self) -> list[str]:
        return self.switch_values(*self.family.analyzer_switches)

    @property
    def additional_files(self) -> list[str]:
        return self.switch_values(*self.family.additional_file_switches)

    @property
    def preprocessor_symbols(self) -> list[str]:
        symbols: list[str] = []
        for value in self.switch_values(*self.family.define_switches):
            symbols.extend(self.family.split_symbols(value))
        return symbols

    def canonical(self) -> str:
        """Re-emit the tokens in the family's layout, quoting as needed."""
        return self.family.canonical_separator.join(quote_token(t) for t in self.tokens)

    def __str__(self) -> str:
        return self.text


class CompilerFamily(ABC):
    """Abstract tokenizer strategy for one compiler family.

    To add a compiler:
    1. Subclass CompilerFamily (or RoslynFamily for Roslyn-style command lines)
    2. Set language, task_name, executable_stem and the switch tables
    3. Implement tokenize()
    4. Register it in COMPILERS in compiler/__init__.py
    """

    language: CompilerLanguage
    task_name: str
    executable_stem: str
    switch_prefixes: tuple[str, ...] = ("/",)

    reference_switches: tuple[str, ...] = ("reference", "r")
    analyzer_switches: tuple[str, ...] = ()
    define_switches: tuple[str, ...] = ("define", "d")
    additional_file_switches: tuple[str, ...] = ()

    # The task reports its command line as a plain message
    command_line_in_messages = False
    canonical_separator = " "

    @property
    def executable_names(self) -> tuple[str, ...]:
        return (self.executable_stem + ".dll", self.executable_stem + ".exe")

    def is_compiler_executable(self, token: str) -> bool:
        return token.lower().endswith(self.executable_names)

    @abstractmethod
    def tokenize(self, command_line: str) -> list[str]:
        """Split a raw command line into tokens, executable first.

        Raises:
            UnparsableCommandLine: If no executable marker is found.
        """

    def split_switch(self, token: str) -> Argument:
        """Classify a single token as a switch or a positional argument."""
        for prefix in self.switch_prefixes:
            if token.startswith(prefix) and len(token) > len(prefix):
                body = token[len(prefix):]
                name, sep, value = body.partition(":")
                if not self._is_switch_name(prefix, name):
                    break
                return Argument(name, value if sep else None)
        return Argument(None, token)

    def _is_switch_name(self, prefix: str, name: str) -> bool:
        return bool(name)

    def classify(self, tokens: list[str]) -> list[Argument]:
        return [self.split_switch(token) for token in tokens]

    def split_symbols(self, value: str) -> list[str]:
        return [s.strip() for s in _SYMBOL_SEPARATORS.split(value) if s.strip()]

    def parse(self, command_line: str) -> CompilerCommand:
        """Tokenize and classify a command line."""
        tokens = self.tokenize(command_line)
        return CompilerCommand(
            language=self.language,
            text=command_line,
            location=tokens[0],
            tokens=tuple(tokens),
            arguments=tuple(self.classify(tokens[1:])),
            family=self,
        )
