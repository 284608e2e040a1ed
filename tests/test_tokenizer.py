"""Unit tests for the compiler command-line tokenizers and classification.

WHY: Every source file, reference and define a caller sees comes out of
these tokenizers. One quoting mistake silently shifts every later
argument, so the quoting and marker rules are pinned down case by case.

HOW: Tests are organized by rule:
  - TestRoslynQuoting: quote and escape handling
  - TestRoslynExecutableMarker: initial token and marker detection
  - TestClassification: switch/positional splitting and derived views
  - TestVisualBasic: VB-specific define handling
  - TestFSharp: line-oriented F# strategy
  - TestCanonical: re-emitted text tokenizes to the same classification
  - TestRegistry: task-name lookup

RULES:
- Command lines are written as they appear in real build logs
- Raw strings are used wherever backslashes matter
"""

from __future__ import annotations

import pytest

from buildtrace.compiler import (
    Argument,
    CompilerLanguage,
    find_compiler,
    parse_command_line,
)
from buildtrace.compiler.fsharp import FSharpCompiler
from buildtrace.compiler.roslyn import CSharpCompiler, VisualBasicCompiler
from buildtrace.errors import UnparsableCommandLine

from tests.factories import CSC_NET8, CSC_PROBE, FSC_LINE


def _csc(command_line: str) -> list:
    return CSharpCompiler().tokenize(command_line)


# ---------------------------------------------------------------------------
# TestRoslynQuoting
# ---------------------------------------------------------------------------


class TestRoslynQuoting:
    """Quotes group, escaped quotes survive, other backslashes are literal."""

    def test_plain_tokens_split_on_whitespace(self):
        assert _csc("csc.exe a.cs b.cs") == ["csc.exe", "a.cs", "b.cs"]

    def test_quoted_token_keeps_spaces(self):
        assert _csc('csc.exe "My File.cs" b.cs') == ["csc.exe", "My File.cs", "b.cs"]

    def test_quotes_inside_value_are_removed(self):
        tokens = _csc(r'csc.exe /reference:Data1="C:\x\System.Data.dll"')
        assert tokens[1] == r"/reference:Data1=C:\x\System.Data.dll"

    def test_escaped_quote_is_literal(self):
        assert _csc(r'csc.exe "a\"b.cs"') == ["csc.exe", 'a"b.cs']

    def test_backslash_pair_is_kept_verbatim(self):
        assert _csc(r"csc.exe a\\b.cs") == ["csc.exe", r"a\\b.cs"]

    def test_trailing_backslash_is_kept(self):
        assert _csc("csc.exe dir\\") == ["csc.exe", "dir\\"]

    def test_all_whitespace_kinds_separate(self):
        assert _csc("csc.exe\ta.cs\r\nb.cs\vc.cs\fd.cs") == [
            "csc.exe",
            "a.cs",
            "b.cs",
            "c.cs",
            "d.cs",
        ]

    def test_empty_quotes_produce_no_token(self):
        assert _csc('csc.exe "" a.cs') == ["csc.exe", "a.cs"]

    def test_repeated_whitespace_produces_no_empty_tokens(self):
        assert _csc("csc.exe   a.cs    b.cs   ") == ["csc.exe", "a.cs", "b.cs"]


# ---------------------------------------------------------------------------
# TestRoslynExecutableMarker
# ---------------------------------------------------------------------------


class TestRoslynExecutableMarker:
    """The first token runs until the executable marker, spaces included."""

    def test_unquoted_spaces_in_executable_path(self):
        tokens = _csc(
            r'C:\Program Files\dotnet\dotnet.exe exec "C:\Program Files\dotnet\sdk\csc.dll" /noconfig'
        )
        assert tokens == [
            r"C:\Program Files\dotnet\dotnet.exe exec C:\Program Files\dotnet\sdk\csc.dll",
            "/noconfig",
        ]

    def test_leading_whitespace_is_skipped(self):
        assert _csc("   csc.exe a.cs") == ["csc.exe", "a.cs"]

    def test_marker_is_case_insensitive(self):
        assert _csc("C:\\Tools\\CSC.EXE a.cs") == ["C:\\Tools\\CSC.EXE", "a.cs"]

    def test_missing_marker_raises(self):
        with pytest.raises(UnparsableCommandLine) as exc_info:
            _csc("dotnet build a.cs")
        assert exc_info.value.marker == "csc."
        assert exc_info.value.command_line == "dotnet build a.cs"

    def test_vb_family_rejects_csharp_command_line(self):
        with pytest.raises(UnparsableCommandLine):
            VisualBasicCompiler().tokenize("csc.exe a.cs")

    def test_sdk_style_command_line(self):
        command = parse_command_line(CSC_NET8, CompilerLanguage.CSHARP)
        assert command.location == (
            "/usr/share/dotnet/dotnet exec "
            "/usr/share/dotnet/sdk/8.0.100/Roslyn/bincore/csc.dll"
        )
        assert command.argument_tokens[0] == "/noconfig"


# ---------------------------------------------------------------------------
# TestClassification
# ---------------------------------------------------------------------------


class TestClassification:
    """Switch tokens split at the first colon; everything else is positional."""

    def test_bare_switch_has_no_value(self):
        assert CSharpCompiler().split_switch("/noconfig") == Argument("noconfig", None)

    def test_switch_splits_at_first_colon_only(self):
        argument = CSharpCompiler().split_switch(r"/reference:C:\lib\a.dll")
        assert argument == Argument("reference", r"C:\lib\a.dll")

    def test_alias_value_is_preserved(self):
        argument = CSharpCompiler().split_switch("/reference:Alias=/lib/a.dll")
        assert argument == Argument("reference", "Alias=/lib/a.dll")

    def test_unix_absolute_path_is_positional(self):
        argument = CSharpCompiler().split_switch("/repo/src/App/Generated.cs")
        assert argument == Argument(None, "/repo/src/App/Generated.cs")
        assert not argument.is_switch

    def test_derived_views(self):
        command = parse_command_line(CSC_NET8, "csharp")
        assert command.references == [
            "/nuget/newtonsoft.json/13.0.3/Newtonsoft.Json.dll",
            "/repo/src/Lib/bin/Lib.dll",
        ]
        assert command.analyzer_references == ["/nuget/analyzers/Roslyn.Analyzer.dll"]
        assert command.additional_files == ["stylecop.json"]
        assert command.preprocessor_symbols == ["TRACE", "DEBUG", "NET8_0"]
        assert command.source_files == ["Program.cs", "Models/User.cs"]

    def test_short_aliases_and_case_insensitive_names(self):
        command = parse_command_line(
            "csc.exe /R:a.dll /a:an.dll /D:X,Y /Reference:b.dll c.cs", "csharp"
        )
        assert command.references == ["a.dll", "b.dll"]
        assert command.analyzer_references == ["an.dll"]
        assert command.preprocessor_symbols == ["X", "Y"]
        assert command.has_switch("REFERENCE")

    def test_stray_compiler_executable_is_not_a_source_file(self):
        command = parse_command_line("csc.exe a.cs /usr/lib/csc.dll", "csharp")
        assert command.positional == ["a.cs", "/usr/lib/csc.dll"]
        assert command.source_files == ["a.cs"]

    def test_text_is_kept(self):
        command = parse_command_line(CSC_NET8, "csharp")
        assert command.text == CSC_NET8
        assert str(command) == CSC_NET8


# ---------------------------------------------------------------------------
# TestVisualBasic
# ---------------------------------------------------------------------------


class TestVisualBasic:
    """VB defines carry values; only the names are symbols."""

    def test_define_values_are_dropped(self):
        command = VisualBasicCompiler().parse(
            'vbc.exe /define:"CONFIG=\\"Debug\\",DEBUG=-1,TRACE=-1" /reference:System.dll a.vb'
        )
        assert command.preprocessor_symbols == ["CONFIG", "DEBUG", "TRACE"]
        assert command.references == ["System.dll"]
        assert command.source_files == ["a.vb"]
        assert command.language is CompilerLanguage.VISUAL_BASIC


# ---------------------------------------------------------------------------
# TestFSharp
# ---------------------------------------------------------------------------


class TestFSharp:
    """One argument per line after the fsc executable."""

    def test_sample_command_line(self):
        command = FSharpCompiler().parse(FSC_LINE)
        assert command.location == "/usr/share/dotnet/sdk/8.0.100/FSharp/fsc.dll"
        assert command.references == ["/nuget/fsharp.core/8.0.0/FSharp.Core.dll"]
        assert command.preprocessor_symbols == ["TRACE", "DEBUG"]
        assert command.source_files == ["Library.fs", "Program.fs"]
        assert command.switch_values("o") == ["obj/Debug/net8.0/FsApp.dll"]
        assert command.has_switch("optimize-")

    def test_later_lines_keep_spaces(self):
        tokens = FSharpCompiler().tokenize("fsc.exe\nMy Source.fs")
        assert tokens == ["fsc.exe", "My Source.fs"]

    def test_later_lines_drop_quotes(self):
        tokens = FSharpCompiler().tokenize('fsc.exe\n"--doc:C:\\My Docs\\a.xml"')
        assert tokens == ["fsc.exe", "--doc:C:\\My Docs\\a.xml"]

    def test_tokens_before_executable_are_skipped(self):
        tokens = FSharpCompiler().tokenize("dotnet exec fsc.dll --noframework\nA.fs")
        assert tokens == ["fsc.dll", "--noframework", "A.fs"]

    def test_blank_lines_and_crlf(self):
        assert FSharpCompiler().tokenize("fsc.exe\r\n\r\n  A.fs  \r\n") == ["fsc.exe", "A.fs"]

    def test_missing_executable_raises(self):
        with pytest.raises(UnparsableCommandLine):
            FSharpCompiler().tokenize("dotnet build\nA.fs")

    def test_empty_command_line_raises(self):
        with pytest.raises(UnparsableCommandLine):
            FSharpCompiler().tokenize("  \n ")

    def test_double_dash_prefix_wins_over_single(self):
        assert FSharpCompiler().split_switch("--define:A") == Argument("define", "A")
        assert FSharpCompiler().split_switch("-r:a.dll") == Argument("r", "a.dll")


# ---------------------------------------------------------------------------
# TestCanonical
# ---------------------------------------------------------------------------


class TestCanonical:
    """canonical() re-tokenizes to the same tokens and arguments in every family."""

    @pytest.mark.parametrize(
        "family, command_line",
        [
            (CSharpCompiler(), CSC_NET8),
            (CSharpCompiler(), CSC_PROBE),
            (CSharpCompiler(), 'csc.exe "My File.cs" /out:bin/app.dll'),
            (CSharpCompiler(), r'csc.exe "a\"b.cs" /define:A;B'),
            (CSharpCompiler(), r'csc.exe /reference:Data1="C:\x\System.Data.dll"'),
            (CSharpCompiler(), r"csc.exe a\\b.cs"),
            (CSharpCompiler(), r"csc.exe a\\\"b.cs"),
            (CSharpCompiler(), 'csc.exe "" a.cs'),
            (CSharpCompiler(), "csc.exe\ta.cs\r\nb.cs\vc.cs"),
            (CSharpCompiler(), "csc.exe dir\\"),
            (CSharpCompiler(), 'csc.exe "fizz buzz"\\'),
            (CSharpCompiler(), r'csc.exe "x y\\" next.cs'),
            (
                CSharpCompiler(),
                r'C:\Program Files\dotnet\dotnet.exe exec "C:\Program Files\dotnet\sdk\csc.dll" /noconfig',
            ),
            (VisualBasicCompiler(), 'vbc.exe /define:"CONFIG=\\"Debug\\",DEBUG=-1" a.vb'),
            (VisualBasicCompiler(), r'C:\Program Files\vbc.exe "My Module.vb" /out:bin\\'),
            (FSharpCompiler(), FSC_LINE),
            (FSharpCompiler(), "dotnet fsc.dll\n--lib:C:\\libs\\\nProgram.fs"),
            (FSharpCompiler(), 'fsc.exe\n"--doc:C:\\My Docs\\a.xml"'),
            (FSharpCompiler(), 'fsc.exe\nMy Source.fs\n"C:\\Out Dir"\\\nA.fs'),
            (FSharpCompiler(), 'dotnet exec fsc.dll --noframework -r:"C:\\Lib Dir\\x.dll"\nA.fs'),
        ],
    )
    def test_reparse_is_equivalent(self, family, command_line):
        first = family.parse(command_line)
        second = family.parse(first.canonical())
        assert second.tokens == first.tokens
        assert second.arguments == first.arguments

    def test_trailing_backslash_stays_outside_quotes(self):
        command = CSharpCompiler().parse('csc.exe "fizz buzz"\\')
        assert command.tokens == ("csc.exe", "fizz buzz\\")
        assert command.canonical() == 'csc.exe "fizz buzz"\\'

    def test_fsharp_emits_one_argument_per_line(self):
        command = FSharpCompiler().parse("dotnet fsc.dll\n--lib:C:\\libs\\\nProgram.fs")
        assert command.canonical() == "fsc.dll\n--lib:C:\\libs\\\nProgram.fs"
        assert command.source_files == ["Program.fs"]


# ---------------------------------------------------------------------------
# TestRegistry
# ---------------------------------------------------------------------------


class TestRegistry:
    """Task names map to families case-insensitively."""

    @pytest.mark.parametrize(
        "task_name, language",
        [
            ("Csc", CompilerLanguage.CSHARP),
            ("csc", CompilerLanguage.CSHARP),
            ("VBC", CompilerLanguage.VISUAL_BASIC),
            ("Fsc", CompilerLanguage.FSHARP),
        ],
    )
    def test_known_tasks(self, task_name, language):
        assert find_compiler(task_name).language is language

    @pytest.mark.parametrize("task_name", ["Exec", "Copy", "", None])
    def test_other_tasks(self, task_name):
        assert find_compiler(task_name) is None
