"""Names the event processor matches build events against.

WHY: A handful of MSBuild names decide how a session is read: which
project paths are solutions, which target holds the real compiler call,
which target reports sub-project frameworks. Build setups with custom
targets or solution formats need to swap those without patching code.

HOW: ``load_dotenv()`` runs once at import, then each overridable name is
read from a ``BUILDTRACE_*`` environment variable with a built-in
fallback. The item, property and metadata names under "Well-known MSBuild
names" belong to MSBuild itself and stay fixed.

RULES:
- Extensions are lowercase and include the leading dot
- Target, item and property names are matched case-insensitively by callers
- Environment values are read once, at import
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the working directory
load_dotenv()


def _split_list(raw: str) -> tuple[str, ...]:
    """Split a comma-separated env value into lowercase, non-empty entries."""
    return tuple(part.strip().lower() for part in raw.split(",") if part.strip())


# ---------------------------------------------------------------------------
# Session tracking
# ---------------------------------------------------------------------------

SOLUTION_EXTENSIONS: tuple[str, ...] = _split_list(
    os.getenv("BUILDTRACE_SOLUTION_EXTENSIONS", ".sln,.slnx,.slnf")
)
"""Project paths ending in one of these are solution nodes, never results."""

CORE_COMPILE_TARGET = os.getenv("BUILDTRACE_CORE_COMPILE_TARGET", "CoreCompile")
BUILD_TARGET = os.getenv("BUILDTRACE_BUILD_TARGET", "Build")

VALIDATE_EVENTS = os.getenv("BUILDTRACE_VALIDATE_EVENTS", "true").lower() == "true"
"""Validate decoded event dicts against their JSON schema before use."""

# ---------------------------------------------------------------------------
# Well-known MSBuild names
# ---------------------------------------------------------------------------

PROJECT_REFERENCE_ITEM = "ProjectReference"
PACKAGE_REFERENCE_ITEM = "PackageReference"
PROJECT_GUID_PROPERTY = "ProjectGuid"

SOURCE_PROJECT_METADATA = "MSBuildSourceProjectFile"
FRAMEWORK_IDENTIFIER_METADATA = "TargetFrameworkIdentifier"
FRAMEWORK_VERSION_METADATA = "TargetFrameworkVersion"


def is_solution_path(path: str) -> bool:
    """Return True if the path names a solution file.

    RULES:
    - Comparison is case-insensitive on the extension
    """
    return path.lower().endswith(SOLUTION_EXTENSIONS)
