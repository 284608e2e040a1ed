"""Target framework resolution: properties to a short moniker.

WHY: MSBuild exposes the framework a project instance builds for in
several overlapping properties, depending on the SDK style and age of
the project. A result must be keyed by one stable short moniker
(``net8.0``, ``netstandard2.0``, ``net472``) no matter which of them the
build reported.

HOW: A fixed precedence over the properties, first non-empty wins:
  1. TargetFramework            (SDK-style, already short)
  2. TargetFrameworkIdentifier + TargetFrameworkVersion
  3. TargetFrameworkMoniker     (long form, ``.NETFramework,Version=v4.7.2``)
  4. TargetFrameworkVersion     (legacy, ``net`` + digits)
Identifiers map to short prefixes through FRAMEWORK_IDENTIFIERS.

RULES:
- A project instance with TargetFrameworks but no TargetFramework is the
  outer multi-target dispatcher and resolves to None
- Properties with no framework information at all resolve to ""
- Property names are matched case-insensitively
- Unknown identifiers fall through to the next precedence level
"""

from __future__ import annotations

import re
from typing import Mapping, Optional, Tuple

# Identifier (lowercase) → (short prefix, keep dots in the version)
FRAMEWORK_IDENTIFIERS = {
    ".netframework": ("net", False),
    ".netstandard": ("netstandard", True),
    ".netcoreapp": ("netcoreapp", True),
    ".netcore": ("netcore", False),
    ".netportable": ("portable", False),
    ".netmicroframework": ("netmf", False),
    ".netnanoframework": ("netnano", True),
    "silverlight": ("sl", False),
    "windowsphone": ("wp", False),
    "windowsphoneapp": ("wpa", False),
    "tizen": ("tizen", False),
}

_VERSION_PART = re.compile(r"^\s*version\s*=\s*v?(.+?)\s*$", re.IGNORECASE)


def _normalize_version(version: str) -> str:
    return version.strip().lstrip("vV")


def moniker_from_identifier(identifier: str, version: str) -> str:
    """Short moniker for an identifier/version pair, "" if unknown.

    ``.NETCoreApp`` 5.0 and later is plain ``net`` (``net8.0``).
    """
    if not identifier or not version:
        return ""
    entry = FRAMEWORK_IDENTIFIERS.get(identifier.strip().lower())
    if entry is None:
        return ""
    prefix, dotted = entry
    version = _normalize_version(version)
    if not version:
        return ""

    if prefix == "netcoreapp":
        major = version.split(".", 1)[0]
        if major.isdigit() and int(major) >= 5:
            prefix = "net"
    if dotted:
        return prefix + version
    return prefix + "".join(ch for ch in version if ch.isdigit())


def parse_moniker(moniker: str) -> Optional[Tuple[str, str]]:
    """Split a long-form moniker into (identifier, version).

    Returns None when the text is not in ``Identifier,Version=vX.Y`` form.
    """
    parts = [part.strip() for part in moniker.split(",")]
    if len(parts) < 2 or not parts[0]:
        return None
    for part in parts[1:]:
        match = _VERSION_PART.match(part)
        if match:
            return parts[0], match.group(1)
    return None


def legacy_moniker(framework_version: str) -> str:
    """``v4.6.1`` → ``net461``."""
    digits = "".join(ch for ch in framework_version if ch.isdigit())
    return "net" + digits if digits else ""


def resolve_target_framework(
    target_framework: Optional[str] = None,
    identifier: Optional[str] = None,
    version: Optional[str] = None,
    moniker: Optional[str] = None,
) -> str:
    """Apply the precedence table to raw property values.

    ``version`` plays both roles of TargetFrameworkVersion: paired with
    ``identifier`` at level 2 and on its own at level 4.
    """
    if target_framework and target_framework.strip():
        return target_framework.strip()

    if identifier and version:
        resolved = moniker_from_identifier(identifier, version)
        if resolved:
            return resolved

    if moniker and moniker.strip():
        parsed = parse_moniker(moniker)
        if parsed is not None:
            resolved = moniker_from_identifier(*parsed)
            if resolved:
                return resolved
        elif "," not in moniker:
            return moniker.strip()

    if version:
        return legacy_moniker(version)
    return ""


def _lookup(properties: Mapping[str, str], name: str) -> Optional[str]:
    value = properties.get(name)
    if value is not None:
        return value
    lowered = name.lower()
    for key, candidate in properties.items():
        if key.lower() == lowered:
            return candidate
    return None


def target_framework_from_properties(properties: Mapping[str, str]) -> Optional[str]:
    """Resolve the moniker of one project instance from its properties.

    Returns None for the outer build of a multi-targeted project.
    """
    target_framework = _lookup(properties, "TargetFramework")
    target_frameworks = _lookup(properties, "TargetFrameworks")
    if not (target_framework or "").strip() and (target_frameworks or "").strip():
        return None
    return resolve_target_framework(
        target_framework=target_framework,
        identifier=_lookup(properties, "TargetFrameworkIdentifier"),
        version=_lookup(properties, "TargetFrameworkVersion"),
        moniker=_lookup(properties, "TargetFrameworkMoniker"),
    )


def sort_key(target_framework: str) -> Tuple[bool, str]:
    """Order frameworks case-insensitively with the empty moniker last."""
    return (not target_framework, target_framework.lower())
