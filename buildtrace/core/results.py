"""Per-(project, target framework) results and their per-project collection.

WHY: Correlating the event stream is only useful if callers can ask
simple questions afterwards: which files does this project compile for
net8.0, which assemblies does it reference, did it build? AnalyzerResult
answers those for one project instance; AnalyzerResults groups the
instances of one project by target framework.

HOW: AnalyzerResult accumulates properties and items merged in by the
event processor and owns an InvocationSelector for the compiler call.
Everything else is derived on read from those three pieces of state.

RULES:
- Property names are case-insensitive; the last write wins
- Items are replaced per item type on merge
- Paths derived from items and compiler arguments are absolute, resolved
  against the project directory
- Compiler-derived views are empty when no invocation was kept or the
  kept one could not be parsed
- succeeded is None until the project instance finishes
"""

from __future__ import annotations

import logging
import os
import threading
import uuid
from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, List, Mapping, Optional

from buildtrace import config
from buildtrace.compiler.base import CompilerCommand, CompilerFamily
from buildtrace.compiler.selector import Invocation, InvocationSelector
from buildtrace.core.events import TaskItem
from buildtrace.core.frameworks import sort_key

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Unify directory separators and make the path absolute."""
    unified = path.replace("\\", os.sep).replace("/", os.sep)
    return os.path.normpath(os.path.abspath(unified))


def resolve_against(directory: str, path: str) -> str:
    return normalize_path(os.path.join(directory, path.replace("\\", os.sep)))


def project_guid(project_path: str) -> uuid.UUID:
    """Stable name-based GUID for a project without a ProjectGuid property."""
    return uuid.uuid5(uuid.NAMESPACE_URL, project_path)


@dataclass(frozen=True)
class ProjectItem:
    """An item as exposed to callers: item spec plus a metadata copy."""

    item_spec: str
    metadata: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_task_item(cls, item: TaskItem) -> ProjectItem:
        return cls(item_spec=item.item_spec, metadata=dict(item.metadata))


class AnalyzerResult:
    """Everything captured for one project built for one target framework.

    WHY: A multi-targeted project builds once per framework, and each
    build has its own properties, items and compiler call. The result is
    the unit callers query.

    HOW: Created by the event processor on the first ProjectStarted that
    resolves to (project_path, target_framework), then mutated by every
    later event nested inside that project. ``merge`` takes properties and
    items, ``offer_invocation`` takes compiler command lines, and
    ``succeeded`` is set when the matching ProjectFinished arrives.

    RULES:
    - project_path is normalized and absolute
    - target_framework is "" when the project carries no framework information
    - project_guid prefers a valid ProjectGuid property
    """

    def __init__(self, project_path: str, target_framework: str = "") -> None:
        self.project_path = normalize_path(project_path)
        self.target_framework = target_framework
        self.succeeded: Optional[bool] = None
        # lowercase name → (name as first written, value)
        self._properties: Dict[str, tuple] = {}
        self._items: Dict[str, List[ProjectItem]] = {}
        self._selector = InvocationSelector()

    def __repr__(self) -> str:
        return "AnalyzerResult({!r}, {!r})".format(self.project_path, self.target_framework)

    @property
    def project_directory(self) -> str:
        return os.path.dirname(self.project_path)

    # -- merging ------------------------------------------------------------

    def merge(
        self,
        properties: Optional[Mapping[str, str]],
        items: Optional[Mapping[str, Iterable[TaskItem]]],
    ) -> None:
        """Merge one project instance's properties and items."""
        for name, value in (properties or {}).items():
            key = name.lower()
            original = self._properties[key][0] if key in self._properties else name
            self._properties[key] = (original, value)
        for item_type, entries in (items or {}).items():
            self._items[item_type] = [ProjectItem.from_task_item(e) for e in entries]

    def offer_invocation(
        self,
        command_line: str,
        family: CompilerFamily,
        in_core_compile: bool,
    ) -> bool:
        return self._selector.offer(command_line, family, in_core_compile)

    # -- properties and items ----------------------------------------------

    @property
    def properties(self) -> Dict[str, str]:
        return {name: value for name, value in self._properties.values()}

    def get_property(self, name: str) -> Optional[str]:
        entry = self._properties.get(name.lower())
        return entry[1] if entry is not None else None

    @property
    def items(self) -> Dict[str, List[ProjectItem]]:
        return {item_type: list(entries) for item_type, entries in self._items.items()}

    def get_items(self, item_type: str) -> List[ProjectItem]:
        lowered = item_type.lower()
        for name, entries in self._items.items():
            if name.lower() == lowered:
                return list(entries)
        return []

    @property
    def project_guid(self) -> uuid.UUID:
        raw = self.get_property(config.PROJECT_GUID_PROPERTY)
        if raw:
            try:
                return uuid.UUID(raw.strip())
            except ValueError:
                logger.debug("Ignoring malformed ProjectGuid %r for %s", raw, self.project_path)
        return project_guid(self.project_path)

    @property
    def project_references(self) -> List[str]:
        return [
            resolve_against(self.project_directory, item.item_spec)
            for item in self.get_items(config.PROJECT_REFERENCE_ITEM)
        ]

    @property
    def package_references(self) -> Dict[str, Dict[str, str]]:
        """Package name → metadata; a repeated name keeps its last occurrence."""
        packages: Dict[str, Dict[str, str]] = {}
        for item in self.get_items(config.PACKAGE_REFERENCE_ITEM):
            packages.pop(item.item_spec, None)
            packages[item.item_spec] = dict(item.metadata)
        return packages

    # -- compiler invocation -----------------------------------------------

    @property
    def invocation(self) -> Optional[Invocation]:
        return self._selector.selected

    @property
    def compiler_command(self) -> Optional[CompilerCommand]:
        selected = self._selector.selected
        return selected.command if selected is not None else None

    @property
    def command_error(self) -> Optional[str]:
        selected = self._selector.selected
        return selected.error if selected is not None else None

    @property
    def command(self) -> Optional[str]:
        selected = self._selector.selected
        return selected.command_line if selected is not None else None

    @property
    def compiler_file_path(self) -> Optional[str]:
        command = self.compiler_command
        return command.location if command is not None else None

    @property
    def compiler_arguments(self) -> List[str]:
        command = self.compiler_command
        return list(command.argument_tokens) if command is not None else []

    @property
    def source_files(self) -> List[str]:
        command = self.compiler_command
        if command is None:
            return []
        return [resolve_against(self.project_directory, f) for f in command.source_files]

    @property
    def references(self) -> List[str]:
        command = self.compiler_command
        return command.references if command is not None else []

    @property
    def analyzer_references(self) -> List[str]:
        command = self.compiler_command
        return command.analyzer_references if command is not None else []

    @property
    def preprocessor_symbols(self) -> List[str]:
        command = self.compiler_command
        return command.preprocessor_symbols if command is not None else []

    @property
    def additional_files(self) -> List[str]:
        command = self.compiler_command
        return command.additional_files if command is not None else []


class AnalyzerResults:
    """The results of one project keyed by target framework.

    RULES:
    - Adding a result for an existing framework replaces it
    - overall_success is None until the first add(), then the AND of
      every batch's success flag
    - Iteration follows target_frameworks order: case-insensitive, "" last
    """

    def __init__(self) -> None:
        self._results: Dict[str, AnalyzerResult] = {}
        self._overall_success: Optional[bool] = None
        self._lock = threading.Lock()

    def add(self, results: Iterable[AnalyzerResult], success: bool) -> None:
        with self._lock:
            for result in results:
                self._results[result.target_framework or ""] = result
            if self._overall_success is None:
                self._overall_success = success
            else:
                self._overall_success = self._overall_success and success

    @property
    def overall_success(self) -> Optional[bool]:
        return self._overall_success

    @property
    def target_frameworks(self) -> List[str]:
        with self._lock:
            return sorted(self._results, key=sort_key)

    @property
    def results(self) -> List[AnalyzerResult]:
        with self._lock:
            return [self._results[tfm] for tfm in sorted(self._results, key=sort_key)]

    def get(self, target_framework: str) -> Optional[AnalyzerResult]:
        with self._lock:
            return self._results.get(target_framework)

    def __getitem__(self, target_framework: str) -> AnalyzerResult:
        with self._lock:
            return self._results[target_framework]

    def __contains__(self, target_framework: object) -> bool:
        with self._lock:
            return target_framework in self._results

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def __iter__(self) -> Iterator[AnalyzerResult]:
        return iter(self.results)
