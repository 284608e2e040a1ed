"""Event correlation state machine: build events to AnalyzerResults.

WHY: A build's event stream is nested and noisy. A solution build spawns
sub-builds of every project, a multi-targeted project is built once per
framework plus once more by an outer dispatcher, and the compiler may be
called as a probe before the real CoreCompile call. The processor keeps
enough state to attribute every property, item and command line to the
right (project, target framework) pair.

HOW: EventProcessor subscribes to an EventSource and dispatches each
event through a kind → handler table. It maintains:
  - the tracked path set (explicit, or established by the first project)
  - one result stack with a Tracked or Untracked slot per ProjectStarted
  - a target stack per project path
  - a target framework cache per project path
  - evaluation properties/items keyed by evaluation id
A StructuralViolation marks the session aborted and is re-raised to the
producer; results captured so far stay queryable.

RULES:
- Every ProjectStarted pushes exactly one slot, every ProjectFinished pops one
- A solution project is never a result itself
- Compiler invocations only reach a Tracked result on top of the stack
- Events after BuildFinished or after an abort are ignored
- close() is idempotent and also runs on context-manager exit
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import (
    TYPE_CHECKING,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Set,
    Tuple,
    Union,
)

from buildtrace import config
from buildtrace.compiler import find_compiler
from buildtrace.compiler.base import CompilerFamily
from buildtrace.core.events import (
    BuildEvent,
    BuildFinished,
    BuildStarted,
    Error,
    EventKind,
    Message,
    ProjectEvaluationFinished,
    ProjectFinished,
    ProjectStarted,
    TargetFinished,
    TargetStarted,
    TaskCommandLine,
    TaskItem,
)
from buildtrace.core.frameworks import (
    moniker_from_identifier,
    sort_key,
    target_framework_from_properties,
)
from buildtrace.core.results import (
    AnalyzerResult,
    AnalyzerResults,
    normalize_path,
    resolve_against,
)
from buildtrace.core.source import EventSource
from buildtrace.errors import StructuralViolation

if TYPE_CHECKING:
    from buildtrace.snapshot import SessionSnapshot

logger = logging.getLogger(__name__)

Properties = Optional[Mapping[str, str]]
Items = Optional[Mapping[str, Sequence[TaskItem]]]


@dataclass(frozen=True)
class Tracked:
    """A result stack slot for a project instance of interest."""

    project_path: str
    result: AnalyzerResult


@dataclass(frozen=True)
class Untracked:
    """A result stack slot for a nested or incidental build."""

    project_path: str


Slot = Union[Tracked, Untracked]


class EventProcessor:
    """Correlates one session's build events into AnalyzerResults.

    Observers are build loggers that want the same events: each gets
    ``initialize(source)`` on construction and ``shutdown()`` on close.

    Example::

        source = EventSource()
        with EventProcessor(source) as processor:
            source.replay(events)
        results = processor.to_results()
    """

    def __init__(
        self,
        source: EventSource,
        tracked_paths: Optional[Iterable[str]] = None,
        observers: Iterable[object] = (),
    ) -> None:
        self._source = source
        self._observers = list(observers)
        self._lock = threading.RLock()

        self._tracked: Set[str] = set()
        self._solutions: Set[str] = set()
        self._root_established = tracked_paths is not None
        if tracked_paths is not None:
            for path in tracked_paths:
                self._track(normalize_path(path))

        self._results: Dict[Tuple[str, str], AnalyzerResult] = {}
        self._result_stack: List[Slot] = []
        self._target_stacks: Dict[str, List[str]] = {}
        self._framework_cache: Dict[str, str] = {}
        self._evaluations: Dict[int, Tuple[Properties, Items]] = {}
        self._errors: List[Error] = []

        self._build_success: Optional[bool] = None
        self._finished = False
        self._aborted = False
        self._closed = False

        self._handlers: Dict[EventKind, Callable[[BuildEvent], None]] = {
            EventKind.BUILD_STARTED: self._on_build_started,
            EventKind.BUILD_FINISHED: self._on_build_finished,
            EventKind.PROJECT_EVALUATION_FINISHED: self._on_evaluation_finished,
            EventKind.PROJECT_STARTED: self._on_project_started,
            EventKind.PROJECT_FINISHED: self._on_project_finished,
            EventKind.TARGET_STARTED: self._on_target_started,
            EventKind.TARGET_FINISHED: self._on_target_finished,
            EventKind.TASK_COMMAND_LINE: self._on_task_command_line,
            EventKind.MESSAGE: self._on_message,
            EventKind.ERROR: self._on_error,
        }

        for observer in self._observers:
            observer.initialize(source)
        source.subscribe(self.handle)

    # -- lifecycle ------------------------------------------------------------

    def __enter__(self) -> EventProcessor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        """Unsubscribe from the source and shut observers down, once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._source.unsubscribe(self.handle)
        for observer in self._observers:
            observer.shutdown()
        if self._result_stack:
            logger.debug("Closed with %d unfinished projects", len(self._result_stack))

    # -- state ----------------------------------------------------------------

    @property
    def tracked_paths(self) -> List[str]:
        with self._lock:
            return sorted(self._tracked)

    @property
    def errors(self) -> List[Error]:
        with self._lock:
            return list(self._errors)

    @property
    def overall_success(self) -> bool:
        return self._build_success is True

    @property
    def build_finished(self) -> bool:
        return self._finished

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def results(self) -> List[AnalyzerResult]:
        """All results ordered by project path, then target framework."""
        with self._lock:
            keys = sorted(self._results, key=lambda k: (k[0], sort_key(k[1])))
            return [self._results[key] for key in keys]

    def to_results(self) -> AnalyzerResults:
        """Collect the results of a single-project session.

        A solution session yields several projects; results of different
        projects that share a framework would replace each other here, so
        use results_by_project() instead.
        """
        results = AnalyzerResults()
        results.add(self.results, self.overall_success)
        return results

    def results_by_project(self) -> Dict[str, AnalyzerResults]:
        grouped: Dict[str, List[AnalyzerResult]] = {}
        for result in self.results:
            grouped.setdefault(result.project_path, []).append(result)
        by_project = {}
        for path, results in grouped.items():
            collection = AnalyzerResults()
            collection.add(results, self.overall_success)
            by_project[path] = collection
        return by_project

    def snapshot(self) -> SessionSnapshot:
        from buildtrace.snapshot import SessionSnapshot

        return SessionSnapshot.from_processor(self)

    # -- dispatch -------------------------------------------------------------

    def handle(self, event: BuildEvent) -> None:
        """Process one event. Registered as the source's handler."""
        with self._lock:
            if self._aborted or self._finished:
                logger.debug("Ignoring %s after end of session", event.kind.value)
                return
            handler = self._handlers.get(event.kind)
            if handler is None:
                return
            try:
                handler(event)
            except StructuralViolation:
                self._aborted = True
                logger.error(
                    "Aborting session on structural violation at %s event", event.kind.value
                )
                raise

    # -- tracking -------------------------------------------------------------

    def _track(self, path: str) -> None:
        if config.is_solution_path(path):
            self._solutions.add(path)
        else:
            self._tracked.add(path)

    def _harvest_solution(self, path: str, items: Items) -> None:
        directory = os.path.dirname(path)
        added = 0
        for item_type, entries in (items or {}).items():
            if item_type.lower() != config.PROJECT_REFERENCE_ITEM.lower():
                continue
            for item in entries:
                project = resolve_against(directory, item.item_spec)
                if project not in self._tracked:
                    self._tracked.add(project)
                    added += 1
        if added:
            logger.info("Tracking %d projects referenced by %s", added, path)

    def _properties_and_items(self, event: ProjectStarted) -> Tuple[Properties, Items]:
        if event.properties is not None:
            return event.properties, event.items
        evaluation = self._evaluations.get(event.context.evaluation_id)
        if evaluation is not None:
            return evaluation
        return None, event.items

    def _resolve_framework(self, path: str, properties: Properties) -> Optional[str]:
        if properties is not None:
            framework = target_framework_from_properties(properties)
            if framework is not None:
                self._framework_cache[path] = framework
            return framework
        return self._framework_cache.get(path)

    # -- handlers -------------------------------------------------------------

    def _on_build_started(self, event: BuildStarted) -> None:
        logger.debug("Build started: %s", event.message)

    def _on_build_finished(self, event: BuildFinished) -> None:
        self._build_success = event.success
        self._finished = True
        logger.info(
            "Build finished (success=%s) with %d results", event.success, len(self._results)
        )

    def _on_evaluation_finished(self, event: ProjectEvaluationFinished) -> None:
        evaluation_id = event.context.evaluation_id
        if evaluation_id < 0:
            return
        self._evaluations[evaluation_id] = (event.properties, event.items)

    def _on_project_started(self, event: ProjectStarted) -> None:
        path = normalize_path(event.project_path)
        properties, items = self._properties_and_items(event)

        if not self._root_established:
            # No explicit root: the first project seen is the session root
            self._root_established = True
            self._track(path)
            logger.info("Established session root %s", path)

        if path in self._solutions:
            self._harvest_solution(path, items)
            self._result_stack.append(Untracked(path))
            return

        if path not in self._tracked:
            logger.debug("Untracked project %s", path)
            self._result_stack.append(Untracked(path))
            return

        framework = self._resolve_framework(path, properties)
        if framework is None:
            logger.debug("No target framework for %s, leaving untracked", path)
            self._result_stack.append(Untracked(path))
            return

        key = (path, framework)
        result = self._results.get(key)
        if result is None:
            result = AnalyzerResult(path, framework)
            self._results[key] = result
            logger.debug("New result for %s (%s)", path, framework or "no framework")
        result.merge(properties, items)
        self._result_stack.append(Tracked(path, result))

    def _on_project_finished(self, event: ProjectFinished) -> None:
        path = normalize_path(event.project_path)
        if not self._result_stack:
            raise StructuralViolation(
                "ProjectFinished for {} with no project in flight".format(path),
                project_path=path,
            )
        slot = self._result_stack.pop()
        if slot.project_path != path:
            logger.warning(
                "ProjectFinished for %s closed the slot of %s", path, slot.project_path
            )
        if isinstance(slot, Tracked):
            slot.result.succeeded = event.success

    def _on_target_started(self, event: TargetStarted) -> None:
        path = normalize_path(event.project_path)
        self._target_stacks.setdefault(path, []).append(event.target_name)

    def _on_target_finished(self, event: TargetFinished) -> None:
        path = normalize_path(event.project_path)
        stack = self._target_stacks.get(path)
        if not stack:
            raise StructuralViolation(
                "Target {} finished in {} with no target in flight".format(
                    event.target_name, path
                ),
                project_path=path,
                actual=event.target_name,
            )
        expected = stack[-1]
        if expected.lower() != event.target_name.lower():
            raise StructuralViolation(
                "Mismatched target events in {}: expected {}, got {}".format(
                    path, expected, event.target_name
                ),
                project_path=path,
                expected=expected,
                actual=event.target_name,
            )
        stack.pop()

        is_build = event.target_name.lower() == config.BUILD_TARGET.lower()
        if is_build and config.is_solution_path(path):
            self._seed_frameworks(event.outputs)

    def _seed_frameworks(self, outputs: Iterable[TaskItem]) -> None:
        """Cache sub-project frameworks reported by a solution's Build outputs."""
        for output in outputs:
            source_project = output.get_metadata(config.SOURCE_PROJECT_METADATA)
            identifier = output.get_metadata(config.FRAMEWORK_IDENTIFIER_METADATA)
            version = output.get_metadata(config.FRAMEWORK_VERSION_METADATA)
            if not (source_project and identifier and version):
                continue
            framework = moniker_from_identifier(identifier, version)
            if framework:
                project = normalize_path(source_project)
                self._framework_cache[project] = framework
                logger.debug("Cached framework %s for %s", framework, project)

    def _in_core_compile(self, path: str) -> bool:
        target = config.CORE_COMPILE_TARGET.lower()
        return any(name.lower() == target for name in self._target_stacks.get(path, ()))

    def _offer(self, path: str, command_line: str, family: CompilerFamily) -> None:
        if not self._result_stack:
            return
        slot = self._result_stack[-1]
        if not isinstance(slot, Tracked):
            return
        in_core_compile = self._in_core_compile(path)
        if slot.result.offer_invocation(command_line, family, in_core_compile):
            logger.debug(
                "Kept %s invocation for %s (core_compile=%s)",
                family.task_name,
                slot.project_path,
                in_core_compile,
            )

    def _on_task_command_line(self, event: TaskCommandLine) -> None:
        family = find_compiler(event.task_name)
        if family is None:
            return
        self._offer(normalize_path(event.project_path), event.command_line, family)

    def _on_message(self, event: Message) -> None:
        family = find_compiler(event.sender_name)
        if family is None or not family.command_line_in_messages:
            return
        path = normalize_path(event.project_path)
        if self._in_core_compile(path):
            self._offer(path, event.text, family)

    def _on_error(self, event: Error) -> None:
        self._errors.append(event)
        if event.code:
            logger.error("%s: %s (%s)", event.code, event.message, event.project_path or "build")
        else:
            logger.error("%s (%s)", event.message, event.project_path or "build")
