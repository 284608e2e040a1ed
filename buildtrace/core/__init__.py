"""Event model, event source, correlation state machine and results.

WHY: The core package holds the stateful heart of buildtrace: the event
union a log decoder or live build produces, the processor that turns it
into results, and the result types callers query.

HOW: events.py defines the variants, source.py fans them out,
processor.py correlates them, and results.py / frameworks.py hold the
aggregate and its target framework rules.

RULES:
- The compiler package never imports from core
- Each session owns a fresh EventProcessor
"""

from buildtrace.core.events import BuildEventContext, EventKind, TaskItem, event_from_dict
from buildtrace.core.processor import EventProcessor, Tracked, Untracked
from buildtrace.core.results import AnalyzerResult, AnalyzerResults, ProjectItem
from buildtrace.core.source import EventSource

__all__ = [
    "AnalyzerResult",
    "AnalyzerResults",
    "BuildEventContext",
    "EventKind",
    "EventProcessor",
    "EventSource",
    "ProjectItem",
    "TaskItem",
    "Tracked",
    "Untracked",
    "event_from_dict",
]
