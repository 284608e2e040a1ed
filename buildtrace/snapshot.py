"""Immutable pydantic snapshots of a session's results.

WHY: Results and the processor are live, mutable objects owned by one
session. Reporting front-ends and other threads need a frozen view they
can serialize to JSON without reaching back into processor state.

HOW: One model per level (result, per-project collection, session),
each with a ``from_*`` constructor that copies the derived views once.
``model_dump_json()`` gives the wire form.

RULES:
- All models are frozen
- Paths are stored as strings, GUIDs in canonical lowercase form
- Python 3.9 compatible annotations (Optional / List / Dict)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from buildtrace.core.events import Error
from buildtrace.core.results import AnalyzerResult, AnalyzerResults

if TYPE_CHECKING:
    from buildtrace.core.processor import EventProcessor


class ItemSnapshot(BaseModel):
    """One MSBuild item."""

    model_config = ConfigDict(frozen=True)

    item_spec: str
    metadata: Dict[str, str] = Field(default_factory=dict)


class AnalyzerResultSnapshot(BaseModel):
    """Frozen copy of one AnalyzerResult."""

    model_config = ConfigDict(frozen=True)

    project_path: str = Field(description="Absolute, normalized project file path.")
    target_framework: str = Field(description="Short moniker, or empty when unknown.")
    project_guid: str
    succeeded: Optional[bool] = Field(
        default=None, description="None if the project instance never finished."
    )
    properties: Dict[str, str] = Field(default_factory=dict)
    items: Dict[str, List[ItemSnapshot]] = Field(default_factory=dict)
    source_files: List[str] = Field(default_factory=list)
    references: List[str] = Field(default_factory=list)
    analyzer_references: List[str] = Field(default_factory=list)
    project_references: List[str] = Field(default_factory=list)
    package_references: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    preprocessor_symbols: List[str] = Field(default_factory=list)
    additional_files: List[str] = Field(default_factory=list)
    command: Optional[str] = None
    compiler_file_path: Optional[str] = None
    compiler_arguments: List[str] = Field(default_factory=list)
    command_error: Optional[str] = None

    @classmethod
    def from_result(cls, result: AnalyzerResult) -> AnalyzerResultSnapshot:
        return cls(
            project_path=result.project_path,
            target_framework=result.target_framework,
            project_guid=str(result.project_guid),
            succeeded=result.succeeded,
            properties=result.properties,
            items={
                item_type: [
                    ItemSnapshot(item_spec=item.item_spec, metadata=item.metadata)
                    for item in entries
                ]
                for item_type, entries in result.items.items()
            },
            source_files=result.source_files,
            references=result.references,
            analyzer_references=result.analyzer_references,
            project_references=result.project_references,
            package_references=result.package_references,
            preprocessor_symbols=result.preprocessor_symbols,
            additional_files=result.additional_files,
            command=result.command,
            compiler_file_path=result.compiler_file_path,
            compiler_arguments=result.compiler_arguments,
            command_error=result.command_error,
        )


class AnalyzerResultsSnapshot(BaseModel):
    """Frozen copy of one project's results, in target framework order."""

    model_config = ConfigDict(frozen=True)

    overall_success: Optional[bool] = None
    target_frameworks: List[str] = Field(default_factory=list)
    results: List[AnalyzerResultSnapshot] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: AnalyzerResults) -> AnalyzerResultsSnapshot:
        ordered = results.results
        return cls(
            overall_success=results.overall_success,
            target_frameworks=[r.target_framework for r in ordered],
            results=[AnalyzerResultSnapshot.from_result(r) for r in ordered],
        )


class ErrorSnapshot(BaseModel):
    """A build error reported during the session."""

    model_config = ConfigDict(frozen=True)

    message: str
    project_path: str = ""
    code: str = ""
    file: str = ""
    line: int = 0

    @classmethod
    def from_event(cls, event: Error) -> ErrorSnapshot:
        return cls(
            message=event.message,
            project_path=event.project_path,
            code=event.code,
            file=event.file,
            line=event.line,
        )


class SessionSnapshot(BaseModel):
    """Frozen view of a whole session, keyed by project path."""

    model_config = ConfigDict(frozen=True)

    overall_success: bool = False
    build_finished: bool = False
    aborted: bool = False
    tracked_paths: List[str] = Field(default_factory=list)
    projects: Dict[str, AnalyzerResultsSnapshot] = Field(default_factory=dict)
    errors: List[ErrorSnapshot] = Field(default_factory=list)

    @classmethod
    def from_processor(cls, processor: EventProcessor) -> SessionSnapshot:
        return cls(
            overall_success=processor.overall_success,
            build_finished=processor.build_finished,
            aborted=processor.aborted,
            tracked_paths=processor.tracked_paths,
            projects={
                path: AnalyzerResultsSnapshot.from_results(results)
                for path, results in processor.results_by_project().items()
            },
            errors=[ErrorSnapshot.from_event(e) for e in processor.errors],
        )
