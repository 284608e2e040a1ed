"""Shared test fixtures for the buildtrace test suite.

WHY: Processor, snapshot and result tests all start from an event source,
a stream builder, or one of the two sample build streams. Centralizing
the fixtures keeps every module on the same sample data.

HOW: Fixtures wrap the factories in tests/factories.py so each test gets
fresh instances.

RULES:
- Fixtures never share mutable state between tests
- Sample streams end with BuildFinished
"""

import pytest

from buildtrace.core.source import EventSource

from tests.factories import StreamBuilder, multi_target_stream, solution_stream


@pytest.fixture
def source():
    """A fresh EventSource with no handlers."""
    return EventSource()


@pytest.fixture
def stream():
    """A fresh StreamBuilder."""
    return StreamBuilder()


@pytest.fixture
def multi_target_events():
    """App.csproj built for net8.0 and netstandard2.0 through an outer dispatcher.

    The netstandard2.0 build runs a probe compile outside CoreCompile
    before the real one, and fails.
    """
    return multi_target_stream()


@pytest.fixture
def solution_events():
    """Repo.sln building Lib and App; App's build nests a tool project outside the solution."""
    return solution_stream()
