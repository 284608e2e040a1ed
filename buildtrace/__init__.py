"""buildtrace: compiler invocations and project state from build event streams.

WHY: IDE tooling and analyzers need to know exactly how each project was
compiled (source files, references, defines) for each target framework,
without re-implementing MSBuild. A build already reports all of it as an
event stream; it only has to be correlated.

HOW: Two layers: compiler (tokenize and classify a raw command line,
choose the authoritative invocation) and core (events, the correlation
state machine, and the results it produces). snapshot.py turns results
into immutable models for reporting.

RULES:
- Nothing here runs a build or locates an SDK
- Build failures are data, not exceptions
"""

__version__ = "0.1.0"
