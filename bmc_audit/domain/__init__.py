"""
Domain layer module.

This module contains the core logic for planning and running verification
audits. It is independent of infrastructure concerns and depends only on
protocols (interfaces).

Key components:
- models.py: Domain models (Pydantic-based data structures)
- interfaces.py: Protocol definitions for the model checker backend
- steps/: Solver selection, loop profiling and pass execution
- planning/: Strategy planning and pass construction
- verification/: Result aggregation into reports
"""
