"""Specification compilation and execution.

- ``synthesizer``: capability id convention, query flattening, parameter normalization.
- ``validation``: registry-bound plan validation and advisory schema validation.
- ``compiler``: ``PlanCompiler`` producing per-view plans or cached/error results.
- ``executor``: ``SpecExecutor`` running compiled plans through the registry.
"""

from .compiler import CompiledSpec, PlanCompiler, is_fresh
from .executor import SpecExecutor
from .synthesizer import flatten_query, normalize_params, synthesize_capability_id, synthesize_query
from .validation import SchemaValidationReport, SpecSchemaValidator, validate_plan

__all__ = [
    "CompiledSpec",
    "PlanCompiler",
    "SchemaValidationReport",
    "SpecExecutor",
    "SpecSchemaValidator",
    "flatten_query",
    "is_fresh",
    "normalize_params",
    "synthesize_capability_id",
    "synthesize_query",
    "validate_plan",
]
