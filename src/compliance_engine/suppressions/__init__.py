"""Suppression authoring, validation and matching."""

from .api import (
    NagSuppressions,
    add_resource_suppressions,
    add_resource_suppressions_by_path,
    add_stack_suppressions,
)
from .conditions import (
    INagSuppressionIgnore,
    SuppressionIgnoreAlways,
    SuppressionIgnoreAnd,
    SuppressionIgnoreErrors,
    SuppressionIgnoreInput,
    SuppressionIgnoreNever,
    SuppressionIgnoreOr,
)
from .resolver import (
    PathNotFoundError,
    SuppressionFormatError,
    SuppressionResolver,
    compile_applies_to,
)

__all__ = [
    "INagSuppressionIgnore",
    "NagSuppressions",
    "PathNotFoundError",
    "SuppressionFormatError",
    "SuppressionIgnoreAlways",
    "SuppressionIgnoreAnd",
    "SuppressionIgnoreErrors",
    "SuppressionIgnoreInput",
    "SuppressionIgnoreNever",
    "SuppressionIgnoreOr",
    "SuppressionResolver",
    "add_resource_suppressions",
    "add_resource_suppressions_by_path",
    "add_stack_suppressions",
    "compile_applies_to",
]
