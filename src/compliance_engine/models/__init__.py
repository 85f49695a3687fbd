"""Data models for the resource tree, compliance outcomes and suppressions."""

from .compliance import (
    NOT_APPLICABLE_REASON,
    SUPPRESSION_ID,
    VALIDATION_FAILURE_ID,
    ComplianceRecord,
    ComplianceResult,
    NagMessageLevel,
    NagRuleCompliance,
    NagRulePostValidationStates,
    UnrecognizedComplianceValue,
)
from .suppression import METADATA_KEY, RULES_KEY, AppliesTo, RegexAppliesTo, Suppression
from .tree import (
    Annotation,
    AnnotationKind,
    Annotations,
    App,
    Construct,
    NestedStack,
    Reference,
    Resource,
    Stack,
    Token,
    collect_annotations,
    make_unique_id,
    unique_id,
)

__all__ = [
    "Annotation",
    "AnnotationKind",
    "Annotations",
    "App",
    "AppliesTo",
    "ComplianceRecord",
    "ComplianceResult",
    "Construct",
    "METADATA_KEY",
    "NOT_APPLICABLE_REASON",
    "NagMessageLevel",
    "NagRuleCompliance",
    "NagRulePostValidationStates",
    "NestedStack",
    "RULES_KEY",
    "Reference",
    "RegexAppliesTo",
    "Resource",
    "SUPPRESSION_ID",
    "Stack",
    "Suppression",
    "Token",
    "UnrecognizedComplianceValue",
    "VALIDATION_FAILURE_ID",
    "collect_annotations",
    "make_unique_id",
    "unique_id",
]
