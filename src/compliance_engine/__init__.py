"""Rule evaluation and reporting engine for infrastructure-as-code templates."""

from .engine import NagPack, NagRules, NagSynthesisError, NagVisitor, RuleDefinition, RuleSetPack
from .loggers import NagLogger, NagReportFormat
from .models import (
    App,
    NagMessageLevel,
    NagRuleCompliance,
    NestedStack,
    Resource,
    Stack,
)
from .suppressions import NagSuppressions
from .utils import flatten_reference

__all__ = [
    "App",
    "NagLogger",
    "NagMessageLevel",
    "NagPack",
    "NagReportFormat",
    "NagRuleCompliance",
    "NagRules",
    "NagSuppressions",
    "NagSynthesisError",
    "NagVisitor",
    "NestedStack",
    "Resource",
    "RuleDefinition",
    "RuleSetPack",
    "Stack",
    "flatten_reference",
]
