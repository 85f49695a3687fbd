"""Rule evaluation: packs, rule helpers and the tree visitor."""

from .pack import NagPack, RuleCallable, RuleDefinition, RuleEvaluationError, RuleSetPack
from .rules import NagRules
from .visitor import NagSynthesisError, NagVisitor, VisitResult

__all__ = [
    "NagPack",
    "NagRules",
    "NagSynthesisError",
    "NagVisitor",
    "RuleCallable",
    "RuleDefinition",
    "RuleEvaluationError",
    "RuleSetPack",
    "VisitResult",
]
