"""Compliance values and the records emitted for every rule evaluation."""

from __future__ import annotations

from collections.abc import Collection
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Tuple

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from .tree import Resource

VALIDATION_FAILURE_ID = "CdkNagValidationFailure"
SUPPRESSION_ID = "CdkNagSuppression"
NOT_APPLICABLE_REASON = "N/A"


class NagRuleCompliance(str, Enum):
    """Outcome a rule predicate reports for a resource."""

    COMPLIANT = "Compliant"
    NON_COMPLIANT = "Non-Compliant"
    NOT_APPLICABLE = "N/A"


class NagRulePostValidationStates(str, Enum):
    """Outcomes that only exist once suppressions and errors are considered."""

    SUPPRESSED = "Suppressed"
    UNKNOWN = "UNKNOWN"


class NagMessageLevel(str, Enum):
    """Severity a rule is reported at."""

    ERROR = "Error"
    WARN = "Warning"
    INFO = "Info"


class UnrecognizedComplianceValue(TypeError):
    """Raised when a rule predicate returns something that is not a compliance value."""


@dataclass(frozen=True, slots=True)
class ComplianceResult:
    """Normalized return value of a rule predicate.

    ``finding_ids`` is only meaningful for ``NON_COMPLIANT`` results; an
    empty tuple means the rule reported a single, unnamed finding.
    """

    compliance: NagRuleCompliance
    finding_ids: Tuple[str, ...] = ()

    @classmethod
    def from_value(cls, value: Any) -> "ComplianceResult":
        """Interpret any accepted predicate return value.

        Accepted values are booleans (``True`` is compliant), a
        :class:`NagRuleCompliance` or its string value, an existing result, or
        a collection of finding ids (empty means compliant).
        """

        if isinstance(value, ComplianceResult):
            return value
        if isinstance(value, bool):
            return cls(NagRuleCompliance.COMPLIANT if value else NagRuleCompliance.NON_COMPLIANT)
        if isinstance(value, NagRuleCompliance):
            return cls(value)
        if isinstance(value, str):
            try:
                return cls(NagRuleCompliance(value))
            except ValueError:
                raise UnrecognizedComplianceValue(
                    f"Unrecognized compliance value {value!r}"
                ) from None
        if isinstance(value, Collection) and not isinstance(value, (bytes, dict)):
            findings = list(value)
            if not all(isinstance(finding, str) for finding in findings):
                raise UnrecognizedComplianceValue("Finding ids must be strings")
            if not findings:
                return cls(NagRuleCompliance.COMPLIANT)
            return cls(NagRuleCompliance.NON_COMPLIANT, tuple(dict.fromkeys(findings)))

        raise UnrecognizedComplianceValue(
            f"Unrecognized compliance value of type {type(value).__name__}"
        )

    @property
    def findings(self) -> Tuple[str, ...]:
        """Finding ids to evaluate, defaulting to one unnamed finding."""

        return self.finding_ids or ("",)


@dataclass(frozen=True, slots=True)
class ComplianceRecord:
    """A single rule evaluation outcome for one resource (and one finding)."""

    pack_name: str
    rule_id: str
    rule_original_name: str
    resource_id: str
    compliance: str
    rule_level: NagMessageLevel
    rule_info: str
    rule_explanation: str
    exception_reason: str = NOT_APPLICABLE_REASON
    finding_id: str = ""
    error_message: str = ""
    resource: "Resource | None" = field(default=None, compare=False, repr=False)

    @property
    def qualified_rule_id(self) -> str:
        """Rule id with the finding id appended in brackets when present."""

        return f"{self.rule_id}[{self.finding_id}]" if self.finding_id else self.rule_id

    def to_dict(self) -> Dict[str, Any]:
        level = self.rule_level.value if isinstance(self.rule_level, NagMessageLevel) else str(self.rule_level)
        return {
            "packName": self.pack_name,
            "ruleId": self.rule_id,
            "ruleOriginalName": self.rule_original_name,
            "resourceId": self.resource_id,
            "compliance": self.compliance,
            "exceptionReason": self.exception_reason,
            "ruleLevel": level,
            "ruleInfo": self.rule_info,
            "ruleExplanation": self.rule_explanation,
            "findingId": self.finding_id,
        }
