"""Rule packs: apply rules to resources and fan the outcomes out to sinks."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Iterable, List, Sequence

from ..loggers import (
    AnnotationLogger,
    NagLogger,
    NagReportFormat,
    ReportLogger,
    create_report_logger,
)
from ..models import (
    NOT_APPLICABLE_REASON,
    VALIDATION_FAILURE_ID,
    Annotations,
    ComplianceRecord,
    ComplianceResult,
    Construct,
    NagMessageLevel,
    NagRuleCompliance,
    NagRulePostValidationStates,
    Resource,
    Suppression,
)
from ..suppressions import (
    INagSuppressionIgnore,
    SuppressionIgnoreInput,
    SuppressionIgnoreNever,
    SuppressionIgnoreOr,
    SuppressionResolver,
)

logger = logging.getLogger(__name__)

RuleCallable = Callable[[Resource], Any]

VALIDATION_FAILURE_MESSAGE = "The rule did not return a recognized compliance value."


class RuleEvaluationError(RuntimeError):
    """Raised when a rule cannot be evaluated against a resource."""


@dataclass(slots=True)
class RuleDefinition:
    """A rule registered on a pack together with how it is reported."""

    rule: RuleCallable
    level: NagMessageLevel
    info: str
    explanation: str
    rule_suffix_override: str | None = None
    ignore_suppression_condition: INagSuppressionIgnore | None = None

    @property
    def name(self) -> str:
        return self.rule_suffix_override or rule_name(self.rule)


def rule_name(rule: RuleCallable) -> str:
    return getattr(rule, "__name__", type(rule).__name__)


class NagPack(ABC):
    """Base class for all rule packs.

    A pack evaluates its rules against resources as they are visited and
    reports each outcome to every registered sink: the annotation sink
    first, then one report sink per configured format, then any additional
    loggers.
    """

    pack_name: str = ""
    pack_global_suppression_ignore: INagSuppressionIgnore | None = None

    def __init__(
        self,
        *,
        verbose: bool = False,
        log_ignores: bool = False,
        reports: bool = True,
        report_formats: Sequence[NagReportFormat | str] | None = None,
        additional_loggers: Iterable[NagLogger] | None = None,
        suppression_ignore_condition: INagSuppressionIgnore | None = None,
        fail_on_error: bool = True,
        validation_failure_level: NagMessageLevel | str = NagMessageLevel.ERROR,
    ) -> None:
        self.verbose = verbose
        self.log_ignores = log_ignores
        self.reports = reports
        self.fail_on_error = fail_on_error
        self.validation_failure_level = NagMessageLevel(validation_failure_level)
        self.user_suppression_ignore = suppression_ignore_condition
        self.resolver = SuppressionResolver()
        self.halting_findings: List[str] = []

        self.loggers: List[NagLogger] = [AnnotationLogger(verbose=verbose, log_ignores=log_ignores)]
        if reports:
            formats = list(report_formats) if report_formats else [NagReportFormat.CSV]
            for report_format in dict.fromkeys(NagReportFormat(item) for item in formats):
                self.loggers.append(create_report_logger(report_format, verbose=verbose))
        self.loggers.extend(additional_loggers or [])

    @property
    def report_loggers(self) -> List[ReportLogger]:
        return [sink for sink in self.loggers if isinstance(sink, ReportLogger)]

    @abstractmethod
    def visit(self, node: Construct) -> None:
        """Evaluate the pack's rules against ``node``."""

    # ------------------------------------------------------------------
    def apply_rule(
        self,
        *,
        rule: RuleCallable,
        level: NagMessageLevel,
        info: str,
        explanation: str,
        node: Resource,
        rule_suffix_override: str | None = None,
        ignore_suppression_condition: INagSuppressionIgnore | None = None,
    ) -> None:
        """Evaluate one rule against one resource and report the outcome."""

        if not self.pack_name:
            raise RuleEvaluationError(
                "The NagPack does not have a pack name, therefore the rule could not be applied. "
                "Set a pack_name on the NagPack."
            )

        rule_id = f"{self.pack_name}-{rule_suffix_override or rule_name(rule)}"
        fields = {
            "pack_name": self.pack_name,
            "rule_id": rule_id,
            "rule_original_name": rule_name(rule),
            "resource_id": node.path,
            "rule_level": NagMessageLevel(level),
            "rule_info": info,
            "rule_explanation": explanation,
            "resource": node,
        }
        condition = self._ignore_condition(ignore_suppression_condition)

        try:
            result = ComplianceResult.from_value(rule(node))
        except Exception as exc:
            message = str(exc) or VALIDATION_FAILURE_MESSAGE
            logger.debug("Rule %s failed on %s: %s", rule_id, node.path, message, exc_info=True)
            self._report_error(fields, message, condition)
            return

        if result.compliance == NagRuleCompliance.COMPLIANT:
            self._emit("on_compliance", ComplianceRecord(compliance=result.compliance.value, **fields))
            return
        if result.compliance == NagRuleCompliance.NOT_APPLICABLE:
            self._emit("on_not_applicable", ComplianceRecord(compliance=result.compliance.value, **fields))
            return

        for finding_id in result.findings:
            suppression = self._find_suppression(node, rule_id, finding_id, fields["rule_level"], condition)
            if suppression is not None:
                record = ComplianceRecord(
                    compliance=NagRulePostValidationStates.SUPPRESSED.value,
                    exception_reason=suppression.reason,
                    finding_id=finding_id,
                    **fields,
                )
                self._emit("on_suppressed", record)
                continue

            record = ComplianceRecord(
                compliance=NagRuleCompliance.NON_COMPLIANT.value,
                finding_id=finding_id,
                **fields,
            )
            self._emit("on_non_compliance", record)
            if record.rule_level == NagMessageLevel.ERROR:
                self.halting_findings.append(f"[{node.path}] {record.qualified_rule_id}: {info}")

    def flush(self, outdir: str | Path) -> List[Path]:
        """Write every report sink's files to ``outdir``."""

        written: List[Path] = []
        for sink in self.report_loggers:
            written.extend(sink.flush(outdir))
        return written

    def reset(self) -> None:
        """Forget halting findings and report lines from a previous visit."""

        self.halting_findings.clear()
        for sink in self.report_loggers:
            sink.reset()

    # ------------------------------------------------------------------
    def _report_error(self, fields: dict, message: str, condition: INagSuppressionIgnore) -> None:
        node: Resource = fields["resource"]
        rule_id: str = fields["rule_id"]
        error_fields = {**fields, "rule_level": self.validation_failure_level}

        suppression = self._find_suppression(
            node,
            VALIDATION_FAILURE_ID,
            rule_id,
            self.validation_failure_level,
            condition,
        )
        if suppression is not None:
            record = ComplianceRecord(
                compliance=NagRulePostValidationStates.SUPPRESSED.value,
                exception_reason=suppression.reason,
                error_message=message,
                **error_fields,
            )
            self._emit("on_suppressed_error", record)
            return

        record = ComplianceRecord(
            compliance=NagRulePostValidationStates.UNKNOWN.value,
            exception_reason=NOT_APPLICABLE_REASON,
            error_message=message,
            **error_fields,
        )
        self._emit("on_error", record)
        if self.validation_failure_level == NagMessageLevel.ERROR:
            self.halting_findings.append(f"[{node.path}] {VALIDATION_FAILURE_ID}[{rule_id}]: {message}")

    def _find_suppression(
        self,
        node: Resource,
        rule_id: str,
        finding_id: str,
        level: NagMessageLevel,
        condition: INagSuppressionIgnore,
    ) -> Suppression | None:
        for suppression in self.resolver.collect(node):
            if not self.resolver.matches(suppression, rule_id, finding_id):
                continue

            ignore_message = condition.create_message(
                SuppressionIgnoreInput(
                    resource=node,
                    reason=suppression.reason,
                    rule_id=rule_id,
                    finding_id=finding_id,
                    rule_level=level,
                )
            )
            if ignore_message:
                qualified = f"{rule_id}[{finding_id}]" if finding_id else rule_id
                message = f"The suppression for {qualified} was ignored for the following reason(s).\n\t{ignore_message}"
                logger.warning("%s: %s", node.path, message)
                Annotations.of(node).add_info(message)
                continue
            return suppression
        return None

    def _ignore_condition(self, rule_condition: INagSuppressionIgnore | None) -> INagSuppressionIgnore:
        return SuppressionIgnoreOr(
            self.user_suppression_ignore or SuppressionIgnoreNever(),
            self.pack_global_suppression_ignore or SuppressionIgnoreNever(),
            rule_condition or SuppressionIgnoreNever(),
        )

    def _emit(self, event: str, record: ComplianceRecord) -> None:
        for sink in self.loggers:
            getattr(sink, event)(record)


class RuleSetPack(NagPack):
    """A pack applying a fixed, ordered list of rules to every resource."""

    def __init__(self, pack_name: str, rules: Sequence[RuleDefinition] = (), **options: Any) -> None:
        super().__init__(**options)
        self.pack_name = pack_name
        self.rules: List[RuleDefinition] = list(rules)

    def add_rule(self, definition: RuleDefinition) -> None:
        self.rules.append(definition)

    def visit(self, node: Construct) -> None:
        if not isinstance(node, Resource):
            return
        for definition in self.rules:
            self.apply_rule(
                rule=definition.rule,
                level=definition.level,
                info=definition.info,
                explanation=definition.explanation,
                node=node,
                rule_suffix_override=definition.rule_suffix_override,
                ignore_suppression_condition=definition.ignore_suppression_condition,
            )
