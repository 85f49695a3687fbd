"""Sink that attaches human readable messages to the offending resources."""

from __future__ import annotations

from ..models import (
    SUPPRESSION_ID,
    VALIDATION_FAILURE_ID,
    Annotations,
    ComplianceRecord,
    NagMessageLevel,
)
from .base import NagLogger, UnrecognizedLevelError


class AnnotationLogger(NagLogger):
    """Report findings as error, warning or info annotations on resources.

    Suppressed findings are only reported (as info) when ``log_ignores`` is
    set; ``verbose`` appends the rule explanation to every message.
    """

    def __init__(self, *, verbose: bool = False, log_ignores: bool = False) -> None:
        self.verbose = verbose
        self.log_ignores = log_ignores
        self.suppression_id = SUPPRESSION_ID

    def on_compliance(self, record: ComplianceRecord) -> None:
        return None

    def on_non_compliance(self, record: ComplianceRecord) -> None:
        message = self.create_message(
            record.rule_id,
            record.finding_id,
            record.rule_info,
            record.rule_explanation,
        )
        self._annotate(record, message)

    def on_suppressed(self, record: ComplianceRecord) -> None:
        if not self.log_ignores:
            return
        message = self.create_message(
            self.suppression_id,
            record.finding_id,
            f"{record.rule_id} was triggered but suppressed.",
            f'Provided reason: "{record.exception_reason}"',
        )
        Annotations.of(record.resource).add_info(message)

    def on_error(self, record: ComplianceRecord) -> None:
        information = (
            f"'{record.rule_id}' threw an error during validation. This is generally caused "
            "by a parameter referencing an intrinsic function. You can suppress the "
            f'"{VALIDATION_FAILURE_ID}" to get rid of this error. For more details enable '
            "verbose logging."
        )
        message = self.create_message(
            VALIDATION_FAILURE_ID,
            record.rule_id,
            information,
            record.error_message,
        )
        self._annotate(record, message)

    def on_suppressed_error(self, record: ComplianceRecord) -> None:
        if not self.log_ignores:
            return
        message = self.create_message(
            self.suppression_id,
            record.rule_id,
            f"{VALIDATION_FAILURE_ID} was triggered but suppressed.",
            record.exception_reason,
        )
        Annotations.of(record.resource).add_info(message)

    def on_not_applicable(self, record: ComplianceRecord) -> None:
        return None

    # ------------------------------------------------------------------
    def create_message(self, rule_id: str, finding_id: str, info: str, explanation: str) -> str:
        message = f"{rule_id}[{finding_id}]: {info}" if finding_id else f"{rule_id}: {info}"
        return f"{message} {explanation}\n" if self.verbose else f"{message}\n"

    def _annotate(self, record: ComplianceRecord, message: str) -> None:
        annotations = Annotations.of(record.resource)
        if record.rule_level == NagMessageLevel.ERROR:
            annotations.add_error(message)
        elif record.rule_level == NagMessageLevel.WARN:
            annotations.add_warning(message)
        elif record.rule_level == NagMessageLevel.INFO:
            annotations.add_info(message)
        else:
            raise UnrecognizedLevelError(f"Unrecognized message level: {record.rule_level!r}")
