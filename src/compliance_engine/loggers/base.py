"""Contract implemented by every compliance record sink."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ..models import ComplianceRecord


class UnrecognizedLevelError(ValueError):
    """Raised when a sink receives a record with an unknown rule level."""


class NagLogger(ABC):
    """Receives one call per rule evaluation outcome."""

    @abstractmethod
    def on_compliance(self, record: ComplianceRecord) -> None:
        """A resource passed the rule."""

    @abstractmethod
    def on_non_compliance(self, record: ComplianceRecord) -> None:
        """A resource failed the rule and the finding is not suppressed."""

    @abstractmethod
    def on_suppressed(self, record: ComplianceRecord) -> None:
        """A resource failed the rule and the finding is suppressed."""

    @abstractmethod
    def on_error(self, record: ComplianceRecord) -> None:
        """The rule raised or returned an unusable value."""

    @abstractmethod
    def on_suppressed_error(self, record: ComplianceRecord) -> None:
        """The rule failed to evaluate and the validation failure is suppressed."""

    @abstractmethod
    def on_not_applicable(self, record: ComplianceRecord) -> None:
        """The rule does not apply to the resource."""


class RecordCollector(NagLogger):
    """Keeps every record in memory, in the order received."""

    def __init__(self, *, include_not_applicable: bool = False) -> None:
        self.include_not_applicable = include_not_applicable
        self.records: list[ComplianceRecord] = []

    def on_compliance(self, record: ComplianceRecord) -> None:
        self.records.append(record)

    def on_non_compliance(self, record: ComplianceRecord) -> None:
        self.records.append(record)

    def on_suppressed(self, record: ComplianceRecord) -> None:
        self.records.append(record)

    def on_error(self, record: ComplianceRecord) -> None:
        self.records.append(record)

    def on_suppressed_error(self, record: ComplianceRecord) -> None:
        self.records.append(record)

    def on_not_applicable(self, record: ComplianceRecord) -> None:
        if self.include_not_applicable:
            self.records.append(record)
