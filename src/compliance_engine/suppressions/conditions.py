"""Conditions that cause a matching suppression to be ignored."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..models import NagMessageLevel

if TYPE_CHECKING:  # pragma: no cover - imported for type checking only
    from ..models import Resource


@dataclass(frozen=True, slots=True)
class SuppressionIgnoreInput:
    """Context handed to an ignore condition for one matched suppression."""

    resource: "Resource"
    reason: str
    rule_id: str
    finding_id: str
    rule_level: NagMessageLevel


class INagSuppressionIgnore(ABC):
    """A condition deciding whether a matching suppression should be ignored."""

    @abstractmethod
    def create_message(self, input: SuppressionIgnoreInput) -> str:
        """Return why the suppression is ignored, or an empty string to honour it."""


class SuppressionIgnoreNever(INagSuppressionIgnore):
    def create_message(self, input: SuppressionIgnoreInput) -> str:
        return ""


class SuppressionIgnoreAlways(INagSuppressionIgnore):
    """Always ignore the suppression."""

    def __init__(self, trigger_message: str) -> None:
        if not trigger_message:
            raise ValueError("provide a trigger_message for SuppressionIgnoreAlways")
        self.trigger_message = trigger_message

    def create_message(self, input: SuppressionIgnoreInput) -> str:
        return self.trigger_message


class SuppressionIgnoreErrors(INagSuppressionIgnore):
    """Ignore suppressions of rules reported at the error level."""

    def create_message(self, input: SuppressionIgnoreInput) -> str:
        if input.rule_level == NagMessageLevel.ERROR:
            return (
                f"{input.rule_id} is an error-level rule and its findings may not be "
                f'suppressed. Provided reason: "{input.reason}"'
            )
        return ""


class SuppressionIgnoreAnd(INagSuppressionIgnore):
    """Ignore the suppression only when every condition does."""

    def __init__(self, *conditions: INagSuppressionIgnore) -> None:
        if not conditions:
            raise ValueError("SuppressionIgnoreAnd needs at least one condition")
        self._conditions = conditions

    def create_message(self, input: SuppressionIgnoreInput) -> str:
        messages = []
        for condition in self._conditions:
            message = condition.create_message(input)
            if not message:
                return ""
            messages.append(message)
        return "\n\t".join(messages)


class SuppressionIgnoreOr(INagSuppressionIgnore):
    """Ignore the suppression when any condition does."""

    def __init__(self, *conditions: INagSuppressionIgnore) -> None:
        if not conditions:
            raise ValueError("SuppressionIgnoreOr needs at least one condition")
        self._conditions = conditions

    def create_message(self, input: SuppressionIgnoreInput) -> str:
        messages = [condition.create_message(input) for condition in self._conditions]
        return "\n\t".join(message for message in messages if message)
