"""Suppression records and their metadata representation."""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple, Union

METADATA_KEY = "cdk_nag"
RULES_KEY = "rules_to_suppress"


@dataclass(frozen=True, slots=True)
class RegexAppliesTo:
    """Finding matcher written as ``/pattern/flags``."""

    regex: str


AppliesTo = Union[str, RegexAppliesTo]


@dataclass(frozen=True, slots=True)
class Suppression:
    """An operator-authored exception silencing a rule for a resource or stack.

    Without ``applies_to`` every finding of ``rule_id`` is silenced; with it,
    only findings matching one of its entries.
    """

    rule_id: str
    reason: str
    applies_to: Tuple[AppliesTo, ...] | None = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Suppression":
        """Build a suppression from authoring input or stored metadata.

        Both ``id`` and ``rule_id`` are accepted for the rule identifier and
        both ``applies_to`` and ``appliesTo`` for the finding matchers.
        Encoded reasons (``is_reason_encoded``) are decoded.
        """

        if not isinstance(data, Mapping):
            raise TypeError(f"Suppression must be a mapping, got {type(data).__name__}")

        rule_id = data.get("id", data.get("rule_id"))
        reason = data.get("reason")
        if data.get("is_reason_encoded") and isinstance(reason, str):
            reason = base64.b64decode(reason.encode("ascii")).decode("utf-8")

        raw_applies_to = data.get("applies_to", data.get("appliesTo"))
        applies_to: Tuple[AppliesTo, ...] | None = None
        if raw_applies_to is not None:
            entries = []
            for entry in raw_applies_to:
                if isinstance(entry, RegexAppliesTo):
                    entries.append(entry)
                elif isinstance(entry, Mapping) and "regex" in entry:
                    entries.append(RegexAppliesTo(regex=str(entry["regex"])))
                else:
                    entries.append(str(entry))
            applies_to = tuple(entries)

        return cls(
            rule_id="" if rule_id is None else str(rule_id),
            reason="" if reason is None else str(reason),
            applies_to=applies_to,
        )

    @classmethod
    def coerce(cls, value: "Suppression | Mapping[str, Any]") -> "Suppression":
        return value if isinstance(value, Suppression) else cls.from_mapping(value)

    def to_metadata(self) -> Dict[str, Any]:
        """Serialize for storage in template metadata.

        Reasons containing characters outside Latin-1 are base64 encoded so
        they survive template channels that are not Unicode safe.
        """

        payload: Dict[str, Any] = {"id": self.rule_id}
        if any(ord(char) > 255 for char in self.reason):
            payload["reason"] = base64.b64encode(self.reason.encode("utf-8")).decode("ascii")
            payload["is_reason_encoded"] = True
        else:
            payload["reason"] = self.reason
        if self.applies_to is not None:
            payload["applies_to"] = [
                {"regex": entry.regex} if isinstance(entry, RegexAppliesTo) else entry
                for entry in self.applies_to
            ]
        return payload
