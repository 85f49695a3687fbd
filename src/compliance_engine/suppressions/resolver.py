"""Validation, storage and matching of suppressions."""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from ..models import (
    METADATA_KEY,
    RULES_KEY,
    VALIDATION_FAILURE_ID,
    RegexAppliesTo,
    Resource,
    Stack,
    Suppression,
)

logger = logging.getLogger(__name__)

MIN_REASON_LENGTH = 10
SUPPRESSION_HELP = (
    "A suppression needs an 'id', a 'reason' of 10 characters or more, and "
    "finding ids listed in 'applies_to' rather than in the 'id'."
)

_REGEX_LITERAL = re.compile(r"/(.*)/([a-z]*)", re.DOTALL)
_FINDING_IN_ID = re.compile(r"\[.*\]")
_FLAG_MAP = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "g": 0,
    "u": 0,
    "y": 0,
}


class SuppressionFormatError(ValueError):
    """Raised when a suppression is malformed."""


class PathNotFoundError(LookupError):
    """Raised when a suppression path matches no construct."""


@lru_cache(maxsize=256)
def compile_applies_to(expression: str) -> "re.Pattern[str]":
    """Compile a ``/pattern/flags`` finding matcher."""

    match = _REGEX_LITERAL.fullmatch(expression)
    if not match:
        raise SuppressionFormatError(f"Invalid regular expression [{expression}]")

    pattern, flag_letters = match.groups()
    flags = 0
    for letter in flag_letters:
        if letter not in _FLAG_MAP:
            raise SuppressionFormatError(f"Invalid regular expression [{expression}]")
        flags |= _FLAG_MAP[letter]

    try:
        return re.compile(pattern, flags)
    except re.error as exc:
        raise SuppressionFormatError(f"Invalid regular expression [{expression}]") from exc


def format_errors(suppression: Suppression) -> str:
    """Return a description of everything wrong with ``suppression``."""

    errors = ""
    if not suppression.rule_id:
        errors += "The suppression must have an 'id'. "
    finding = _FINDING_IN_ID.search(suppression.rule_id)
    if finding:
        errors += (
            f"The suppression 'id' contains a finding '{finding.group(0)}'. "
            "A finding must be suppressed using 'applies_to'. "
        )
    if len(suppression.reason) < MIN_REASON_LENGTH:
        errors += "The suppression must have a 'reason' of 10 characters or more. "
    for entry in suppression.applies_to or ():
        if isinstance(entry, RegexAppliesTo):
            try:
                compile_applies_to(entry.regex)
            except SuppressionFormatError as exc:
                errors += f"{exc} "

    if not errors:
        return ""
    return f"\n\tError(s) detected in suppression with 'id' {suppression.rule_id}. {errors.strip()}"


class SuppressionResolver:
    """Reads, validates and matches suppressions attached to the tree.

    Metadata is re-read on every call; nothing is cached between
    evaluations so suppressions attached mid-traversal are honoured.
    """

    # ------------------------------------------------------------------
    def validate(
        self,
        suppressions: Iterable[Suppression | Mapping[str, Any]],
        owner_id: str = "",
    ) -> List[Suppression]:
        """Coerce and validate ``suppressions``, raising on the first bad batch."""

        try:
            coerced = [Suppression.coerce(item) for item in suppressions]
        except (TypeError, ValueError) as exc:
            raise SuppressionFormatError(f"{owner_id}: {exc}\n{SUPPRESSION_HELP}") from exc

        errors = "".join(format_errors(item) for item in coerced)
        if errors:
            raise SuppressionFormatError(f"{owner_id}: {errors}\n{SUPPRESSION_HELP}")
        return coerced

    # ------------------------------------------------------------------
    def get_suppressions(self, target: Resource | Stack) -> List[Suppression]:
        """Return the suppressions stored on a resource or stack, unvalidated."""

        return [Suppression.from_mapping(entry) for entry in self._stored(target)]

    def set_suppressions(self, target: Resource | Stack, suppressions: Sequence[Suppression]) -> None:
        entries = [item.to_metadata() for item in suppressions]
        self._store(target, entries)

    def add_suppressions(self, target: Resource | Stack, suppressions: Sequence[Suppression]) -> None:
        """Merge ``suppressions`` into the target's metadata without duplicates."""

        merged = merge_metadata(self._stored(target), suppressions)
        self._store(target, merged)
        logger.debug("Stored %d suppression(s) on %s", len(merged), target.path)

    # ------------------------------------------------------------------
    def collect(self, resource: Resource) -> List[Suppression]:
        """Return the resource's own suppressions followed by its stack's."""

        entries = [*self._stored(resource), *self._stored(resource.stack)]
        return self.validate(entries, owner_id=resource.id)

    # ------------------------------------------------------------------
    @staticmethod
    def matches(suppression: Suppression, rule_id: str, finding_id: str) -> bool:
        # A blanket rule suppression also covers that rule's validation failures.
        if (
            rule_id == VALIDATION_FAILURE_ID
            and suppression.applies_to is None
            and suppression.rule_id == finding_id
        ):
            return True

        if suppression.rule_id != rule_id:
            return False

        if suppression.applies_to is None:
            return True

        if not finding_id:
            return False

        for entry in suppression.applies_to:
            if isinstance(entry, RegexAppliesTo):
                if compile_applies_to(entry.regex).search(finding_id):
                    return True
            elif entry == finding_id:
                return True
        return False

    def find_match(
        self,
        suppressions: Iterable[Suppression],
        rule_id: str,
        finding_id: str,
    ) -> Optional[Suppression]:
        for suppression in suppressions:
            if self.matches(suppression, rule_id, finding_id):
                return suppression
        return None

    # ------------------------------------------------------------------
    @staticmethod
    def _stored(target: Resource | Stack) -> List[Any]:
        if isinstance(target, Stack):
            container = target.template_metadata.get(METADATA_KEY)
        else:
            container = target.get_metadata(METADATA_KEY)

        if not isinstance(container, Mapping):
            return []
        rules = container.get(RULES_KEY)
        if not isinstance(rules, list):
            return []
        return list(rules)

    @staticmethod
    def _store(target: Resource | Stack, entries: List[Any]) -> None:
        if isinstance(target, Stack):
            current = target.template_metadata.get(METADATA_KEY)
            container = dict(current) if isinstance(current, Mapping) else {}
            container[RULES_KEY] = entries
            target.template_metadata[METADATA_KEY] = container
        else:
            current = target.get_metadata(METADATA_KEY)
            container = dict(current) if isinstance(current, Mapping) else {}
            container[RULES_KEY] = entries
            target.add_metadata(METADATA_KEY, container)


def merge_metadata(existing: Iterable[Any], suppressions: Iterable[Suppression]) -> List[Any]:
    """Append serialized ``suppressions`` to ``existing``, dropping duplicates."""

    merged: dict[str, Any] = {}
    for entry in [*existing, *(item.to_metadata() for item in suppressions)]:
        key = json.dumps(entry, sort_keys=True, ensure_ascii=False)
        merged.setdefault(key, entry)
    return list(merged.values())
