"""Helpers for writing rule predicates."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from ..models import Resource

_PRIMITIVES = (str, int, float, bool, type(None))


class NagRules:
    """Resolution helpers shared by rule predicates."""

    @staticmethod
    def resolve_if_primitive(node: Resource, parameter: Any) -> Any:
        """Return the resolved value, raising when it is not a primitive.

        Rules use this where a literal must be known to decide compliance;
        the raised error turns the evaluation into a validation failure.
        """

        resolved = node.stack.resolve(parameter)
        if not isinstance(resolved, _PRIMITIVES):
            raise ValueError(
                f'The parameter resolved to a non-primitive value "{json.dumps(resolved, default=str)}", '
                "therefore the rule could not be validated."
            )
        return resolved

    @staticmethod
    def resolve_resource_from_intrinsic(node: Resource, parameter: Any) -> Any:
        """Return the logical id behind a ``Ref`` or ``Fn::GetAtt``, else the resolved value."""

        resolved = node.stack.resolve(parameter)
        if isinstance(resolved, Mapping):
            ref = resolved.get("Ref")
            if ref is not None:
                return ref
            get_att = resolved.get("Fn::GetAtt")
            if isinstance(get_att, list) and get_att:
                return get_att[0]
        return resolved
