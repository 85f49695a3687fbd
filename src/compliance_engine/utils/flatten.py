"""Flatten deferred references into comparable strings."""

from __future__ import annotations

import json
from typing import Any, Mapping

from ..models.tree import Reference


def flatten_reference(reference: Any) -> str:
    """Turn a reference expression into a flat string for easy matching.

    ``Ref`` becomes ``<target>``, ``Fn::GetAtt`` becomes ``<target.attr>``,
    ``Fn::Join`` joins its flattened items, ``Fn::Sub`` and
    ``Fn::ImportValue`` flatten their body, and in strings every ``${``
    becomes ``<`` and every ``}`` becomes ``>``. Anything else is serialized
    as JSON. Never raises.
    """

    try:
        return _visit(reference)
    except Exception:
        return _serialize(reference)


def _visit(node: Any) -> str:
    if node is None:
        return ""
    if isinstance(node, str):
        return node.replace("${", "<").replace("}", ">")
    if isinstance(node, Reference):
        return _visit(node.resolve())
    if isinstance(node, Mapping):
        if node.get("Fn::Join"):
            delimiter, items = node["Fn::Join"]
            return str(delimiter).join(_visit(item) for item in items)
        if node.get("Fn::Sub"):
            body = node["Fn::Sub"]
            if isinstance(body, (list, tuple)) and body and isinstance(body[0], str):
                body = body[0]
            return _visit(body)
        if node.get("Fn::GetAtt"):
            target, attribute = node["Fn::GetAtt"]
            return f"<{_visit(target)}.{_visit(attribute)}>"
        if node.get("Fn::ImportValue"):
            return _visit(node["Fn::ImportValue"])
        if node.get("Ref"):
            return f"<{_visit(node['Ref'])}>"

    return _serialize(node)


def _serialize(node: Any) -> str:
    try:
        return json.dumps(node, separators=(",", ":"), ensure_ascii=False, default=str)
    except Exception:
        pass
    try:
        return repr(node)
    except Exception:
        return f"<{type(node).__name__}>"
