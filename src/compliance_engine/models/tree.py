"""In-memory resource tree consumed by the rule engine.

The engine only depends on a narrow slice of an infrastructure-as-code
framework: a tree of constructs with stable paths, typed resources carrying
template metadata, template units (stacks) able to resolve deferred
references, and annotations attached to nodes. This module provides that
slice.
"""

from __future__ import annotations

import hashlib
import itertools
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional

_TOKEN_PATTERN = re.compile(r"\$\{Token\[[^\]]*\]\}")
_TOKEN_SPLIT = re.compile(r"(\$\{Token\[[^\]]*\]\})")
_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")
_HIDDEN_IDS = ("Default", "Resource")


class Token:
    """Encoding of deferred values into string markers.

    Deferred values are stringified as ``${Token[NAME.N]}`` markers that can
    be embedded in other strings and turned back into the original value by
    :meth:`Stack.resolve`. Markers are registered in the token table of the
    tree they were created in and are released together with that tree.
    """

    _counter = itertools.count(1)

    @classmethod
    def encode(cls, scope: "Construct", value: Any, display_hint: str = "TOKEN") -> str:
        hint = re.sub(r"[\[\]{}$]", "", display_hint) or "TOKEN"
        marker = f"${{Token[{hint}.{next(cls._counter)}]}}"
        scope.tokens[marker] = value
        return marker

    @staticmethod
    def lookup(scope: "Construct", marker: str) -> Any:
        return scope.tokens.get(marker, marker)

    @staticmethod
    def is_unresolved(value: Any) -> bool:
        """Return ``True`` when ``value`` is or contains a deferred value."""

        if isinstance(value, Reference):
            return True
        return isinstance(value, str) and bool(_TOKEN_PATTERN.search(value))

    @staticmethod
    def strip(value: str) -> str:
        """Remove every encoded token marker from ``value``."""

        return _TOKEN_PATTERN.sub("", value)


class Reference:
    """Deferred pointer at a resource, a parameter or one of their attributes."""

    def __init__(
        self,
        target: "Resource | str",
        attribute: str | None = None,
        *,
        scope: Optional["Construct"] = None,
    ) -> None:
        self.target = target
        self.attribute = attribute
        if scope is None and isinstance(target, Resource):
            scope = target
        self.scope = scope
        self._marker: str | None = None

    @property
    def target_id(self) -> str:
        if isinstance(self.target, Resource):
            return self.target.logical_id
        return str(self.target)

    def resolve(self) -> Dict[str, Any]:
        if self.attribute is None:
            return {"Ref": self.target_id}
        return {"Fn::GetAtt": [self.target_id, self.attribute]}

    def __str__(self) -> str:
        if self._marker is None:
            if self.scope is None:
                raise ValueError(f"Reference to {self.target_id} needs a scope to be encoded as a token")
            hint = self.target_id if self.attribute is None else f"{self.target_id}.{self.attribute}"
            self._marker = Token.encode(self.scope, self, hint)
        return self._marker

    def __repr__(self) -> str:
        return f"Reference({self.target_id!r}, attribute={self.attribute!r})"


@dataclass(frozen=True, slots=True)
class MetadataEntry:
    """A typed entry attached to a construct (annotations live here)."""

    type: str
    data: Any


class AnnotationKind(str, Enum):
    ERROR = "nag:error"
    WARNING = "nag:warning"
    INFO = "nag:info"


class Construct:
    """Node of the construct tree."""

    def __init__(self, scope: Optional["Construct"], id: str) -> None:
        if scope is not None and "/" in id:
            raise ValueError(f"Construct id may not contain '/': {id}")
        self.scope = scope
        self.id = id
        self.children: Dict[str, Construct] = {}
        self.node_metadata: List[MetadataEntry] = []
        # one token table per tree, shared by every node
        self.tokens: Dict[str, Any] = scope.tokens if scope is not None else {}
        if scope is not None:
            if id in scope.children:
                raise ValueError(f"There is already a construct with id '{id}' in {scope.path or 'the root'}")
            scope.children[id] = self

    # ------------------------------------------------------------------
    @property
    def path(self) -> str:
        ids: List[str] = []
        node: Optional[Construct] = self
        while node is not None and node.scope is not None:
            ids.append(node.id)
            node = node.scope
        return "/".join(reversed(ids))

    @property
    def root(self) -> "Construct":
        node = self
        while node.scope is not None:
            node = node.scope
        return node

    @property
    def stack(self) -> "Stack":
        node: Optional[Construct] = self
        while node is not None:
            if isinstance(node, Stack):
                return node
            node = node.scope
        raise LookupError(f"{self.path or self.id} is not defined within a stack")

    @property
    def default_child(self) -> Optional["Construct"]:
        for candidate in _HIDDEN_IDS:
            if candidate in self.children:
                return self.children[candidate]
        return None

    def find_all(self) -> List["Construct"]:
        """Return this construct and all descendants in pre-order."""

        return list(self._walk())

    def _walk(self) -> Iterator["Construct"]:
        yield self
        for child in list(self.children.values()):
            yield from child._walk()

    def add_node_metadata(self, type: str, data: Any) -> None:
        self.node_metadata.append(MetadataEntry(type=type, data=data))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.path or '<root>'!r})"


class App(Construct):
    """Root of the construct tree."""

    def __init__(self, outdir: str | Path | None = None) -> None:
        super().__init__(None, "")
        self.outdir: Path | None = Path(outdir) if outdir is not None else None


class Stack(Construct):
    """A template unit: an independently deployable collection of resources."""

    def __init__(
        self,
        scope: Optional[Construct],
        id: str,
        *,
        stack_name: str | None = None,
        template_metadata: Mapping[str, Any] | None = None,
    ) -> None:
        super().__init__(scope, id)
        self._stack_name = stack_name
        self.template_metadata: Dict[str, Any] = dict(template_metadata or {})

    @property
    def stack_name(self) -> str:
        return self._stack_name or self.id

    @property
    def nested(self) -> bool:
        return False

    @property
    def resources(self) -> List["Resource"]:
        return [node for node in self.find_all() if isinstance(node, Resource) and node.stack is self]

    def resolve(self, value: Any) -> Any:
        """Resolve deferred references within ``value`` into intrinsic functions."""

        if isinstance(value, Reference):
            return value.resolve()
        if isinstance(value, str):
            return self._resolve_string(value)
        if isinstance(value, Mapping):
            return {key: self.resolve(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self.resolve(item) for item in value]
        return value

    def _resolve_string(self, value: str) -> Any:
        if not _TOKEN_PATTERN.search(value):
            return value

        fragments = [fragment for fragment in _TOKEN_SPLIT.split(value) if fragment]
        resolved = [
            self.resolve(Token.lookup(self, fragment)) if _TOKEN_PATTERN.fullmatch(fragment) else fragment
            for fragment in fragments
        ]
        if len(resolved) == 1:
            return resolved[0]
        return {"Fn::Join": ["", resolved]}


class NestedStack(Stack):
    """A template unit deployed as a resource of its parent stack.

    The deployed name is only known at deploy time, so ``stack_name``
    contains an unresolved token.
    """

    def __init__(self, scope: Construct, id: str, **kwargs: Any) -> None:
        super().__init__(scope, id, **kwargs)
        self._name_token = Token.encode(self, Reference(f"{id}.StackName", scope=self), "AWS.StackName")

    @property
    def stack_name(self) -> str:
        parent = self.scope.stack if self.scope is not None else None
        prefix = parent.stack_name if parent is not None else ""
        return f"{prefix}-{self.id}-{self._name_token}"

    @property
    def nested(self) -> bool:
        return True


class Resource(Construct):
    """A typed resource declaration within a stack."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        type: str,
        properties: Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
        logical_id: str | None = None,
    ) -> None:
        super().__init__(scope, id)
        self.resource_type = type
        self.properties: Dict[str, Any] = dict(properties or {})
        self.template_metadata: Dict[str, Any] = dict(metadata or {})
        self._logical_id = logical_id

    @property
    def logical_id(self) -> str:
        if self._logical_id:
            return self._logical_id
        stack = self.stack
        components = self.path.split("/")[len(stack.path.split("/")) :] if stack.path else self.path.split("/")
        return make_unique_id(components)

    def get_metadata(self, key: str) -> Any:
        return self.template_metadata.get(key)

    def add_metadata(self, key: str, value: Any) -> None:
        self.template_metadata[key] = value

    def ref(self) -> Reference:
        return Reference(self)

    def get_att(self, attribute: str) -> Reference:
        return Reference(self, attribute)


class Annotations:
    """Attach error, warning and info messages to a construct."""

    def __init__(self, scope: Construct) -> None:
        self._scope = scope

    @classmethod
    def of(cls, scope: Construct) -> "Annotations":
        return cls(scope)

    def add_error(self, message: str) -> None:
        self._scope.add_node_metadata(AnnotationKind.ERROR.value, message)

    def add_warning(self, message: str) -> None:
        self._scope.add_node_metadata(AnnotationKind.WARNING.value, message)

    def add_info(self, message: str) -> None:
        self._scope.add_node_metadata(AnnotationKind.INFO.value, message)


@dataclass(frozen=True, slots=True)
class Annotation:
    path: str
    kind: AnnotationKind
    message: str


def collect_annotations(root: Construct) -> List[Annotation]:
    """Return every annotation attached to ``root`` and its descendants."""

    kinds = {kind.value: kind for kind in AnnotationKind}
    annotations: List[Annotation] = []
    for node in root.find_all():
        for entry in node.node_metadata:
            kind = kinds.get(entry.type)
            if kind is not None:
                annotations.append(Annotation(path=node.path, kind=kind, message=str(entry.data)))
    return annotations


def make_unique_id(components: List[str]) -> str:
    """Build a file-system and identifier safe id from path components.

    Unresolved tokens are removed before hashing so the result never depends
    on deploy-time values.
    """

    cleaned = [Token.strip(component) for component in components]
    cleaned = [component for component in cleaned if component and component not in _HIDDEN_IDS]
    if not cleaned:
        return ""
    human = "".join(_NON_ALNUM.sub("", component) for component in cleaned)
    if len(cleaned) == 1:
        return human
    digest = hashlib.md5("/".join(cleaned).encode("utf-8")).hexdigest()[:8].upper()
    return f"{human}{digest}"


def unique_id(construct: Construct) -> str:
    return make_unique_id(construct.path.split("/"))
