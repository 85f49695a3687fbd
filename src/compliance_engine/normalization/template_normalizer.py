"""Conversion helpers that turn parsed templates into a resource tree."""

from __future__ import annotations

import re
from typing import Any, Iterable, Mapping

from ..adapters import TemplateDocument
from ..models import App, Construct, NestedStack, Resource, Stack

CDK_PATH_KEY = "aws:cdk:path"
STACK_NAME_KEY = "StackName"
NESTED_STACKS_KEY = "NestedStacks"

_INVALID_ID_CHARS = re.compile(r"/+")


class TemplateNormalizer:
    """Build an :class:`App` with one stack per template document."""

    def normalize(self, documents: Iterable[TemplateDocument], app: App | None = None) -> App:
        """Return ``app`` (or a new one) populated from ``documents``."""

        root = app if app is not None else App()
        for document in documents:
            metadata = document.body.get("Metadata")
            stack_name = document.name
            if isinstance(metadata, Mapping) and metadata.get(STACK_NAME_KEY):
                stack_name = str(metadata[STACK_NAME_KEY])
            stack = Stack(
                root,
                self._construct_id(stack_name, root),
                stack_name=stack_name,
                template_metadata=metadata if isinstance(metadata, Mapping) else None,
            )
            self._populate(stack, document.body)
        return root

    # ------------------------------------------------------------------
    def _populate(self, stack: Stack, body: Mapping[str, Any]) -> None:
        resources = body.get("Resources")
        if resources is None:
            resources = {}
        if not isinstance(resources, Mapping):
            raise ValueError(f"Resources of stack {stack.stack_name} must be a mapping")

        for logical_id, definition in resources.items():
            if not isinstance(definition, Mapping):
                raise ValueError(f"Resource {logical_id} in stack {stack.stack_name} must be a mapping")
            self._add_resource(stack, str(logical_id), definition)

        nested = body.get(NESTED_STACKS_KEY)
        if nested is None:
            nested = {}
        if not isinstance(nested, Mapping):
            raise ValueError(f"{NESTED_STACKS_KEY} of stack {stack.stack_name} must be a mapping")
        for nested_id, nested_body in nested.items():
            if not isinstance(nested_body, Mapping):
                raise ValueError(f"Nested stack {nested_id} in {stack.stack_name} must be a mapping")
            metadata = nested_body.get("Metadata")
            child = NestedStack(
                stack,
                self._construct_id(str(nested_id), stack),
                template_metadata=metadata if isinstance(metadata, Mapping) else None,
            )
            self._populate(child, nested_body)

    def _add_resource(self, stack: Stack, logical_id: str, definition: Mapping[str, Any]) -> Resource:
        metadata = definition.get("Metadata")
        metadata = dict(metadata) if isinstance(metadata, Mapping) else {}
        scope, construct_id = self._placement(stack, logical_id, metadata.get(CDK_PATH_KEY))

        return Resource(
            scope,
            construct_id,
            type=str(definition.get("Type", "")),
            properties=definition.get("Properties") or {},
            metadata=metadata,
            logical_id=logical_id,
        )

    def _placement(self, stack: Stack, logical_id: str, cdk_path: Any) -> tuple[Construct, str]:
        if not isinstance(cdk_path, str) or not cdk_path.strip("/"):
            return stack, self._construct_id(logical_id, stack)

        components = [component for component in cdk_path.split("/") if component]
        stack_components = stack.path.split("/")
        if components[: len(stack_components)] == stack_components:
            components = components[len(stack_components) :]
        elif components[0] == stack.id:
            components = components[1:]
        if not components:
            return stack, self._construct_id(logical_id, stack)

        scope: Construct = stack
        for component in components[:-1]:
            existing = scope.children.get(component)
            scope = existing if existing is not None else Construct(scope, component)

        if components[-1] in scope.children:
            return stack, self._construct_id(logical_id, stack)
        return scope, components[-1]

    @staticmethod
    def _construct_id(candidate: str, scope: Construct) -> str:
        base = _INVALID_ID_CHARS.sub("-", candidate).strip("-") or "Unnamed"
        construct_id = base
        counter = 2
        while construct_id in scope.children:
            construct_id = f"{base}{counter}"
            counter += 1
        return construct_id
