"""Public API for attaching suppressions to resources and stacks."""

from __future__ import annotations

import logging
import re
from typing import Any, Mapping, Sequence

from ..models import Construct, Resource, Stack, Suppression
from ..utils import flatten_reference
from .resolver import PathNotFoundError, SuppressionResolver

logger = logging.getLogger(__name__)

SuppressionInput = Suppression | Mapping[str, Any]

_resolver = SuppressionResolver()


class NagSuppressions:
    """Helpers to add suppressions to resources and stacks."""

    @staticmethod
    def add_stack_suppressions(
        stack: Stack,
        suppressions: Sequence[SuppressionInput],
        apply_to_nested_stacks: bool = False,
    ) -> None:
        """Suppress rules for every resource of ``stack`` (and optionally nested stacks)."""

        validated = _resolver.validate(suppressions, owner_id=stack.id)
        stacks = (
            [node for node in stack.find_all() if isinstance(node, Stack)]
            if apply_to_nested_stacks
            else [stack]
        )
        for target in stacks:
            _resolver.add_suppressions(target, validated)

    @staticmethod
    def add_resource_suppressions(
        construct: Construct,
        suppressions: Sequence[SuppressionInput],
        apply_to_children: bool = False,
    ) -> None:
        """Suppress rules for a resource, or the resource behind a wrapper construct."""

        validated = _resolver.validate(suppressions, owner_id=construct.id)
        constructs = construct.find_all() if apply_to_children else [construct]
        for child in constructs:
            candidate = child.default_child or child
            if isinstance(candidate, Resource):
                _resolver.add_suppressions(candidate, validated)

    @staticmethod
    def add_resource_suppressions_by_path(
        stack: Stack,
        path: Any,
        suppressions: Sequence[SuppressionInput],
        apply_to_children: bool = False,
    ) -> None:
        """Suppress rules for the construct at ``path`` within ``stack``.

        ``path`` may name the construct itself or its ``Resource`` child.
        """

        raw_path = path if isinstance(path, str) else flatten_reference(path)
        fixed_path = re.sub(r"^/", "", raw_path)

        added = False
        for child in stack.find_all():
            if child.path == fixed_path or f"{child.path}/Resource" == fixed_path:
                NagSuppressions.add_resource_suppressions(child, suppressions, apply_to_children)
                added = True

        if not added:
            raise PathNotFoundError(
                f'Suppression path "{raw_path}" did not match any resource. This can occur '
                "when a resource does not exist or if a suppression is applied before a "
                "resource is created."
            )
        logger.debug("Applied suppressions at path %s", fixed_path)


add_stack_suppressions = NagSuppressions.add_stack_suppressions
add_resource_suppressions = NagSuppressions.add_resource_suppressions
add_resource_suppressions_by_path = NagSuppressions.add_resource_suppressions_by_path
