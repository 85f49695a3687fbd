from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List

import yaml

logger = logging.getLogger(__name__)

TEMPLATE_PATTERNS = ("*.template.json", "*.template.yaml", "*.template.yml")
_YAML_SUFFIXES = {".yaml", ".yml"}
_BARE_INTRINSICS = {"Ref", "Condition"}


class TemplateLoaderError(RuntimeError):
    """Exception raised when template ingestion fails."""


@dataclass(slots=True)
class TemplateDocument:
    """A parsed template together with where it was read from."""

    path: Path
    body: Dict[str, Any]

    @property
    def name(self) -> str:
        name = self.path.name
        for suffix in (".template.json", ".template.yaml", ".template.yml"):
            if name.endswith(suffix):
                return name[: -len(suffix)]
        return self.path.stem


class IntrinsicFunctionLoader(yaml.SafeLoader):
    """YAML loader expanding short-form intrinsic tags such as ``!Ref``."""


def _construct_intrinsic(loader: yaml.SafeLoader, tag_suffix: str, node: yaml.Node) -> Dict[str, Any]:
    value: Any
    if isinstance(node, yaml.ScalarNode):
        value = loader.construct_scalar(node)
    elif isinstance(node, yaml.SequenceNode):
        value = loader.construct_sequence(node, deep=True)
    else:
        value = loader.construct_mapping(node, deep=True)

    if tag_suffix == "GetAtt" and isinstance(value, str):
        value = value.split(".", 1)

    key = tag_suffix if tag_suffix in _BARE_INTRINSICS else f"Fn::{tag_suffix}"
    return {key: value}


IntrinsicFunctionLoader.add_multi_constructor("!", _construct_intrinsic)


class TemplateLoader:
    """Load synthesized templates from files or directories of templates."""

    def __init__(self, paths: Iterable[str | os.PathLike[str]]) -> None:
        self.paths = [Path(path).resolve() for path in paths]

    def load(self) -> List[TemplateDocument]:
        """Parse every template and return them in a stable order."""

        if not self.paths:
            raise TemplateLoaderError("No template paths were provided")

        documents: List[TemplateDocument] = []
        for path in self._expand(self.paths):
            documents.append(TemplateDocument(path=path, body=self._load_file(path)))
            logger.debug("Loaded template %s", path)
        return documents

    # Discovery helpers ----------------------------------------------------------
    def _expand(self, paths: Iterable[Path]) -> List[Path]:
        files: List[Path] = []
        for path in paths:
            if path.is_dir():
                discovered = sorted(
                    {match.resolve() for pattern in TEMPLATE_PATTERNS for match in path.rglob(pattern)}
                )
                if not discovered:
                    raise TemplateLoaderError(f"No templates found in directory: {path}")
                files.extend(discovered)
            elif path.exists():
                files.append(path)
            else:
                raise TemplateLoaderError(f"Template not found: {path}")
        return files

    # Parsing ------------------------------------------------------------------
    def _load_file(self, path: Path) -> Dict[str, Any]:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateLoaderError(f"Failed to read template {path}") from exc

        if path.suffix.lower() in _YAML_SUFFIXES:
            try:
                data = yaml.load(content, Loader=IntrinsicFunctionLoader)  # noqa: S506 - SafeLoader subclass
            except yaml.YAMLError as exc:
                raise TemplateLoaderError(f"Invalid YAML in template: {path}") from exc
        else:
            try:
                data = json.loads(content)
            except json.JSONDecodeError as exc:
                raise TemplateLoaderError(f"Invalid JSON in template: {path}") from exc

        if not isinstance(data, dict):
            raise TemplateLoaderError(f"Template must be a mapping: {path}")
        return data


__all__ = ["IntrinsicFunctionLoader", "TemplateDocument", "TemplateLoader", "TemplateLoaderError"]
