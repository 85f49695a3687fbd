"""Utilities for loading and merging rule pack manifest files."""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, MutableMapping, Sequence

import yaml

from ..engine import RuleCallable, RuleDefinition, RuleSetPack
from ..models import NagMessageLevel

_LEVEL_ALIASES = {
    "error": NagMessageLevel.ERROR,
    "warn": NagMessageLevel.WARN,
    "warning": NagMessageLevel.WARN,
    "info": NagMessageLevel.INFO,
    "information": NagMessageLevel.INFO,
    "informational": NagMessageLevel.INFO,
}

_PACK_OPTIONS = (
    "verbose",
    "log_ignores",
    "reports",
    "report_formats",
    "fail_on_error",
    "validation_failure_level",
)


class RulePackError(RuntimeError):
    """Raised when rule pack manifests cannot be loaded or parsed."""


@dataclass(slots=True)
class RuleSpec:
    """A rule entry from a manifest, before its callable is imported."""

    target: str
    level: NagMessageLevel
    info: str
    explanation: str
    suffix: str | None = None

    @property
    def function_name(self) -> str:
        return self.target.rpartition(":")[2]

    @property
    def rule_suffix(self) -> str:
        return self.suffix or self.function_name


@dataclass(slots=True)
class RulePack:
    """Configuration describing a logical rule pack to execute."""

    name: str
    enabled: bool = True
    options: Dict[str, Any] = field(default_factory=dict)
    rules: List[RuleSpec] = field(default_factory=list)
    level_overrides: Dict[str, NagMessageLevel] = field(default_factory=dict)

    def level_for(self, spec: RuleSpec) -> NagMessageLevel:
        rule_id = f"{self.name}-{spec.rule_suffix}"
        for key in (rule_id, spec.rule_suffix):
            if key in self.level_overrides:
                return self.level_overrides[key]
        return spec.level


def parse_level(value: Any) -> NagMessageLevel:
    """Map a manifest level such as ``Error`` or ``warning`` to a message level."""

    if isinstance(value, NagMessageLevel):
        return value
    if isinstance(value, str):
        level = _LEVEL_ALIASES.get(value.strip().lower())
        if level is not None:
            return level
    raise RulePackError(f"Unrecognized rule level: {value!r}")


def import_rule(target: str) -> RuleCallable:
    """Import ``package.module:function`` and return the callable."""

    module_name, _, attribute = target.partition(":")
    if not module_name or not attribute:
        raise RulePackError(f"Rule reference must look like 'module:function': {target}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise RulePackError(f"Failed to import rule module {module_name}") from exc

    rule = module
    for part in attribute.split("."):
        try:
            rule = getattr(rule, part)
        except AttributeError as exc:
            raise RulePackError(f"Rule {attribute} not found in {module_name}") from exc

    if not callable(rule):
        raise RulePackError(f"Rule {target} is not callable")
    return rule


class RulePackManager:
    """Load rule pack manifests and build the packs they describe."""

    def __init__(self, default_manifests: Sequence[Path | str] | None = None) -> None:
        self._default_manifests = [Path(path) for path in default_manifests or []]

    # ------------------------------------------------------------------
    def load(self, manifests: Sequence[Path | str] | None = None) -> List[RulePack]:
        """Return all packs defined by the provided manifests."""

        manifest_paths = [Path(path) for path in self._default_manifests]
        if manifests:
            manifest_paths.extend(Path(path) for path in manifests)

        packs: MutableMapping[str, RulePack] = {}
        for manifest_path in manifest_paths:
            data = self._load_manifest(manifest_path)
            for pack_config in data.get("packs", []) or []:
                if not isinstance(pack_config, Mapping):
                    raise RulePackError(f"Pack entries must be mappings in {manifest_path}")
                name = pack_config.get("name")
                if not name:
                    continue

                pack = packs.get(name, RulePack(name=str(name)))
                if "enabled" in pack_config:
                    pack.enabled = bool(pack_config["enabled"])

                options = pack_config.get("options")
                if isinstance(options, Mapping):
                    unknown = sorted(set(options) - set(_PACK_OPTIONS))
                    if unknown:
                        raise RulePackError(
                            f"Unknown option(s) for pack {name}: {', '.join(map(str, unknown))}"
                        )
                    pack.options.update(options)

                for rule_config in pack_config.get("rules", []) or []:
                    pack.rules.append(self._parse_rule(rule_config, manifest_path))

                levels = pack_config.get("levels")
                if isinstance(levels, Mapping):
                    for rule_id, level in levels.items():
                        if not isinstance(rule_id, str):
                            continue
                        pack.level_overrides[rule_id.strip()] = parse_level(level)

                packs[pack.name] = pack

        return list(packs.values())

    # ------------------------------------------------------------------
    def enabled_packs(self, manifests: Sequence[Path | str] | None = None) -> List[RulePack]:
        """Return only the packs that are enabled after merging manifests."""

        return [pack for pack in self.load(manifests) if pack.enabled]

    # ------------------------------------------------------------------
    def build_packs(
        self,
        manifests: Sequence[Path | str] | None = None,
        **overrides: Any,
    ) -> List[RuleSetPack]:
        """Import the rules of every enabled pack and create runnable packs.

        ``overrides`` take precedence over the options in the manifests;
        ``None`` values are ignored.
        """

        built: List[RuleSetPack] = []
        for pack in self.enabled_packs(manifests):
            definitions = [
                RuleDefinition(
                    rule=import_rule(spec.target),
                    level=pack.level_for(spec),
                    info=spec.info,
                    explanation=spec.explanation,
                    rule_suffix_override=spec.suffix,
                )
                for spec in pack.rules
            ]
            options = dict(pack.options)
            options.update({key: value for key, value in overrides.items() if value is not None})
            if "validation_failure_level" in options:
                options["validation_failure_level"] = parse_level(options["validation_failure_level"])
            try:
                built.append(RuleSetPack(pack.name, definitions, **options))
            except (TypeError, ValueError) as exc:
                raise RulePackError(f"Invalid options for pack {pack.name}: {exc}") from exc
        return built

    # ------------------------------------------------------------------
    def _parse_rule(self, config: Any, manifest_path: Path) -> RuleSpec:
        if not isinstance(config, Mapping) or not config.get("rule"):
            raise RulePackError(f"Rule entries need a 'rule' reference in {manifest_path}")

        suffix = config.get("suffix")
        return RuleSpec(
            target=str(config["rule"]),
            level=parse_level(config.get("level", "Error")),
            info=str(config.get("info", "")),
            explanation=str(config.get("explanation", "")),
            suffix=str(suffix) if suffix else None,
        )

    def _load_manifest(self, path: Path) -> Dict[str, Any]:
        if not path.exists():
            raise RulePackError(f"Rule pack manifest not found: {path}")

        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem errors surfaced to caller
            raise RulePackError(f"Failed to read rule pack manifest {path}") from exc

        try:
            data = yaml.safe_load(content) or {}
        except yaml.YAMLError as exc:
            raise RulePackError(f"Invalid YAML in rule pack manifest {path}") from exc

        if not isinstance(data, Mapping):
            raise RulePackError(f"Rule pack manifest must be a mapping: {path}")

        return dict(data)
