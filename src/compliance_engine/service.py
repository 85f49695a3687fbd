"""Orchestration layer used by the CLI to execute compliance validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Mapping, Sequence

from .adapters import TemplateDocument, TemplateLoader, TemplateLoaderError
from .engine import NagPack, NagSynthesisError, NagVisitor, RuleEvaluationError
from .loggers import RecordCollector
from .models import ComplianceRecord, collect_annotations
from .normalization import TemplateNormalizer
from .rules import RulePackError, RulePackManager

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ValidationResult:
    """Result returned by :class:`ComplianceService` runs."""

    records: list[ComplianceRecord]
    metadata: Mapping[str, Any]
    report_paths: list[Path] = field(default_factory=list)
    halted: bool = False
    halting_findings: list[str] = field(default_factory=list)


TemplateLoaderFactory = Callable[[Sequence[Path]], TemplateLoader]
PackFactory = Callable[..., Sequence[NagPack]]


class ComplianceService:
    """High level service responsible for template ingestion and rule evaluation."""

    def __init__(
        self,
        *,
        template_loader_factory: TemplateLoaderFactory | None = None,
        normalizer: TemplateNormalizer | None = None,
        rule_pack_manager: RulePackManager | None = None,
        pack_factory: PackFactory | None = None,
    ) -> None:
        self._template_loader_factory = template_loader_factory or TemplateLoader
        self._normalizer = normalizer or TemplateNormalizer()
        self._rule_pack_manager = rule_pack_manager or RulePackManager()
        self._pack_factory = pack_factory

    # ------------------------------------------------------------------
    def validate(
        self,
        template_paths: Sequence[Path],
        *,
        manifests: Sequence[str] | None = None,
        output_dir: Path | None = None,
        report_formats: Sequence[str] | None = None,
        verbose: bool | None = None,
        log_ignores: bool | None = None,
        fail_on_error: bool | None = None,
    ) -> ValidationResult:
        """Evaluate the templates against every enabled pack.

        Error-level findings that would halt synthesis do not raise here;
        they are returned in ``halting_findings`` with ``halted`` set.
        """

        loader = self._template_loader_factory(list(template_paths))
        documents = loader.load()
        app = self._normalizer.normalize(documents)

        collector = RecordCollector(include_not_applicable=bool(verbose))
        packs = self._build_packs(
            manifests,
            verbose=verbose,
            log_ignores=log_ignores,
            fail_on_error=fail_on_error,
            report_formats=list(report_formats) if report_formats else None,
            reports=output_dir is not None,
        )
        for pack in packs:
            pack.loggers.append(collector)

        visitor = NagVisitor(packs)
        try:
            visit = visitor.run(app, outdir=output_dir)
            halted = False
        except NagSynthesisError as exc:
            visit = exc.result
            halted = True
            logger.info("Validation halted by %d error-level finding(s)", len(exc.findings))

        metadata: dict[str, Any] = {
            "templates": [str(document.path) for document in documents],
            "stacks": [_stack_name(document) for document in documents],
            "packs": [pack.pack_name for pack in packs],
            "node_count": visit.visited,
            "record_count": len(collector.records),
            "annotation_count": len(collect_annotations(app)),
        }

        return ValidationResult(
            records=list(collector.records),
            metadata=metadata,
            report_paths=list(visit.report_paths),
            halted=halted,
            halting_findings=list(visit.halting_findings),
        )

    # ------------------------------------------------------------------
    def _build_packs(self, manifests: Sequence[str] | None, **options: Any) -> Sequence[NagPack]:
        if self._pack_factory is not None:
            return self._pack_factory(manifests, **options)

        packs = self._rule_pack_manager.build_packs(manifests, **options)
        if not packs:
            raise RulePackError("No enabled rule packs were found in the supplied manifests")
        return packs


def _stack_name(document: TemplateDocument) -> str:
    metadata = document.body.get("Metadata")
    if isinstance(metadata, Mapping) and metadata.get("StackName"):
        return str(metadata["StackName"])
    return document.name


__all__ = [
    "ComplianceService",
    "ValidationResult",
    "RulePackError",
    "RuleEvaluationError",
    "TemplateLoaderError",
]
