"""Walk a resource tree and run every pack against each node."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

from ..models import App, Construct
from .pack import NagPack

logger = logging.getLogger(__name__)


class NagSynthesisError(RuntimeError):
    """Raised after a visit when unsuppressed error-level findings remain."""

    def __init__(self, findings: Sequence[str], result: "VisitResult") -> None:
        self.findings = list(findings)
        self.result = result
        details = "\n".join(self.findings)
        super().__init__(f"Found {len(self.findings)} unsuppressed error-level finding(s):\n{details}")


@dataclass(slots=True)
class VisitResult:
    visited: int
    report_paths: List[Path] = field(default_factory=list)
    halting_findings: List[str] = field(default_factory=list)


class NagVisitor:
    """Apply packs to a tree in pre-order and flush their reports once."""

    def __init__(self, packs: Sequence[NagPack]) -> None:
        self.packs = list(packs)

    def run(self, root: Construct, outdir: str | Path | None = None) -> VisitResult:
        for pack in self.packs:
            pack.reset()

        nodes = root.find_all()
        for node in nodes:
            for pack in self.packs:
                pack.visit(node)

        if outdir is None and isinstance(root, App):
            outdir = root.outdir

        report_paths: List[Path] = []
        if outdir is not None:
            for pack in self.packs:
                report_paths.extend(pack.flush(outdir))

        halting = [
            finding
            for pack in self.packs
            if pack.fail_on_error
            for finding in pack.halting_findings
        ]
        result = VisitResult(visited=len(nodes), report_paths=report_paths, halting_findings=halting)
        logger.info(
            "Visited %d node(s) with %d pack(s); wrote %d report(s)",
            result.visited,
            len(self.packs),
            len(report_paths),
        )
        if halting:
            raise NagSynthesisError(halting, result)
        return result
