"""Command-line interface implementation for the compliance tooling."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, MutableMapping, Sequence

from ..adapters import TemplateLoaderError
from ..loggers import NagReportFormat
from ..models import ComplianceRecord, NagRuleCompliance, NagRulePostValidationStates
from ..rules import RulePackError, RulePackManager
from ..service import ComplianceService, ValidationResult
from ..suppressions import PathNotFoundError, SuppressionFormatError

COMPLIANCE_ORDER = [
    NagRuleCompliance.NON_COMPLIANT.value,
    NagRulePostValidationStates.UNKNOWN.value,
    NagRulePostValidationStates.SUPPRESSED.value,
    NagRuleCompliance.COMPLIANT.value,
    NagRuleCompliance.NOT_APPLICABLE.value,
]
FINDING_STATES = {
    NagRuleCompliance.NON_COMPLIANT.value,
    NagRulePostValidationStates.UNKNOWN.value,
    NagRulePostValidationStates.SUPPRESSED.value,
}
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


@dataclass(slots=True)
class ValidationReport:
    """Collection of compliance records plus contextual metadata."""

    records: Sequence[ComplianceRecord]
    metadata: Mapping[str, Any]
    halting_findings: Sequence[str] = ()
    report_paths: Sequence[Path] = field(default_factory=list)

    @property
    def findings(self) -> list[ComplianceRecord]:
        return [record for record in self.records if record.compliance in FINDING_STATES]

    def counts_by_compliance(self) -> dict[str, int]:
        counts: MutableMapping[str, int] = {state: 0 for state in COMPLIANCE_ORDER}
        for record in self.records:
            counts[record.compliance] = counts.get(record.compliance, 0) + 1
        return dict(counts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "metadata": dict(self.metadata),
            "summary": {
                "total_records": len(self.records),
                "total_findings": len(self.findings),
                "counts": self.counts_by_compliance(),
                "halting_findings": list(self.halting_findings),
            },
            "reports": [str(path) for path in self.report_paths],
            "records": [record.to_dict() for record in self.records],
        }


def render_table(report: ValidationReport) -> str:
    """Render findings as a simple text table for terminal output."""

    if not report.findings:
        return "No findings detected."

    headers = ("Compliance", "Rule ID", "Resource", "Level", "Info")
    rows = [headers]
    for record in report.findings:
        rows.append(
            (
                record.compliance,
                record.qualified_rule_id,
                record.resource_id,
                record.to_dict()["ruleLevel"],
                record.rule_info,
            )
        )

    widths = [max(len(str(row[idx])) for row in rows) for idx in range(len(headers))]

    def format_row(values: tuple[str, ...]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True))

    lines = [format_row(headers)]
    lines.append("  ".join("=" * width for width in widths))
    for row in rows[1:]:
        lines.append(format_row(row))
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""

    parser = argparse.ArgumentParser(prog="iac-nag", description="IaC template compliance CLI")
    subparsers = parser.add_subparsers(dest="command")

    validate_parser = subparsers.add_parser(
        "validate", help="Validate synthesized templates and report compliance findings."
    )
    validate_parser.add_argument(
        "paths",
        type=Path,
        nargs="+",
        help="Template files or directories containing *.template.json/yaml files.",
    )
    validate_parser.add_argument(
        "--rule-manifest",
        dest="rule_manifests",
        action="append",
        default=None,
        type=str,
        help="Path to a rule manifest YAML/JSON file describing rule packs.",
    )
    validate_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Directory receiving one report per pack and stack.",
    )
    validate_parser.add_argument(
        "--report-format",
        dest="report_formats",
        action="append",
        choices=[report_format.value for report_format in NagReportFormat],
        default=None,
        help="Report file format; repeat for several formats (default: csv).",
    )
    validate_parser.add_argument(
        "--verbose",
        action="store_true",
        default=None,
        help="Include rule explanations and not-applicable results.",
    )
    validate_parser.add_argument(
        "--log-ignores",
        action="store_true",
        default=None,
        help="Annotate resources with findings that were suppressed.",
    )
    validate_parser.add_argument(
        "--no-fail-on-error",
        dest="fail_on_error",
        action="store_false",
        default=None,
        help="Do not fail the run on unsuppressed error-level findings.",
    )
    validate_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format for validation results.",
    )
    validate_parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="WARNING",
        help="Logging verbosity.",
    )

    return parser


def create_service(*, default_rule_manifests: Sequence[str] | None = None) -> ComplianceService:
    """Create a compliance service loading packs from rule manifests."""

    manager = RulePackManager(default_manifests=default_rule_manifests)
    return ComplianceService(rule_pack_manager=manager)


def _build_report(result: ValidationResult) -> ValidationReport:
    return ValidationReport(
        records=result.records,
        metadata=result.metadata,
        halting_findings=result.halting_findings,
        report_paths=result.report_paths,
    )


def _format_report(report: ValidationReport, *, output_format: str) -> tuple[str, bool]:
    if output_format not in {"table", "json"}:
        raise ValueError("format must be either 'table' or 'json'")

    should_fail = bool(report.halting_findings)

    if output_format == "json":
        output = json.dumps(report.to_dict(), indent=2, ensure_ascii=False)
    else:
        output = render_table(report)
        if should_fail:
            output += "\n\n" + "\n".join(["Unsuppressed error-level findings:", *report.halting_findings])

    return output, should_fail


def _handle_validate(args: argparse.Namespace) -> int:
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    service = create_service()
    manifests = list(args.rule_manifests or [])

    try:
        result = service.validate(
            [path.resolve() for path in args.paths],
            manifests=manifests,
            output_dir=args.output_dir.resolve() if args.output_dir else None,
            report_formats=args.report_formats,
            verbose=args.verbose,
            log_ignores=args.log_ignores,
            fail_on_error=args.fail_on_error,
        )
    except (
        TemplateLoaderError,
        RulePackError,
        SuppressionFormatError,
        PathNotFoundError,
        ValueError,
    ) as exc:
        print(f"Error: {exc}")
        return 2

    report = _build_report(result)
    output, should_fail = _format_report(report, output_format=args.format)

    print(output)
    return 1 if should_fail else 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by tests and the ``python -m`` invocation."""

    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "validate":
        return _handle_validate(args)

    parser.print_help()
    return 0


def run() -> None:  # pragma: no cover - thin wrapper for module execution
    """Execute the CLI and exit with the produced status code."""

    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
