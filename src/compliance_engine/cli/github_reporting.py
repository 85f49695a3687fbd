"""Helpers for publishing compliance reports to GitHub Actions surfaces."""

from __future__ import annotations

import argparse
import json
import os
from pathlib import Path
from typing import Iterable, Mapping, MutableMapping, Sequence

COMPLIANCE_ORDER = ["Non-Compliant", "UNKNOWN", "Suppressed", "Compliant", "N/A"]
ANNOTATED_STATES = {"Non-Compliant", "UNKNOWN"}
ANNOTATION_LEVELS = {
    "error": "error",
    "warning": "warning",
    "info": "notice",
}


def _lines(report: Mapping[str, object]) -> Sequence[Mapping[str, object]]:
    lines = report.get("lines") or []
    return [line for line in lines if isinstance(line, Mapping)]


def _count_compliance(lines: Sequence[Mapping[str, object]]) -> MutableMapping[str, int]:
    counts: MutableMapping[str, int] = {state: 0 for state in COMPLIANCE_ORDER}
    for line in lines:
        state = str(line.get("compliance", ""))
        if state in counts:
            counts[state] += 1
    return counts


def _qualified_rule_id(line: Mapping[str, object]) -> str:
    rule_id = str(line.get("ruleId", "")).strip()
    finding_id = str(line.get("findingId", "") or "").strip()
    return f"{rule_id}[{finding_id}]" if finding_id else rule_id


def format_summary(report: Mapping[str, object], *, title: str | None = None) -> str:
    """Render a Markdown job summary for the provided report."""

    lines = _lines(report)
    counts = _count_compliance(lines)
    findings = [line for line in lines if str(line.get("compliance", "")) in ANNOTATED_STATES]
    packs = sorted({str(line.get("packName", "")) for line in lines if line.get("packName")})

    output: list[str] = [
        "# IaC Compliance Report",
        "",
    ]
    if title:
        output.extend([f"**Report:** {title}", ""])
    output.extend(
        [
            f"**Total lines:** {len(lines)}",
            f"**Open findings:** {len(findings)}",
            f"**Packs:** {', '.join(packs) if packs else 'None'}",
            "",
            "| Compliance | Lines |",
            "| --- | ---: |",
        ]
    )

    for state in COMPLIANCE_ORDER:
        output.append(f"| {state} | {counts[state]} |")

    if findings:
        output.extend(["", "## Findings", ""])
        display_limit = 10
        for line in findings[:display_limit]:
            level = str(line.get("ruleLevel", "Info"))
            rule_id = _qualified_rule_id(line)
            info = str(line.get("ruleInfo", "")).strip()
            resource_id = str(line.get("resourceId", "")).strip()

            bullet = f"- **{level}**"
            if rule_id:
                bullet += f" `{rule_id}`"
            if info:
                bullet += f": {info}"
            if resource_id:
                bullet += f" _(Resource: `{resource_id}`)_"
            output.append(bullet)

        remaining = len(findings) - display_limit
        if remaining > 0:
            output.append(f"- ...and {remaining} more findings.")

    output.append("")
    return "\n".join(output)


def iter_annotations(report: Mapping[str, object]) -> Iterable[str]:
    """Generate GitHub Actions workflow command annotations for open findings."""

    for line in _lines(report):
        compliance = str(line.get("compliance", ""))
        if compliance not in ANNOTATED_STATES:
            continue

        level = ANNOTATION_LEVELS.get(str(line.get("ruleLevel", "")).lower(), "notice")
        rule_id = _qualified_rule_id(line)
        info = str(line.get("ruleInfo", "")).strip()
        resource_id = str(line.get("resourceId", "")).strip()

        title_parts = [compliance]
        if rule_id:
            title_parts.append(rule_id)
        title = " - ".join(title_parts)

        body_parts = [info] if info else []
        if resource_id:
            body_parts.append(f"Resource: {resource_id}")
        if not body_parts:
            body_parts.append("Compliance finding reported without message.")

        body = "; ".join(body_parts)
        body = body.replace("%", "%25").replace("\r", "").replace("\n", "%0A")
        title = title.replace("%", "%25").replace(",", "%2C").replace(":", "%3A")

        yield f"::{level} title={title}::{body}"


def _load_report(path: Path) -> Mapping[str, object]:
    raw = path.read_text(encoding="utf-8-sig")
    if not raw.strip():
        return {}

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(f"Failed to parse report JSON from '{path}': {exc.msg}.") from exc

    if not isinstance(data, Mapping):
        raise ValueError("Report JSON must be an object.")
    return data


def _write_summary(report: Mapping[str, object], destination: Path | None, *, title: str) -> None:
    if destination is None:
        return

    content = format_summary(report, title=title)
    destination.parent.mkdir(parents=True, exist_ok=True)
    with destination.open("a", encoding="utf-8") as handle:
        handle.write(content)


def main(argv: Sequence[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="iac-nag-github",
        description="Publish JSON compliance reports as GitHub job summary and annotations.",
    )
    parser.add_argument("reports", type=Path, nargs="+", help="Paths to *-NagReport.json files.")
    parser.add_argument(
        "--summary-path",
        type=Path,
        default=None,
        help="Optional explicit path for the GitHub job summary output.",
    )

    args = parser.parse_args(argv)

    summary_path = args.summary_path
    if summary_path is None:
        summary_env = os.getenv("GITHUB_STEP_SUMMARY")
        if summary_env:
            summary_path = Path(summary_env)

    for report_path in args.reports:
        try:
            report = _load_report(report_path)
        except (OSError, ValueError) as exc:
            print(f"Error: {exc}")
            return 2

        _write_summary(report, summary_path, title=report_path.name)

        for command in iter_annotations(report):
            print(command)

    return 0


def run() -> None:  # pragma: no cover - wrapper for console entry point
    raise SystemExit(main())


if __name__ == "__main__":  # pragma: no cover - module execution guard
    run()
