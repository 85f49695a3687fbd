"""Sinks that accumulate per-stack compliance reports and write them to disk."""

from __future__ import annotations

import csv
import io
import json
import logging
import re
from abc import abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import ClassVar, Dict, List

from ..models import ComplianceRecord, NagMessageLevel, Stack, Token, unique_id
from .base import NagLogger

logger = logging.getLogger(__name__)

CSV_HEADER = "Rule ID,Resource ID,Compliance,Exception Reason,Rule Level,Rule Info"
_UNSAFE_FILE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class NagReportFormat(str, Enum):
    CSV = "csv"
    JSON = "json"


@dataclass(slots=True)
class NagReport:
    """Ordered records for one pack and one stack."""

    file_name: str
    lines: List[ComplianceRecord] = field(default_factory=list)


def report_name(stack: Stack) -> str:
    """File-system safe name for a stack, free of unresolved tokens."""

    if stack.nested:
        return unique_id(stack)
    name = _UNSAFE_FILE_CHARS.sub("-", Token.strip(stack.stack_name)).strip("-")
    return name or unique_id(stack)


class ReportLogger(NagLogger):
    """Base class for report sinks.

    A report is created the first time any record for its stack arrives,
    including not-applicable ones, so a stack without relevant resources
    still gets an empty report. Not-applicable records are only written
    when ``verbose`` is set.
    """

    format: ClassVar[NagReportFormat]

    def __init__(self, *, verbose: bool = False) -> None:
        self.verbose = verbose
        self._reports: Dict[str, NagReport] = {}

    def on_compliance(self, record: ComplianceRecord) -> None:
        self._initialize(record).lines.append(record)

    def on_non_compliance(self, record: ComplianceRecord) -> None:
        self._initialize(record).lines.append(record)

    def on_suppressed(self, record: ComplianceRecord) -> None:
        self._initialize(record).lines.append(record)

    def on_error(self, record: ComplianceRecord) -> None:
        self._initialize(record).lines.append(record)

    def on_suppressed_error(self, record: ComplianceRecord) -> None:
        self._initialize(record).lines.append(record)

    def on_not_applicable(self, record: ComplianceRecord) -> None:
        report = self._initialize(record)
        if self.verbose:
            report.lines.append(record)

    # ------------------------------------------------------------------
    @property
    def reports(self) -> List[NagReport]:
        return list(self._reports.values())

    @property
    def report_files(self) -> List[str]:
        return list(self._reports)

    def get_report(self, file_name: str) -> NagReport | None:
        return self._reports.get(file_name)

    def reset(self) -> None:
        """Drop every accumulated report."""

        self._reports.clear()

    def flush(self, outdir: str | Path) -> List[Path]:
        """Write every accumulated report to ``outdir`` and return the paths."""

        directory = Path(outdir)
        directory.mkdir(parents=True, exist_ok=True)
        written: List[Path] = []
        for report in self._reports.values():
            destination = directory / report.file_name
            destination.write_text(self.render(report), encoding="utf-8")
            logger.info("Wrote %d line(s) to %s", len(report.lines), destination)
            written.append(destination)
        return written

    @abstractmethod
    def render(self, report: NagReport) -> str:
        """Serialize ``report`` into the sink's file format."""

    # ------------------------------------------------------------------
    def file_name_for(self, record: ComplianceRecord) -> str:
        if record.resource is None:
            raise ValueError(f"Record for {record.resource_id} carries no resource")
        stack_name = report_name(record.resource.stack)
        return f"{record.pack_name}-{stack_name}-NagReport.{self.format.value}"

    def _initialize(self, record: ComplianceRecord) -> NagReport:
        file_name = self.file_name_for(record)
        report = self._reports.get(file_name)
        if report is None:
            report = NagReport(file_name=file_name)
            self._reports[file_name] = report
        return report


class CsvReportLogger(ReportLogger):
    format = NagReportFormat.CSV

    def render(self, report: NagReport) -> str:
        buffer = io.StringIO()
        buffer.write(CSV_HEADER + "\n")
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        for record in report.lines:
            writer.writerow(self.row(record))
        return buffer.getvalue()

    @staticmethod
    def row(record: ComplianceRecord) -> List[str]:
        level = record.rule_level.value if isinstance(record.rule_level, NagMessageLevel) else str(record.rule_level)
        return [
            record.qualified_rule_id,
            record.resource_id,
            record.compliance,
            record.exception_reason,
            level,
            record.rule_info,
        ]


class JsonReportLogger(ReportLogger):
    format = NagReportFormat.JSON

    def render(self, report: NagReport) -> str:
        payload = {"lines": [record.to_dict() for record in report.lines]}
        return json.dumps(payload, ensure_ascii=False, indent=2)


REPORT_LOGGERS: Dict[NagReportFormat, type[ReportLogger]] = {
    NagReportFormat.CSV: CsvReportLogger,
    NagReportFormat.JSON: JsonReportLogger,
}


def create_report_logger(report_format: NagReportFormat | str, *, verbose: bool = False) -> ReportLogger:
    try:
        resolved = NagReportFormat(report_format)
    except ValueError as exc:
        raise ValueError(f"Unrecognized report format: {report_format}") from exc
    return REPORT_LOGGERS[resolved](verbose=verbose)
