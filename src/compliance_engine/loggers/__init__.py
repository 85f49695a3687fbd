"""Sinks receiving compliance records."""

from .annotation import AnnotationLogger
from .base import NagLogger, RecordCollector, UnrecognizedLevelError
from .reports import (
    CSV_HEADER,
    CsvReportLogger,
    JsonReportLogger,
    NagReport,
    NagReportFormat,
    ReportLogger,
    create_report_logger,
    report_name,
)

__all__ = [
    "AnnotationLogger",
    "CSV_HEADER",
    "CsvReportLogger",
    "JsonReportLogger",
    "NagLogger",
    "NagReport",
    "NagReportFormat",
    "RecordCollector",
    "ReportLogger",
    "UnrecognizedLevelError",
    "create_report_logger",
    "report_name",
]
