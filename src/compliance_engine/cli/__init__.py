"""Command-line interface package for the compliance tooling."""

from .app import ValidationReport, build_parser, create_service, main, render_table, run

__all__ = [
    "ValidationReport",
    "build_parser",
    "create_service",
    "main",
    "render_table",
    "run",
]
