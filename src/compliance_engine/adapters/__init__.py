"""Adapter layer package for template ingestion."""

from .template_loader import (
    IntrinsicFunctionLoader,
    TemplateDocument,
    TemplateLoader,
    TemplateLoaderError,
)

__all__ = [
    "IntrinsicFunctionLoader",
    "TemplateDocument",
    "TemplateLoader",
    "TemplateLoaderError",
]
