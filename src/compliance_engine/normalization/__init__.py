"""Normalization helpers turning parsed templates into resource trees."""

from .template_normalizer import TemplateNormalizer

__all__ = ["TemplateNormalizer"]
