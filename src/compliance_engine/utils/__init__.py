"""Helpers shared by rules and the suppression system."""

from .flatten import flatten_reference

__all__ = ["flatten_reference"]
