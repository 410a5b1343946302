"""Validation of generated tests."""

from .validator import TestValidator

__all__ = ["TestValidator"]
