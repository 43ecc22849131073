"""Structured prompt assembly."""

from .builder import StructureBuilder

__all__ = ["StructureBuilder"]
