"""Structured prompt scoring."""

from .validator import PromptValidator

__all__ = ["PromptValidator"]
