"""Prompt persistence."""

from .schema import PROMPTS_SCHEMA, TABLE_NAME
from .store import PromptStore

__all__ = ["PROMPTS_SCHEMA", "TABLE_NAME", "PromptStore"]
