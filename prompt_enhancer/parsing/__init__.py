"""Raw prompt classification and extraction."""

from .parser import PromptParser, detect_workflow

__all__ = ["PromptParser", "detect_workflow"]
