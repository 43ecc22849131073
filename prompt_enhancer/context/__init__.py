"""Project context analysis."""

from .analyzer import ContextAnalyzer, extract_salient_terms
from .rules import ProjectRule, RuleLoader, format_rules

__all__ = ["ContextAnalyzer", "ProjectRule", "RuleLoader", "extract_salient_terms", "format_rules"]
