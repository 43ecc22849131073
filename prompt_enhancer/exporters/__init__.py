"""Prompt exporters for JSON, YAML and Markdown."""

from prompt_enhancer.models import StructuredPrompt

from .base import BaseExporter
from .json_exporter import JSONExporter
from .markdown_exporter import MarkdownExporter
from .yaml_exporter import YAMLExporter

__all__ = [
    "BaseExporter",
    "JSONExporter",
    "YAMLExporter",
    "MarkdownExporter",
    "EXPORTERS",
    "get_exporter",
    "export_prompt",
]

# Registry of available exporters
EXPORTERS = {
    "json": JSONExporter,
    "yaml": YAMLExporter,
    "markdown": MarkdownExporter,
}


def get_exporter(format_name: str) -> BaseExporter:
    """
    Get an exporter instance by format name.

    Args:
        format_name: One of 'json', 'yaml', 'markdown'

    Returns:
        Exporter instance

    Raises:
        ValueError: If format_name is not recognized
    """
    format_lower = format_name.lower()
    if format_lower not in EXPORTERS:
        available = ", ".join(EXPORTERS.keys())
        raise ValueError(f"Unknown export format: {format_name}. Available: {available}")

    return EXPORTERS[format_lower]()


def export_prompt(prompt: StructuredPrompt, format_name: str = "json") -> str:
    return get_exporter(format_name).export(prompt)
