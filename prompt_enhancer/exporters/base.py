"""Base exporter class for all prompt exporters."""

from abc import ABC, abstractmethod

from prompt_enhancer.models import StructuredPrompt


class BaseExporter(ABC):
    """Base class for all prompt exporters.

    Exporters are read-only projections of a StructuredPrompt.
    """

    format_name: str = "Unknown"
    file_extension: str = "txt"
    mime_type: str = "text/plain"

    @abstractmethod
    def export(self, prompt: StructuredPrompt) -> str:
        """
        Render a prompt in the exporter's format.

        Args:
            prompt: The prompt to render

        Returns:
            Formatted string content
        """
        pass

    def export_bytes(self, prompt: StructuredPrompt) -> bytes:
        """Export a prompt as UTF-8 encoded bytes."""
        return self.export(prompt).encode("utf-8")

    def get_filename(self, prompt: StructuredPrompt) -> str:
        """Export filename derived from the workflow and a short id."""
        short_id = "".join(c for c in prompt.id if c.isalnum())[:8] or "prompt"
        return f"{prompt.workflow.value.replace('_', '-')}-{short_id}.{self.file_extension}"
