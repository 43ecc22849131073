"""Export prompts to JSON."""

from prompt_enhancer.models import StructuredPrompt

from .base import BaseExporter


class JSONExporter(BaseExporter):
    """Full record as indented JSON; parses back into an equal StructuredPrompt."""

    format_name = "JSON"
    file_extension = "json"
    mime_type = "application/json"

    def export(self, prompt: StructuredPrompt) -> str:
        return prompt.model_dump_json(indent=2)
