"""Export prompts to YAML."""

import yaml

from prompt_enhancer.models import StructuredPrompt

from .base import BaseExporter


class YAMLExporter(BaseExporter):
    """Same fields as the JSON export, as block-style YAML."""

    format_name = "YAML"
    file_extension = "yaml"
    mime_type = "application/yaml"

    def export(self, prompt: StructuredPrompt) -> str:
        return yaml.safe_dump(
            prompt.model_dump(mode="json"),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )
