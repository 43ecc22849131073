"""Export prompts to Markdown."""

from prompt_enhancer.models import StructuredPrompt

from .base import BaseExporter


class MarkdownExporter(BaseExporter):
    """Export a prompt as a human-readable Markdown document.

    Presentation only: the id and format version are omitted, and the
    output is not meant to be parsed back.
    """

    format_name = "Markdown"
    file_extension = "md"
    mime_type = "text/markdown"

    def export(self, prompt: StructuredPrompt) -> str:
        lines = ["# Enhanced Prompt\n"]

        meta_parts = [f"**Workflow:** {prompt.workflow.value}"]
        if prompt.estimated_complexity:
            meta_parts.append(f"**Complexity:** {prompt.estimated_complexity.value}")
        if prompt.metadata.generated_by:
            meta_parts.append(f"**Generated by:** {prompt.metadata.generated_by.value}")
        lines.append(" | ".join(meta_parts) + "\n")

        lines.append("## Instruction\n")
        lines.append(f"{prompt.instruction}\n")

        lines.extend(self._format_context(prompt))

        if prompt.success_criteria:
            lines.append("## Success Criteria\n")
            lines.extend(f"- [ ] {criterion}" for criterion in prompt.success_criteria)
            lines.append("")

        if prompt.constraints:
            lines.append("## Constraints\n")
            lines.extend(f"- {constraint}" for constraint in prompt.constraints)
            lines.append("")

        if prompt.order_of_steps:
            lines.append("## Steps\n")
            lines.extend(f"{i}. {step}" for i, step in enumerate(prompt.order_of_steps, start=1))
            lines.append("")

        if prompt.clarifying_questions:
            lines.append("## Clarifying Questions\n")
            lines.extend(f"- {question}" for question in prompt.clarifying_questions)
            lines.append("")

        if prompt.examples:
            lines.append("## Examples\n")
            for example in prompt.examples:
                lines.append(f"**Input:** {example.input}\n")
                lines.append(f"**Output:** {example.output}\n")
                if example.explanation:
                    lines.append(f"{example.explanation}\n")

        output = prompt.expected_output
        if output.format or output.structure:
            lines.append("## Expected Output\n")
            if output.format:
                lines.append(f"**Format:** {output.format.value}\n")
            if output.structure:
                lines.append(f"**Structure:** {output.structure}\n")

        if prompt.discovered_references:
            lines.append("## References\n")
            lines.extend(
                f"- {ref.value} ({ref.type})" for ref in prompt.discovered_references
            )
            lines.append("")

        validation = prompt.validation
        lines.append("## Validation\n")
        status = "valid" if validation.is_valid else "needs work"
        lines.append(f"**Score:** {validation.score}/100 ({status})\n")
        for issue in validation.issues:
            lines.append(f"- **{issue.severity.value}** `{issue.field}`: {issue.description}")
        if validation.issues:
            lines.append("")

        return "\n".join(lines)

    def _format_context(self, prompt: StructuredPrompt) -> list[str]:
        context = prompt.context
        lines = ["## Context\n"]
        if context.project_overview:
            lines.append(f"{context.project_overview}\n")
        if context.technical_stack:
            lines.append(f"**Technical stack:** {', '.join(context.technical_stack)}\n")
        if context.dependencies:
            deps = ", ".join(f"`{dep}`" for dep in context.dependencies)
            lines.append(f"**Dependencies:** {deps}\n")
        if context.relevant_files:
            lines.append("**Relevant files:**\n")
            lines.extend(f"- `{f.path}`: {f.summary}" for f in context.relevant_files)
            lines.append("")
        if context.current_state:
            lines.append(f"**Current state:** {context.current_state}\n")
        if len(lines) == 1:
            lines.append("No project context available.\n")
        return lines
