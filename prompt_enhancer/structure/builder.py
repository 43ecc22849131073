"""Assemble a StructuredPrompt skeleton from a parsed prompt and its context."""

import logging
import re
import uuid
from collections.abc import Callable
from datetime import datetime

from prompt_enhancer.config import SHORT_PROMPT_CHARS
from prompt_enhancer.models import (
    InputKind,
    OutputSpecification,
    ParsedPrompt,
    PromptContext,
    PromptInput,
    PromptMetadata,
    StructuredPrompt,
    ValidationResult,
    utc_now,
)
from prompt_enhancer.references import ReferenceDiscovery
from prompt_enhancer.templates import WorkflowTemplate, clarifying_questions_for, get_template

logger = logging.getLogger(__name__)

_CODE_FENCE_RE = re.compile(r"```[\w+-]*\n(.*?)```", re.S)
_URL_RE = re.compile(r"https?://[^\s)>\]]+")
_WHITESPACE_RE = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


class StructureBuilder:
    """Turn a ParsedPrompt into a StructuredPrompt with a pending validation.

    Output is deterministic apart from ``id`` and timestamps, which come from
    the injected factories.
    """

    def __init__(
        self,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self.clock = clock

    def build(
        self,
        parsed: ParsedPrompt,
        context: PromptContext,
        template: WorkflowTemplate | None = None,
    ) -> StructuredPrompt:
        template = template or get_template(parsed.workflow)
        raw = parsed.raw
        now = self.clock()

        clarifying_questions: list[str] = []
        if len(raw.content.strip()) < SHORT_PROMPT_CHARS:
            clarifying_questions = clarifying_questions_for(template)

        references = ReferenceDiscovery(context.dependencies).discover(raw.content)

        prompt = StructuredPrompt(
            id=self.id_factory(),
            workflow=parsed.workflow,
            instruction=normalize_whitespace(raw.content),
            context=context,
            inputs=self.extract_inputs(raw.content, parsed.components),
            expected_output=OutputSpecification(
                format=template.output_format,
                structure=template.output_structure,
            ),
            validation=ValidationResult.pending(),
            metadata=PromptMetadata(
                created_at=now,
                updated_at=now,
                author=raw.metadata.author,
                task_id=raw.metadata.task_id,
                source=raw.metadata.source,
                truncated_from=raw.metadata.truncated_from,
                tags=parsed.tags,
            ),
            clarifying_questions=clarifying_questions,
            success_criteria=_merge(parsed.requirements, template.success_criteria),
            constraints=list(template.constraints),
            order_of_steps=list(template.steps),
            discovered_references=references,
        )

        logger.debug(
            f"Built skeleton {prompt.id} ({prompt.workflow.value}): "
            f"{len(prompt.success_criteria)} criteria, {len(references)} references"
        )
        return prompt

    def extract_inputs(
        self, content: str, components: list[str] | tuple[str, ...] = ()
    ) -> list[PromptInput]:
        """The original text, fenced code blocks, URLs and mentioned components as inputs."""
        inputs = [PromptInput(label="Original prompt", value=content, type=InputKind.text)]

        for index, block in enumerate(_CODE_FENCE_RE.findall(content), start=1):
            if block.strip():
                inputs.append(
                    PromptInput(label=f"Code block {index}", value=block.strip(), type=InputKind.code)
                )

        for index, url in enumerate(dict.fromkeys(_URL_RE.findall(content)), start=1):
            inputs.append(PromptInput(label=f"Reference {index}", value=url, type=InputKind.reference))

        for index, component in enumerate(components, start=1):
            inputs.append(
                PromptInput(label=f"Component {index}", value=component, type=InputKind.reference)
            )

        return inputs


def _merge(first: list[str], second: tuple[str, ...] | list[str]) -> list[str]:
    return list(dict.fromkeys(item for item in [*first, *second] if item))
