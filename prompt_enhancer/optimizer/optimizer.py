"""Model-backed enhancement of a structured prompt skeleton with heuristic fallback.

The optimizer makes at most one call to the model capability per skeleton.
Whatever happens to that call (missing capability, error, timeout,
cancellation, schema violation) the caller gets a complete record back:
either the model-merged one or the heuristic fallback, flagged in metadata.
"""

import logging
import re
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any

from prompt_enhancer.config import MODEL_CALL_TIMEOUT, TOKENS_ENHANCEMENT, EnhancerConfig, ModelTier
from prompt_enhancer.models import Complexity, GenerationSource, StructuredPrompt
from prompt_enhancer.optimizer.capability import ModelCapability
from prompt_enhancer.optimizer.schema import EnhancementFields, EnhancementOk, check_enhancement
from prompt_enhancer.structure.builder import normalize_whitespace
from prompt_enhancer.templates import get_template

logger = logging.getLogger(__name__)

# Seconds between cancellation checks while the model call is in flight
_POLL_INTERVAL = 0.05

# Confidence reported for heuristic enhancements
FALLBACK_CONFIDENCE = 50

ACTION_WORDS = {
    "add",
    "analyze",
    "build",
    "create",
    "deploy",
    "document",
    "fix",
    "implement",
    "investigate",
    "optimize",
    "refactor",
    "remove",
    "review",
    "secure",
    "test",
    "update",
    "write",
}

_BUG_CUE_RE = re.compile(r"\b(not working|broken|can't|cannot|fails?|failing|errors?|crash(?:es)?)\b")
_WISH_RE = re.compile(r"\b(?:i|we)\s+(?:need|want)(?:\s+to)?\s*", re.I)
_COMPLEX_RE = re.compile(
    r"\b(architecture|system|redesign|multiple|integration|workflow|orchestrate|migrate)\b", re.I
)
_MODERATE_RE = re.compile(r"\b(implement|feature|refactor|optimize|enhance)\b", re.I)


@dataclass(frozen=True)
class OptimizerSettings:
    """Process-wide settings for the enhancement call."""

    model_id: str | None = None
    tier: ModelTier = ModelTier.LIGHT
    timeout: float = MODEL_CALL_TIMEOUT
    max_tokens: int = TOKENS_ENHANCEMENT
    temperature: float = 0.7

    @classmethod
    def from_config(cls, config: EnhancerConfig) -> "OptimizerSettings":
        return cls(
            model_id=config.model_id,
            tier=config.model_tier,
            timeout=config.model_timeout,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )


class _Cancelled(Exception):
    pass


def improve_instruction(raw: str) -> str:
    """Heuristic rewrite: action verb prefix, capitalization, terminal period."""
    improved = normalize_whitespace(raw)
    if not improved:
        return improved

    lowered = improved.lower().replace("’", "'")
    first_word = re.sub(r"\W", "", lowered.split(" ", 1)[0])

    if first_word not in ACTION_WORDS and len(improved) < 100:
        if _BUG_CUE_RE.search(lowered):
            improved = f"Fix the issue where {_lower_first(improved)}"
        elif _WISH_RE.search(improved):
            improved = f"Implement functionality to {_WISH_RE.sub('', improved).strip()}"
        else:
            improved = f"Implement: {improved}"

    improved = improved[0].upper() + improved[1:]
    if not improved.endswith((".", "!", "?")):
        improved += "."
    return improved


def _lower_first(text: str) -> str:
    # Leave acronyms like "API" alone
    if len(text) > 1 and text[1].isupper():
        return text
    return text[0].lower() + text[1:]


def estimate_complexity(text: str) -> Complexity:
    if _COMPLEX_RE.search(text) or len(text) > 300:
        return Complexity.complex
    if _MODERATE_RE.search(text) or len(text) > 150:
        return Complexity.moderate
    return Complexity.simple


class Optimizer:
    """Enhance a skeleton through the model capability, or heuristically.

    Args:
        capability: Model capability; None forces the fallback path
        settings: Model id, tier, timeout and sampling settings
    """

    def __init__(
        self,
        capability: ModelCapability | None = None,
        settings: OptimizerSettings | None = None,
    ):
        self.capability = capability
        self.settings = settings or OptimizerSettings()

    def optimize(
        self,
        skeleton: StructuredPrompt,
        *,
        cancel_event: threading.Event | None = None,
        rules_text: str = "",
    ) -> StructuredPrompt:
        """Enhance ``skeleton``; ``rules_text`` is project rules the model must honor."""
        if not skeleton.instruction.strip():
            return self.fallback(skeleton, "blank instruction")
        if self.capability is None:
            return self.fallback(skeleton, "no model capability configured")

        try:
            output = self._call_model(self.build_request(skeleton, rules_text), cancel_event)
        except _Cancelled:
            return self.fallback(skeleton, "enhancement cancelled")
        except FutureTimeoutError:
            return self.fallback(
                skeleton, f"model call timed out after {self.settings.timeout:g}s"
            )
        except Exception as e:
            return self.fallback(skeleton, f"model call failed: {type(e).__name__}: {e}")

        check = check_enhancement(output)
        if not isinstance(check, EnhancementOk):
            return self.fallback(skeleton, f"schema violation: {check.detail}")

        return self.merge(skeleton, check.fields)

    def build_request(self, skeleton: StructuredPrompt, rules_text: str = "") -> str:
        """Task message sent to the model alongside the system prompt."""
        context = skeleton.context
        original = next(
            (item.value for item in skeleton.inputs if item.label == "Original prompt"),
            skeleton.instruction,
        )

        sections = [
            f"Original engineering task:\n{original}",
            f"Detected workflow type: {skeleton.workflow.value}",
        ]
        if context.project_overview:
            sections.append(f"Project overview:\n{context.project_overview}")
        if context.technical_stack:
            sections.append(f"Technical stack: {', '.join(context.technical_stack)}")
        if context.dependencies:
            sections.append(f"Dependencies: {', '.join(context.dependencies)}")
        if context.relevant_files:
            files = "\n".join(f"- {f.path}: {f.summary}" for f in context.relevant_files)
            sections.append(f"Relevant files:\n{files}")
        components = [item.value for item in skeleton.inputs if item.label.startswith("Component")]
        if components:
            sections.append(f"Mentioned components: {', '.join(components)}")
        if skeleton.success_criteria:
            criteria = "\n".join(f"- {c}" for c in skeleton.success_criteria)
            sections.append(f"Draft success criteria:\n{criteria}")
        if rules_text:
            sections.append(rules_text)

        sections.append("Return the enhanced prompt now.")
        return "\n\n".join(sections)

    def _call_model(self, request: str, cancel_event: threading.Event | None) -> Any:
        if cancel_event is not None and cancel_event.is_set():
            raise _Cancelled()

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="enhance")
        try:
            future = executor.submit(
                self.capability.generate_structured_object,
                model=self.settings.model_id,
                schema=EnhancementFields,
                prompt=request,
                timeout=self.settings.timeout,
            )
            deadline = time.monotonic() + self.settings.timeout
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    future.cancel()
                    raise _Cancelled()
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    future.cancel()
                    raise FutureTimeoutError()
                try:
                    return future.result(timeout=min(_POLL_INTERVAL, remaining))
                except FutureTimeoutError:
                    continue
        finally:
            # A stuck call keeps its worker thread; nobody waits on it
            executor.shutdown(wait=False, cancel_futures=True)

    def merge(self, skeleton: StructuredPrompt, fields: EnhancementFields) -> StructuredPrompt:
        """Fold model output into the skeleton; workflow and context are kept."""
        if fields.workflow_type is not skeleton.workflow:
            logger.debug(
                f"Model suggested workflow {fields.workflow_type.value}, "
                f"keeping {skeleton.workflow.value}"
            )

        enhanced = skeleton.model_copy(
            update={
                "instruction": fields.instruction.strip() or skeleton.instruction,
                "success_criteria": fields.success_criteria or skeleton.success_criteria,
                "constraints": fields.constraints or skeleton.constraints,
                "clarifying_questions": fields.clarifying_questions
                or skeleton.clarifying_questions,
                "order_of_steps": fields.order_of_steps or skeleton.order_of_steps,
                "estimated_complexity": fields.estimated_complexity,
                "metadata": skeleton.metadata.model_copy(
                    update={
                        "generated_by": GenerationSource.model,
                        "fallback_reason": None,
                        "confidence_score": fields.confidence_score,
                    }
                ),
            }
        )
        logger.info(f"Prompt {skeleton.id} enhanced by model")
        return enhanced

    def fallback(self, skeleton: StructuredPrompt, reason: str) -> StructuredPrompt:
        """Heuristic enhancement used whenever the model path is unavailable."""
        logger.warning(
            f"Using fallback enhancement for prompt {skeleton.id}: {reason}",
            extra={"data": {"prompt_id": skeleton.id, "reason": reason}},
        )

        template = get_template(skeleton.workflow)
        return skeleton.model_copy(
            update={
                "instruction": improve_instruction(skeleton.instruction),
                "success_criteria": skeleton.success_criteria or list(template.success_criteria),
                "constraints": skeleton.constraints or list(template.constraints),
                "order_of_steps": skeleton.order_of_steps or list(template.steps),
                "estimated_complexity": estimate_complexity(skeleton.instruction),
                "metadata": skeleton.metadata.model_copy(
                    update={
                        "generated_by": GenerationSource.fallback,
                        "fallback_reason": reason,
                        "confidence_score": FALLBACK_CONFIDENCE,
                    }
                ),
            }
        )
