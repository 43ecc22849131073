"""Pipeline facade: raw request in, validated StructuredPrompt out.

Stages run in order inside one tracing span per stage:

    parse -> context -> structure -> optimize -> validate

Stage problems degrade the result (empty context, fallback enhancement,
invalid score) instead of raising. Only the store raises, with
NotFoundError and StaleValidationError.
"""

import logging
import threading
from pathlib import Path
from typing import Any

from prompt_enhancer.config import MAX_INPUT_CHARS, EnhancerConfig
from prompt_enhancer.context import ContextAnalyzer, RuleLoader
from prompt_enhancer.exporters import export_prompt
from prompt_enhancer.logging_utils import configure_logging
from prompt_enhancer.models import (
    PromptContext,
    RawPromptInput,
    SearchQuery,
    StructuredPrompt,
    ValidationResult,
)
from prompt_enhancer.optimizer import (
    ModelCapability,
    Optimizer,
    OptimizerSettings,
    StrandsModelCapability,
)
from prompt_enhancer.parsing import PromptParser
from prompt_enhancer.storage import PromptStore
from prompt_enhancer.structure import StructureBuilder
from prompt_enhancer.telemetry import pipeline_span, stage_span
from prompt_enhancer.templates import WorkflowTemplate
from prompt_enhancer.validation import PromptValidator

logger = logging.getLogger(__name__)


class PromptEnhancer:
    """Run the enhancement pipeline and manage stored prompts.

    Args:
        config: Runtime configuration (defaults to ``EnhancerConfig()``)
        capability: Model capability; None means every enhancement uses the
            heuristic fallback
        store: Prompt store; created at ``config.store_path`` on first use
    """

    def __init__(
        self,
        config: EnhancerConfig | None = None,
        capability: ModelCapability | None = None,
        store: PromptStore | None = None,
        *,
        analyzer: ContextAnalyzer | None = None,
        builder: StructureBuilder | None = None,
        rule_loader: RuleLoader | None = None,
    ):
        self.config = config or EnhancerConfig()
        self.parser = PromptParser()
        self.analyzer = analyzer or ContextAnalyzer(
            max_files=self.config.max_context_files,
            max_tokens=self.config.max_context_tokens,
        )
        self.builder = builder or StructureBuilder()
        self.rule_loader = rule_loader or RuleLoader()
        self.optimizer = Optimizer(capability, OptimizerSettings.from_config(self.config))
        self.validator = PromptValidator(self.config.acceptance_threshold)
        self._store = store
        self._store_lock = threading.Lock()

    @classmethod
    def from_env(cls, **overrides: Any) -> "PromptEnhancer":
        """Build a pipeline from ``PROMPT_ENHANCER_*`` variables with the Strands model.

        Also configures logging at ``config.log_level``.
        """
        config = EnhancerConfig.from_env(**overrides)
        configure_logging(config.log_level)
        capability = StrandsModelCapability(
            tier=config.model_tier,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
        )
        return cls(config=config, capability=capability)

    @property
    def prompt_store(self) -> PromptStore:
        with self._store_lock:
            if self._store is None:
                self._store = PromptStore(self.config.store_path, validator=self.validator)
            return self._store

    # ==========================================================================
    # Enhancement
    # ==========================================================================

    def enhance(
        self,
        raw: str | RawPromptInput,
        *,
        project_root: str | Path | None = None,
        template: WorkflowTemplate | None = None,
        cancel_event: threading.Event | None = None,
    ) -> StructuredPrompt:
        """Turn a raw request into a validated StructuredPrompt.

        Args:
            raw: Raw text or a RawPromptInput with hints and metadata
            project_root: Project to scan (defaults to ``config.project_path``)
            template: Template overriding the workflow default
            cancel_event: Set to abandon the model call and use the fallback

        Returns:
            A complete record whose validation matches its fields. Text over
            MAX_INPUT_CHARS is truncated and flagged in ``metadata.truncated_from``.
        """
        raw_input = RawPromptInput.coerce(raw)
        if raw_input.metadata.truncated_from is not None:
            logger.warning(
                f"Raw prompt truncated from {raw_input.metadata.truncated_from} "
                f"to {MAX_INPUT_CHARS} characters"
            )
        root = project_root or self.config.project_path

        with pipeline_span("enhance", raw_input.content) as span:
            with stage_span("parse") as parse_span:
                parsed = self.parser.parse(raw_input)
                parse_span.set_attribute("prompt.workflow", parsed.workflow.value)

            with stage_span("context") as context_span:
                context = self._analyze_context(raw_input.content, root)
                context_span.set_attribute("context.file_count", len(context.relevant_files))

            with stage_span("structure"):
                skeleton = self.builder.build(parsed, context, template)

            with stage_span("optimize") as optimize_span:
                enhanced = self.optimizer.optimize(
                    skeleton, cancel_event=cancel_event, rules_text=self._rules_text(root)
                )
                optimize_span.set_attribute(
                    "optimizer.generated_by", enhanced.metadata.generated_by.value
                )

            with stage_span("validate") as validate_span:
                validation = self.validator.validate(enhanced)
                validate_span.set_attribute("validation.score", validation.score)

            result = enhanced.model_copy(update={"validation": validation})
            span.set_attribute("prompt.id", result.id)
            span.set_attribute("prompt.workflow", result.workflow.value)
            span.set_attribute("validation.is_valid", validation.is_valid)

        logger.info(
            f"Enhanced prompt {result.id}: workflow={result.workflow.value}, "
            f"score={validation.score}, generated_by={result.metadata.generated_by.value}"
        )
        return result

    def _analyze_context(self, raw_text: str, project_root: str | Path) -> PromptContext:
        if not self.config.enable_codebase_context:
            return PromptContext.empty()
        return self.analyzer.analyze(project_root, raw_text)

    def _rules_text(self, project_root: str | Path) -> str:
        if not self.config.enable_project_rules:
            return ""
        return self.rule_loader.rules_text(project_root)

    def validate(self, prompt: StructuredPrompt) -> ValidationResult:
        """Score a record; pure and idempotent."""
        return self.validator.validate(prompt)

    def revalidate(self, prompt: StructuredPrompt) -> StructuredPrompt:
        """Copy of ``prompt`` with a validation matching its current fields."""
        return prompt.model_copy(update={"validation": self.validator.validate(prompt)})

    # ==========================================================================
    # Storage
    # ==========================================================================

    def save(self, prompt: StructuredPrompt) -> str:
        return self.prompt_store.save(prompt)

    store = save

    def retrieve(self, prompt_id: str) -> StructuredPrompt:
        return self.prompt_store.retrieve(prompt_id)

    def update(self, prompt_id: str, changes: dict[str, Any]) -> StructuredPrompt:
        return self.prompt_store.update(prompt_id, changes)

    def search(
        self, query: SearchQuery | str | None = None, **filters: Any
    ) -> list[StructuredPrompt]:
        """Search stored prompts by a SearchQuery, free text, or keyword filters."""
        if isinstance(query, str):
            query = SearchQuery(text=query, **filters)
        elif query is None:
            query = SearchQuery(**filters)
        elif filters:
            query = SearchQuery.model_validate({**query.model_dump(), **filters})
        return self.prompt_store.search(query)

    def delete(self, prompt_id: str) -> bool:
        return self.prompt_store.delete(prompt_id)

    # ==========================================================================
    # Export
    # ==========================================================================

    def export(self, prompt: StructuredPrompt, format_name: str = "json") -> str:
        return export_prompt(prompt, format_name)
