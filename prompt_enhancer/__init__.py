"""Prompt enhancement pipeline.

Turns raw, unstructured engineering requests into validated,
context-enriched StructuredPrompt records.
"""

from prompt_enhancer.config import EnhancerConfig, ModelTier
from prompt_enhancer.errors import (
    ConfigurationError,
    NotFoundError,
    PromptEnhancerError,
    StaleValidationError,
)
from prompt_enhancer.logging_utils import configure_logging
from prompt_enhancer.models import (
    Complexity,
    GenerationSource,
    PromptContext,
    RawPromptInput,
    SearchQuery,
    StructuredPrompt,
    ValidationResult,
    WorkflowType,
)
from prompt_enhancer.pipeline import PromptEnhancer

__version__ = "0.1.0"

__all__ = [
    "Complexity",
    "ConfigurationError",
    "EnhancerConfig",
    "GenerationSource",
    "ModelTier",
    "NotFoundError",
    "PromptContext",
    "PromptEnhancer",
    "PromptEnhancerError",
    "RawPromptInput",
    "SearchQuery",
    "StaleValidationError",
    "StructuredPrompt",
    "ValidationResult",
    "WorkflowType",
    "configure_logging",
]
