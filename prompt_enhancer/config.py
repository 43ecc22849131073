"""Centralized configuration for the prompt enhancer.

This module provides a single source of truth for configuration constants
used across the pipeline stages, plus the runtime ``EnhancerConfig`` that is
built once and injected into each stage.

Design Principles:
- All timeout, token and scoring thresholds in one place
- Runtime configuration is immutable and passed explicitly, never read
  from ambient global state inside a stage
- Environment variables (optionally from a ``.env`` file) override defaults
"""

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from prompt_enhancer.errors import ConfigurationError

# =============================================================================
# Enums
# =============================================================================


class ModelTier(Enum):
    """Model tier for cost/quality routing."""

    HEAVY = "heavy"  # Capable model for long, structured rewrites
    LIGHT = "light"  # Cheaper model, default for prompt enhancement
    REASONING = "reasoning"  # Strongest model


# =============================================================================
# Timeout Configuration
# =============================================================================

# Wall-clock budget for one structured-output call to the model capability
MODEL_CALL_TIMEOUT = 60.0

# Transport timeouts handed to the provider client
MODEL_READ_TIMEOUT = 120.0
MODEL_CONNECT_TIMEOUT = 30.0

# Transport-level retries (the optimizer itself never retries)
MODEL_MAX_RETRIES = 3
MODEL_RETRY_MODE = "standard"


# =============================================================================
# Token Limits
# =============================================================================

# Max tokens for the enhancement response (instruction + lists)
TOKENS_ENHANCEMENT = 2000

# Default token budget for the assembled project context
TOKENS_CONTEXT_DEFAULT = 4000

# Rough characters-per-token ratio used for budget estimates
CHARS_PER_TOKEN = 4


# =============================================================================
# Input / Context Limits
# =============================================================================

# Upper bound on raw prompt length
MAX_INPUT_CHARS = 20_000

# Default number of files kept in PromptContext.relevant_files
MAX_CONTEXT_FILES = 20

# Bytes read from a file head when building its relevance summary
FILE_HEAD_BYTES = 2048

# Max characters of a single file summary
FILE_SUMMARY_CHARS = 120

# Max characters of the project overview
PROJECT_OVERVIEW_CHARS = 500

# Raw prompts shorter than this get default clarifying questions
SHORT_PROMPT_CHARS = 50

# Contexts kept by one ContextAnalyzer before the least recently used is dropped
CONTEXT_CACHE_SIZE = 64

# Project rules directory and how long a loaded rule set stays fresh
RULES_DIR = ".ruler"
RULES_CACHE_TTL = 60.0


# =============================================================================
# Validation / Scoring
# =============================================================================

# Instruction must be longer than this to earn the length points
MIN_INSTRUCTION_CHARS = 20

# Minimum score for ValidationResult.is_valid
ACCEPTANCE_THRESHOLD = 60

# Record format version stamped on every StructuredPrompt
FORMAT_VERSION = "1.0.0"


# =============================================================================
# Storage
# =============================================================================

DEFAULT_STORE_PATH = ".prompt-enhancer/store"

# Environment variable prefix for EnhancerConfig.from_env()
ENV_PREFIX = "PROMPT_ENHANCER_"


# =============================================================================
# Runtime Configuration
# =============================================================================


@dataclass(frozen=True)
class EnhancerConfig:
    """Runtime configuration for a pipeline instance.

    Attributes:
        project_path: Root of the project scanned by the context analyzer
        store_path: Directory of the LanceDB prompt store
        enable_codebase_context: Skip the context scan entirely when False
        enable_project_rules: Add the project's rule files to the model request
        max_context_files: Max entries in PromptContext.relevant_files
        max_context_tokens: Approximate token budget of the context payload
        model_tier: Tier used to resolve the model id when model_id is unset
        model_id: Explicit model identifier (overrides tier resolution)
        model_timeout: Seconds to wait for the model before falling back
        max_tokens: Max tokens for the enhancement response
        temperature: Sampling temperature for the enhancement call
        acceptance_threshold: Minimum score for a record to be valid
        log_level: Logging level name for configure_logging()
    """

    project_path: Path = field(default_factory=Path.cwd)
    store_path: Path = Path(DEFAULT_STORE_PATH)
    enable_codebase_context: bool = True
    enable_project_rules: bool = True
    max_context_files: int = MAX_CONTEXT_FILES
    max_context_tokens: int = TOKENS_CONTEXT_DEFAULT
    model_tier: ModelTier = ModelTier.LIGHT
    model_id: str | None = None
    model_timeout: float = MODEL_CALL_TIMEOUT
    max_tokens: int = TOKENS_ENHANCEMENT
    temperature: float = 0.7
    acceptance_threshold: int = ACCEPTANCE_THRESHOLD
    log_level: str = "WARNING"

    def __post_init__(self) -> None:
        if self.max_context_files < 1:
            raise ConfigurationError("max_context_files must be at least 1")
        if self.max_context_tokens < 1:
            raise ConfigurationError("max_context_tokens must be at least 1")
        if self.model_timeout <= 0:
            raise ConfigurationError("model_timeout must be positive")
        if not 0 <= self.acceptance_threshold <= 100:
            raise ConfigurationError("acceptance_threshold must be between 0 and 100")

    def with_overrides(self, **overrides: Any) -> "EnhancerConfig":
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    @classmethod
    def from_env(cls, dotenv: bool = True, **overrides: Any) -> "EnhancerConfig":
        """Build a config from ``PROMPT_ENHANCER_*`` environment variables.

        Args:
            dotenv: Load a ``.env`` file from the working directory first
            **overrides: Explicit values that win over the environment

        Raises:
            ConfigurationError: If a variable cannot be parsed
        """
        if dotenv:
            load_dotenv()

        values: dict[str, Any] = {}

        if raw := _env("PROJECT_PATH"):
            values["project_path"] = Path(raw)
        if raw := _env("STORE_PATH"):
            values["store_path"] = Path(raw)
        if raw := _env("ENABLE_CONTEXT"):
            values["enable_codebase_context"] = _parse_bool("ENABLE_CONTEXT", raw)
        if raw := _env("ENABLE_RULES"):
            values["enable_project_rules"] = _parse_bool("ENABLE_RULES", raw)
        if raw := _env("MAX_CONTEXT_FILES"):
            values["max_context_files"] = _parse_number("MAX_CONTEXT_FILES", raw, int)
        if raw := _env("MAX_CONTEXT_TOKENS"):
            values["max_context_tokens"] = _parse_number("MAX_CONTEXT_TOKENS", raw, int)
        if raw := _env("MODEL_TIER"):
            try:
                values["model_tier"] = ModelTier(raw.strip().lower())
            except ValueError:
                valid = ", ".join(t.value for t in ModelTier)
                raise ConfigurationError(
                    f"Invalid {ENV_PREFIX}MODEL_TIER '{raw}'. Valid options: {valid}"
                ) from None
        if raw := _env("MODEL_ID"):
            values["model_id"] = raw
        if raw := _env("MODEL_TIMEOUT"):
            values["model_timeout"] = _parse_number("MODEL_TIMEOUT", raw, float)
        if raw := _env("MAX_TOKENS"):
            values["max_tokens"] = _parse_number("MAX_TOKENS", raw, int)
        if raw := _env("TEMPERATURE"):
            values["temperature"] = _parse_number("TEMPERATURE", raw, float)
        if raw := _env("ACCEPTANCE_THRESHOLD"):
            values["acceptance_threshold"] = _parse_number("ACCEPTANCE_THRESHOLD", raw, int)
        if raw := _env("LOG_LEVEL"):
            values["log_level"] = raw.upper()

        values.update(overrides)
        return cls(**values)


def _env(name: str) -> str | None:
    raw = os.getenv(f"{ENV_PREFIX}{name}")
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _parse_bool(name: str, raw: str) -> bool:
    lowered = raw.lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"Invalid boolean for {ENV_PREFIX}{name}: '{raw}'")


def _parse_number(name: str, raw: str, kind: type) -> Any:
    try:
        return kind(raw)
    except ValueError:
        raise ConfigurationError(
            f"Invalid {kind.__name__} for {ENV_PREFIX}{name}: '{raw}'"
        ) from None
