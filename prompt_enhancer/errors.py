"""Exceptions raised by the prompt enhancer.

Only store-layer misuse propagates to callers of the pipeline. Stage
degradation (unreadable context, failed model calls, blocking validation
issues) is reported through logs and record fields instead.
"""


class PromptEnhancerError(Exception):
    """Base class for all prompt enhancer errors."""

    pass


class ConfigurationError(PromptEnhancerError):
    """Raised when configuration values are missing or cannot be parsed."""

    pass


class NotFoundError(PromptEnhancerError):
    """Raised when retrieve() or update() targets an id that is not stored.

    Distinct from validation failures so callers can recover by re-creating
    the record instead of re-validating it.
    """

    def __init__(self, prompt_id: str):
        super().__init__(f"Prompt not found: {prompt_id}")
        self.prompt_id = prompt_id


class StaleValidationError(PromptEnhancerError):
    """Raised when a record's validation does not match its current fields.

    Any edit to the scored fields (instruction, context, success criteria,
    constraints, examples, expected output) invalidates the stored
    ValidationResult. Re-run the validator and retry the save.
    """

    def __init__(self, prompt_id: str, detail: str = ""):
        message = f"Validation for prompt {prompt_id} is stale; re-validate before saving"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.prompt_id = prompt_id


class PromptLoadError(PromptEnhancerError):
    """Raised when a bundled prompt file cannot be found or read."""

    pass
