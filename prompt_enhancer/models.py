"""Data models for the prompt enhancement pipeline.

Every artifact that crosses a stage boundary is a Pydantic model so it can be
validated on the way in (model output, stored payloads) and serialized
verbatim on the way out (JSON/YAML export, storage).
"""

import hashlib
import json
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prompt_enhancer.config import FORMAT_VERSION, MAX_INPUT_CHARS

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class WorkflowType(StrEnum):
    """Closed classification of the intent behind a raw instruction."""

    feature = "feature"
    bug = "bug"
    refactor = "refactor"
    documentation = "documentation"
    research = "research"
    pr_review = "pr_review"
    general = "general"


class Complexity(StrEnum):
    """Estimated effort of the requested task."""

    simple = "simple"
    moderate = "moderate"
    complex = "complex"


class Severity(StrEnum):
    """Severity of a validation issue. ``blocking`` forces is_valid=False."""

    info = "info"
    warning = "warning"
    blocking = "blocking"


class InputKind(StrEnum):
    """Kind of a user-supplied input value."""

    text = "text"
    code = "code"
    data = "data"
    reference = "reference"


class OutputFormat(StrEnum):
    """Format of the deliverable the prompt asks for."""

    code = "code"
    documentation = "documentation"
    analysis = "analysis"
    structured_data = "structured_data"


class GenerationSource(StrEnum):
    """Which optimizer path produced a record."""

    model = "model"
    fallback = "fallback"


def utc_now() -> datetime:
    """Timezone-aware current time in UTC."""
    return datetime.now(UTC)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes as UTC so stored times always compare."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for value in values:
        cleaned = value.strip()
        if cleaned and cleaned not in seen:
            seen.add(cleaned)
            result.append(cleaned)
    return result


# ---------------------------------------------------------------------------
# Raw input
# ---------------------------------------------------------------------------


class RawPromptMetadata(BaseModel):
    """Caller-supplied metadata attached to a raw prompt."""

    model_config = ConfigDict(frozen=True)

    task_id: str | None = None
    author: str | None = None
    tags: list[str] = Field(default_factory=list)
    source: str | None = Field(None, description="Where the prompt came from (cli, ticket, web)")
    timestamp: datetime | None = None
    truncated_from: int | None = Field(None, description="Original length when content was cut")

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


class RawPromptInput(BaseModel):
    """The unenhanced request. Consumed once by the parser."""

    model_config = ConfigDict(frozen=True)

    content: str = Field(max_length=MAX_INPUT_CHARS)
    type: WorkflowType | None = Field(None, description="Workflow hint; always wins over inference")
    metadata: RawPromptMetadata = Field(default_factory=RawPromptMetadata)

    @classmethod
    def coerce(cls, raw: "str | RawPromptInput") -> "RawPromptInput":
        """Normalize caller input into a RawPromptInput.

        Text longer than MAX_INPUT_CHARS is cut to the limit and the original
        length is kept in ``metadata.truncated_from``.
        """
        if isinstance(raw, RawPromptInput):
            return raw
        if len(raw) > MAX_INPUT_CHARS:
            return cls(
                content=raw[:MAX_INPUT_CHARS],
                metadata=RawPromptMetadata(truncated_from=len(raw)),
            )
        return cls(content=raw)


class ParsedPrompt(BaseModel):
    """Parser output: classification plus coarse extraction."""

    raw: RawPromptInput
    workflow: WorkflowType
    requirements: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    components: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


class FileContext(BaseModel):
    """A project file ranked as relevant to the request."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="POSIX path relative to the project root")
    summary: str
    relevance: int = Field(0, ge=0)


class PromptContext(BaseModel):
    """Read-only snapshot of the target project, ranked against the request."""

    model_config = ConfigDict(frozen=True)

    project_overview: str = ""
    relevant_files: list[FileContext] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)
    technical_stack: list[str] = Field(default_factory=list)
    current_state: str = ""

    @field_validator("dependencies", "technical_stack")
    @classmethod
    def _as_sorted_set(cls, value: list[str]) -> list[str]:
        return sorted(set(_dedupe(value)))

    @classmethod
    def empty(cls) -> "PromptContext":
        return cls()


# ---------------------------------------------------------------------------
# Structured prompt parts
# ---------------------------------------------------------------------------


class PromptInput(BaseModel):
    """A labeled user-supplied parameter."""

    label: str
    value: str
    type: InputKind = InputKind.text


class OutputSpecification(BaseModel):
    """Format and structure of the desired deliverable."""

    format: OutputFormat | None = None
    structure: str | None = None


class Example(BaseModel):
    input: str
    output: str
    explanation: str | None = None


class DiscoveredReference(BaseModel):
    """A URL, library or package mentioned in the raw prompt."""

    type: Literal["url", "library", "package"]
    value: str
    context: str | None = None


class ValidationIssue(BaseModel):
    field: str
    description: str
    severity: Severity
    fix: str | None = None


class ValidationResult(BaseModel):
    """Score and issues for a StructuredPrompt.

    ``fingerprint`` identifies the field values the result was computed
    against; a record whose current fingerprint differs is stale.
    """

    is_valid: bool
    score: int = Field(ge=0, le=100)
    issues: list[ValidationIssue] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    fingerprint: str | None = None

    @classmethod
    def pending(cls) -> "ValidationResult":
        """Neutral placeholder used before the validator has run."""
        return cls(is_valid=False, score=0)

    @property
    def blocking_issues(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity is Severity.blocking]


class PromptMetadata(BaseModel):
    """Bookkeeping for a StructuredPrompt.

    Tags keep insertion order for display but compare as a set.
    """

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    author: str | None = None
    task_id: str | None = None
    source: str | None = None
    tags: list[str] = Field(default_factory=list)
    generated_by: GenerationSource | None = None
    fallback_reason: str | None = None
    confidence_score: int | None = Field(None, ge=0, le=100)
    truncated_from: int | None = None

    @field_validator("tags")
    @classmethod
    def _clean_tags(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PromptMetadata):
            return NotImplemented
        return self.model_dump(exclude={"tags"}) == other.model_dump(exclude={"tags"}) and set(
            self.tags
        ) == set(other.tags)

    @property
    def is_fallback(self) -> bool:
        return self.generated_by is GenerationSource.fallback


class StructuredPrompt(BaseModel):
    """The canonical, validated, context-enriched record and unit of storage."""

    id: str
    version: str = FORMAT_VERSION
    workflow: WorkflowType
    instruction: str
    context: PromptContext = Field(default_factory=PromptContext.empty)
    inputs: list[PromptInput] = Field(default_factory=list)
    expected_output: OutputSpecification = Field(default_factory=OutputSpecification)
    validation: ValidationResult = Field(default_factory=ValidationResult.pending)
    metadata: PromptMetadata = Field(default_factory=PromptMetadata)
    clarifying_questions: list[str] = Field(default_factory=list)
    success_criteria: list[str] = Field(default_factory=list)
    constraints: list[str] = Field(default_factory=list)
    examples: list[Example] = Field(default_factory=list)
    estimated_complexity: Complexity | None = None
    order_of_steps: list[str] = Field(default_factory=list)
    discovered_references: list[DiscoveredReference] = Field(default_factory=list)

    def validation_is_current(self) -> bool:
        """True when ``validation`` was computed against the current fields."""
        fingerprint = self.validation.fingerprint
        return fingerprint is not None and fingerprint == scoring_fingerprint(self)


class SearchQuery(BaseModel):
    """Store search filters. Unset fields match everything."""

    workflow: WorkflowType | None = None
    text: str | None = Field(None, description="Case-insensitive substring of the record text")
    tags: list[str] = Field(default_factory=list)
    min_score: int | None = Field(None, ge=0, le=100)
    author: str | None = None
    created_after: datetime | None = None
    created_before: datetime | None = None

    @field_validator("created_after", "created_before")
    @classmethod
    def _assume_utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)


# ---------------------------------------------------------------------------
# Fingerprinting
# ---------------------------------------------------------------------------

# Fields read by the validator; editing any of them invalidates validation.
SCORED_FIELDS = (
    "instruction",
    "context",
    "success_criteria",
    "constraints",
    "examples",
    "expected_output",
)


def scoring_fingerprint(prompt: StructuredPrompt) -> str:
    """Digest of the fields the validator scores."""
    payload: dict[str, Any] = prompt.model_dump(mode="json", include=set(SCORED_FIELDS))
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
