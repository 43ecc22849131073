"""Data contract for model-produced enhancements.

The model capability may hand back a pydantic instance, a plain dict or a
JSON string. ``check_enhancement`` turns any of them into a tagged result so
the optimizer can branch without catching validation exceptions itself.
"""

import json
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from prompt_enhancer.models import Complexity, WorkflowType


class EnhancementFields(BaseModel):
    """Structured output requested from the model."""

    instruction: str = Field(description="Clear, specific, actionable rewrite of the task")
    success_criteria: list[str] = Field(
        default_factory=list, description="Measurable conditions for the task to be done"
    )
    constraints: list[str] = Field(
        default_factory=list, description="Technical constraints the implementation must respect"
    )
    clarifying_questions: list[str] = Field(
        default_factory=list, description="Questions to resolve ambiguity in the request"
    )
    workflow_type: WorkflowType = Field(description="Detected workflow classification")
    confidence_score: int = Field(ge=0, le=100, description="Confidence in the rewrite")
    estimated_complexity: Complexity
    order_of_steps: list[str] = Field(
        default_factory=list, description="Logical order of implementation steps"
    )


@dataclass(frozen=True)
class EnhancementOk:
    fields: EnhancementFields


@dataclass(frozen=True)
class SchemaViolation:
    detail: str


EnhancementCheck = EnhancementOk | SchemaViolation


def check_enhancement(obj: Any) -> EnhancementCheck:
    """Validate raw model output against EnhancementFields."""
    if isinstance(obj, EnhancementFields):
        return EnhancementOk(obj)

    if isinstance(obj, BaseModel):
        obj = obj.model_dump()
    elif isinstance(obj, str):
        try:
            obj = json.loads(obj)
        except json.JSONDecodeError as e:
            return SchemaViolation(f"Output is not valid JSON: {e}")

    if not isinstance(obj, dict):
        return SchemaViolation(f"Expected an object, got {type(obj).__name__}")

    try:
        return EnhancementOk(EnhancementFields.model_validate(obj))
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or '<root>'}: {error['msg']}"
            for error in e.errors()
        )
        return SchemaViolation(problems)
