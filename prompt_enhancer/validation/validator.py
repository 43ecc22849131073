"""Rubric scoring of structured prompts.

Four weighted dimensions add up to 100:

- Instruction clarity (30): length, specificity markers, no vague wording
- Context completeness (30): relevant files, technical stack, current state
- Structural quality (20): success criteria (10), constraints (5), examples (5)
- Output specification (20): format (10), structure (10)

Validation is pure: the same record always yields the same result.
"""

import logging
import re
from dataclasses import dataclass

from prompt_enhancer.config import ACCEPTANCE_THRESHOLD, MIN_INSTRUCTION_CHARS
from prompt_enhancer.models import (
    Severity,
    StructuredPrompt,
    ValidationIssue,
    ValidationResult,
    scoring_fingerprint,
)

logger = logging.getLogger(__name__)

_SPECIFIC_MARKER_RES = (
    re.compile(
        r"\b(implement|add|fix|create|update|refactor|remove|write|replace|migrate|"
        r"optimize|document|test|validate|review|investigate|rename|extract)\b",
        re.I,
    ),
    re.compile(r"\b[\w/.-]+\.[a-z]{1,5}\b"),  # file names
    re.compile(r"`[^`]+`"),
    re.compile(r"\b[A-Z][a-z0-9]+(?:[A-Z][a-z0-9]+)+\b"),  # CamelCase
    re.compile(r"\b[a-z][a-z0-9]*(?:_[a-z0-9]+)+\b"),  # snake_case
    re.compile(r"\d"),
)
_VAGUE_RE = re.compile(r"\b(something|somehow|stuff|things?|whatever|etc)\b", re.I)


@dataclass(frozen=True)
class _Check:
    field: str
    points: int
    passed: bool
    description: str
    severity: Severity
    fix: str


class PromptValidator:
    """Score a StructuredPrompt and report what is missing."""

    def __init__(self, acceptance_threshold: int = ACCEPTANCE_THRESHOLD):
        self.acceptance_threshold = acceptance_threshold

    def validate(self, prompt: StructuredPrompt) -> ValidationResult:
        instruction = prompt.instruction.strip()
        context = prompt.context
        checks = [
            # Instruction clarity
            _Check(
                "instruction",
                10,
                len(instruction) > MIN_INSTRUCTION_CHARS,
                f"Instruction is {MIN_INSTRUCTION_CHARS} characters or shorter",
                Severity.warning,
                "Expand the instruction with what should change and where",
            ),
            _Check(
                "instruction",
                10,
                any(pattern.search(instruction) for pattern in _SPECIFIC_MARKER_RES),
                "Instruction has no action verb, file name, identifier or number",
                Severity.warning,
                "Name the action and the files or components involved",
            ),
            _Check(
                "instruction",
                10,
                bool(instruction) and not _VAGUE_RE.search(instruction),
                "Instruction uses vague wording",
                Severity.warning,
                "Replace vague terms such as 'something' or 'stuff' with concrete names",
            ),
            # Context completeness
            _Check(
                "context.relevant_files",
                10,
                bool(context.relevant_files),
                "No relevant project files identified",
                Severity.info,
                "Point the analyzer at the project root or mention the affected files",
            ),
            _Check(
                "context.technical_stack",
                10,
                bool(context.technical_stack),
                "Technical stack is unknown",
                Severity.info,
                "Add a dependency manifest or state the languages and frameworks",
            ),
            _Check(
                "context.current_state",
                10,
                bool(context.current_state.strip()),
                "Current project state is not described",
                Severity.info,
                "Describe the current behavior or project state",
            ),
            # Structural quality
            _Check(
                "success_criteria",
                10,
                bool(prompt.success_criteria),
                "No success criteria defined",
                Severity.warning,
                "Add measurable success criteria",
            ),
            _Check(
                "constraints",
                5,
                bool(prompt.constraints),
                "No constraints defined",
                Severity.info,
                "List technical constraints the change must respect",
            ),
            _Check(
                "examples",
                5,
                bool(prompt.examples),
                "No examples provided",
                Severity.info,
                "Add an input/output example of the expected behavior",
            ),
            # Output specification
            _Check(
                "expected_output.format",
                10,
                prompt.expected_output.format is not None,
                "Expected output format is not specified",
                Severity.warning,
                "Specify the output format (code, documentation, analysis, structured data)",
            ),
            _Check(
                "expected_output.structure",
                10,
                bool((prompt.expected_output.structure or "").strip()),
                "Expected output structure is not described",
                Severity.info,
                "Describe how the deliverable should be structured",
            ),
        ]

        score = min(100, sum(check.points for check in checks if check.passed))
        issues = [
            ValidationIssue(
                field=check.field,
                description=check.description,
                severity=check.severity,
                fix=check.fix,
            )
            for check in checks
            if not check.passed
        ]

        if not instruction:
            issues.insert(
                0,
                ValidationIssue(
                    field="instruction",
                    description="Instruction is empty",
                    severity=Severity.blocking,
                    fix="Provide a non-empty instruction",
                ),
            )

        suggestions = list(dict.fromkeys(issue.fix for issue in issues if issue.fix))
        has_blocking = any(issue.severity is Severity.blocking for issue in issues)
        is_valid = score >= self.acceptance_threshold and not has_blocking

        result = ValidationResult(
            is_valid=is_valid,
            score=score,
            issues=issues,
            suggestions=suggestions,
            fingerprint=scoring_fingerprint(prompt),
        )

        if not is_valid:
            logger.warning(
                f"Prompt {prompt.id} failed validation: score {score} "
                f"(threshold {self.acceptance_threshold}), {len(issues)} issues",
                extra={"data": {"prompt_id": prompt.id, "score": score, "blocking": has_blocking}},
            )
        else:
            logger.debug(f"Prompt {prompt.id} validated with score {score}")
        return result
