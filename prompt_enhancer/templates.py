"""Workflow templates for the structure builder and the optimizer fallback.

Each WorkflowType maps to a declarative template of default success
criteria, constraints, execution steps and expected output. The structure
builder applies the template when no explicit one is supplied, and the
optimizer fallback re-uses it when the model is unavailable.

Coverage is checked at import time: every WorkflowType must have a template.
"""

from dataclasses import dataclass, field

from prompt_enhancer.models import OutputFormat, WorkflowType


@dataclass(frozen=True)
class WorkflowTemplate:
    """Default skeleton for one workflow type."""

    success_criteria: tuple[str, ...]
    constraints: tuple[str, ...]
    steps: tuple[str, ...]
    output_format: OutputFormat
    output_structure: str
    clarifying_questions: tuple[str, ...] = field(default_factory=tuple)


DEFAULT_CLARIFYING_QUESTIONS = (
    "What is the specific technical goal and acceptance criteria?",
    "Which files or components need modification and why?",
    "Are there existing patterns or conventions to follow?",
    "What testing strategy should be used?",
)

# ========== Templates ==========

WORKFLOW_TEMPLATES: dict[WorkflowType, WorkflowTemplate] = {
    WorkflowType.bug: WorkflowTemplate(
        success_criteria=(
            "Issue is resolved and no longer reproducible",
            "All existing tests pass without regression",
            "New tests added to prevent regression",
            "Error handling covers the failing path",
        ),
        constraints=(
            "Maintain backward compatibility",
            "Add error logging on the failing path",
            "Include regression tests",
        ),
        steps=(
            "Reproduce the issue locally",
            "Identify the root cause",
            "Implement the fix with proper error handling",
            "Add tests to prevent regression",
            "Verify the fix resolves the issue completely",
        ),
        output_format=OutputFormat.code,
        output_structure="Fixed code with error handling and a regression test",
        clarifying_questions=(
            "What are the exact steps to reproduce the issue?",
            "What is the expected behavior versus the observed behavior?",
            "When did the issue start, and what changed around that time?",
        ),
    ),
    WorkflowType.feature: WorkflowTemplate(
        success_criteria=(
            "Feature works as specified with edge cases handled",
            "Unit and integration tests cover the new behavior",
            "Documentation and examples updated",
        ),
        constraints=(
            "Follow project coding standards",
            "Include input validation",
            "Do not change unrelated public interfaces",
        ),
        steps=(
            "Design the component or API surface",
            "Implement core functionality",
            "Handle edge cases and errors",
            "Add tests",
            "Update documentation and examples",
        ),
        output_format=OutputFormat.code,
        output_structure="Implementation with tests",
        clarifying_questions=(
            "Who are the users of this feature and what problem does it solve?",
            "What is explicitly out of scope for the first version?",
            "Are there existing components this should reuse?",
        ),
    ),
    WorkflowType.refactor: WorkflowTemplate(
        success_criteria=(
            "Behavior is unchanged and all tests pass",
            "Code complexity is measurably reduced",
            "Code follows established project patterns",
        ),
        constraints=(
            "No external API changes",
            "Preserve all functionality",
            "Maintain or improve performance",
        ),
        steps=(
            "Analyze the current implementation",
            "Plan the refactoring approach",
            "Apply changes incrementally",
            "Run the full test suite after each step",
            "Verify performance is unchanged",
        ),
        output_format=OutputFormat.code,
        output_structure="Improved code structure with unchanged behavior",
    ),
    WorkflowType.documentation: WorkflowTemplate(
        success_criteria=(
            "All public APIs documented with examples",
            "Setup and usage instructions are clear and tested",
            "Troubleshooting guidance included",
        ),
        constraints=(
            "Use markdown format",
            "Include working code examples",
            "Keep terminology consistent with the codebase",
        ),
        steps=(
            "Outline the documentation structure",
            "Write the main content",
            "Add code examples",
            "Review for clarity",
            "Verify examples run",
        ),
        output_format=OutputFormat.documentation,
        output_structure="Markdown documentation",
    ),
    WorkflowType.research: WorkflowTemplate(
        success_criteria=(
            "All viable options evaluated with pros and cons",
            "Recommendation justified against explicit criteria",
            "Risks and mitigations identified",
        ),
        constraints=(
            "Provide quantitative comparisons where possible",
            "Cite sources for external claims",
            "Consider team expertise and maintenance cost",
        ),
        steps=(
            "Define evaluation criteria",
            "Research available options",
            "Build a comparison matrix",
            "Prototype the most promising option",
            "Document the recommendation",
        ),
        output_format=OutputFormat.analysis,
        output_structure="Analysis with recommendations",
    ),
    WorkflowType.pr_review: WorkflowTemplate(
        success_criteria=(
            "Code quality verified against project standards",
            "Test coverage of changed code is adequate",
            "No security vulnerabilities introduced",
            "Performance impact assessed",
        ),
        constraints=(
            "Check against the security checklist",
            "Flag breaking changes explicitly",
            "Keep feedback actionable and specific",
        ),
        steps=(
            "Review the code changes",
            "Check test coverage",
            "Verify documentation",
            "Exercise the changed functionality",
            "Write review feedback",
        ),
        output_format=OutputFormat.analysis,
        output_structure="Review feedback grouped by severity",
    ),
    WorkflowType.general: WorkflowTemplate(
        success_criteria=(
            "Task completed as specified",
            "Quality standards met",
            "Relevant tests and documentation updated",
        ),
        constraints=(
            "Follow best practices",
            "Maintain code quality",
        ),
        steps=(
            "Understand the requirements",
            "Plan the implementation",
            "Execute the task",
            "Test and verify",
            "Document the changes",
        ),
        output_format=OutputFormat.structured_data,
        output_structure="Appropriate format for the task",
    ),
}

_missing = [workflow.value for workflow in WorkflowType if workflow not in WORKFLOW_TEMPLATES]
if _missing:
    raise RuntimeError(f"Workflow templates missing for: {', '.join(_missing)}")


def get_template(workflow: WorkflowType) -> WorkflowTemplate:
    """Return the template for a workflow type."""
    return WORKFLOW_TEMPLATES[workflow]


def clarifying_questions_for(template: WorkflowTemplate) -> list[str]:
    """Template questions, or the generic set when the template has none."""
    return list(template.clarifying_questions or DEFAULT_CLARIFYING_QUESTIONS)
