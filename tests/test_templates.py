"""Tests for workflow templates."""

import pytest

from prompt_enhancer.models import WorkflowType
from prompt_enhancer.templates import (
    DEFAULT_CLARIFYING_QUESTIONS,
    WORKFLOW_TEMPLATES,
    clarifying_questions_for,
    get_template,
)


@pytest.mark.parametrize("workflow", list(WorkflowType))
def test_every_workflow_has_a_complete_template(workflow):
    template = get_template(workflow)
    assert template.success_criteria
    assert template.constraints
    assert template.steps
    assert template.output_format is not None
    assert template.output_structure


def test_registry_covers_workflow_enum():
    assert set(WORKFLOW_TEMPLATES) == set(WorkflowType)


def test_template_questions_win_over_defaults():
    bug = get_template(WorkflowType.bug)
    assert clarifying_questions_for(bug) == list(bug.clarifying_questions)


def test_defaults_when_template_has_no_questions():
    general = get_template(WorkflowType.general)
    assert clarifying_questions_for(general) == list(DEFAULT_CLARIFYING_QUESTIONS)
