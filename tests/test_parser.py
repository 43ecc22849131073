"""Tests for workflow classification and requirement extraction."""

import pytest

from prompt_enhancer.models import RawPromptInput, RawPromptMetadata, WorkflowType
from prompt_enhancer.parsing import PromptParser, detect_workflow

# ---------------------------------------------------------------------------
# detect_workflow
# ---------------------------------------------------------------------------


class TestDetectWorkflow:
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Users can't login after password reset", WorkflowType.bug),
            ("Add dark mode toggle", WorkflowType.feature),
            ("Refactor the payment module to simplify retries", WorkflowType.refactor),
            ("Update the README with setup docs", WorkflowType.documentation),
            ("Investigate and compare caching libraries", WorkflowType.research),
            ("Review this pull request", WorkflowType.pr_review),
        ],
    )
    def test_classifies_by_vocabulary(self, text, expected):
        assert detect_workflow(text) is expected

    def test_no_hits_is_general(self):
        assert detect_workflow("Hello there") is WorkflowType.general

    def test_empty_text_is_general(self):
        assert detect_workflow("") is WorkflowType.general

    def test_tie_prefers_bug_over_feature(self):
        # one bug hit ("fix"), one feature hit ("new")
        assert detect_workflow("Fix the new login page") is WorkflowType.bug

    def test_tie_prefers_opening_verb(self):
        # one feature hit ("add"), one bug hit ("error")
        assert detect_workflow("Add error handling to the login form") is WorkflowType.feature
        assert detect_workflow("Implement retries for the failing upload") is WorkflowType.feature

    def test_tie_without_opening_verb_uses_vocabulary_order(self):
        assert detect_workflow("Login form error handling: please add it") is WorkflowType.bug

    def test_typographic_apostrophe(self):
        assert detect_workflow("Users can’t login") is WorkflowType.bug

    def test_more_distinct_hits_wins(self):
        text = "Add a new feature to create invoices; there is one error message"
        assert detect_workflow(text) is WorkflowType.feature


# ---------------------------------------------------------------------------
# PromptParser
# ---------------------------------------------------------------------------


class TestPromptParser:
    def setup_method(self):
        self.parser = PromptParser()

    def test_explicit_type_wins(self):
        raw = RawPromptInput(content="Add dark mode", type=WorkflowType.documentation)
        assert self.parser.parse(raw).workflow is WorkflowType.documentation

    def test_requirements_from_bullets_and_obligations(self):
        content = (
            "Add export.\n- must support CSV\n- include headers\nThe output should be UTF-8."
        )
        parsed = self.parser.parse(RawPromptInput(content=content))
        assert parsed.requirements == [
            "must support CSV",
            "include headers",
            "The output should be UTF-8.",
        ]

    def test_numbered_items_are_requirements(self):
        parsed = self.parser.parse(RawPromptInput(content="Plan:\n1. Parse input\n2) Emit JSON"))
        assert parsed.requirements == ["Parse input", "Emit JSON"]

    def test_tags_merge_workflow_tech_and_caller_tags(self):
        raw = RawPromptInput(
            content="Add a REST api endpoint in FastAPI",
            metadata=RawPromptMetadata(tags=["backend", "api"]),
        )
        parsed = self.parser.parse(raw)
        assert parsed.tags == ["feature", "rest", "api", "fastapi", "backend"]

    def test_components(self):
        parsed = self.parser.parse(
            RawPromptInput(content="Fix `parse_config` in config/loader.py and update UserService")
        )
        assert parsed.components == ["config/loader.py", "parse_config", "UserService"]

    def test_never_fails_on_empty_input(self):
        parsed = self.parser.parse(RawPromptInput(content=""))
        assert parsed.workflow is WorkflowType.general
        assert parsed.requirements == []
        assert parsed.components == []
        assert parsed.tags == ["general"]
