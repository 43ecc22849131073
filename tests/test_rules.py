"""Tests for project rule loading."""

import logging

import pytest

from prompt_enhancer.context import ProjectRule, RuleLoader, format_rules


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def project(tmp_path):
    rules = tmp_path / ".ruler"
    rules.mkdir()
    (rules / "testing.md").write_text("\n  Write pytest tests for new code  \n")
    (rules / "api.json").write_text('{"style": "REST"}')
    (rules / "notes.txt").write_text("ignored")
    return tmp_path


class TestRuleLoader:
    def test_loads_markdown_and_json_in_name_order(self, project):
        rules = RuleLoader().load(project)
        assert rules == [
            ProjectRule(source=".ruler/api.json", name="api", content='{"style": "REST"}'),
            ProjectRule(
                source=".ruler/testing.md", name="testing", content="Write pytest tests for new code"
            ),
        ]

    def test_missing_directory_means_no_rules(self, tmp_path):
        loader = RuleLoader()
        assert loader.load(tmp_path) == []
        assert loader.rules_text(tmp_path) == ""
        assert loader.has_rules(tmp_path) is False

    def test_get_rule_by_name(self, project):
        loader = RuleLoader()
        assert loader.get_rule(project, "testing").source == ".ruler/testing.md"
        assert loader.get_rule(project, "missing") is None

    def test_unreadable_rule_is_skipped(self, project, caplog):
        (project / ".ruler" / "binary.md").write_bytes(b"\xff\xfe\x00bad")
        with caplog.at_level(logging.WARNING):
            rules = RuleLoader().load(project)
        assert [rule.name for rule in rules] == ["api", "testing"]
        assert "Skipping unreadable rule file binary.md" in caplog.text


class TestRuleCache:
    def test_rules_are_reused_within_ttl(self, project):
        clock = FakeClock()
        loader = RuleLoader(ttl=60.0, clock=clock)
        first = loader.load(project)
        (project / ".ruler" / "security.md").write_text("Never log secrets")

        clock.now += 30
        assert loader.load(project) is first

        clock.now += 31
        assert [rule.name for rule in loader.load(project)] == ["api", "security", "testing"]

    def test_force_reload_and_clear_cache(self, project):
        loader = RuleLoader(clock=FakeClock())
        loader.load(project)
        (project / ".ruler" / "security.md").write_text("Never log secrets")

        assert len(loader.load(project, force_reload=True)) == 3
        (project / ".ruler" / "style.md").write_text("Use black")
        loader.clear_cache()
        assert len(loader.load(project)) == 4


class TestFormatRules:
    def test_block_layout(self):
        text = format_rules(
            [ProjectRule(source=".ruler/testing.md", name="testing", content="Write tests")]
        )
        assert text.split("\n") == [
            "### PROJECT RULES AND STANDARDS (MUST BE FOLLOWED)",
            "",
            "---",
            "#### Source: .ruler/testing.md",
            "---",
            "Write tests",
            "",
        ]

    def test_no_rules_is_empty(self):
        assert format_rules([]) == ""
