"""Tests for codebase context analysis."""

import json
import logging

from prompt_enhancer.context import ContextAnalyzer, extract_salient_terms
from prompt_enhancer.context.analyzer import path_tokens
from prompt_enhancer.models import PromptContext

RAW = "Users can't login after password reset"


# ---------------------------------------------------------------------------
# Term and path helpers
# ---------------------------------------------------------------------------


class TestTerms:
    def test_salient_terms_drop_stop_words_and_stem(self):
        assert extract_salient_terms("Users can't login after the password reset") == [
            "user",
            "login",
            "password",
            "reset",
        ]

    def test_terms_are_deduplicated(self):
        assert extract_salient_terms("cache caches CACHE") == ["cache"]

    def test_path_tokens_split_camel_case_and_separators(self):
        tokens = path_tokens("src/components/UserProfile-card.tsx")
        assert {"src", "component", "user", "profile", "card", "tsx"} <= tokens


# ---------------------------------------------------------------------------
# analyze()
# ---------------------------------------------------------------------------


class TestAnalyze:
    def test_ranks_matching_files(self, sample_project):
        context = ContextAnalyzer().analyze(sample_project, RAW)

        assert [f.path for f in context.relevant_files] == [
            "src/app/auth/login.py",
            "src/app/auth/password_reset.py",
        ]
        assert [f.relevance for f in context.relevant_files] == [2, 2]

    def test_summaries_include_matched_terms_and_file_head(self, sample_project):
        context = ContextAnalyzer().analyze(sample_project, RAW)
        login, reset = context.relevant_files
        assert login.summary == "Matches login: Login flow and session creation."
        assert reset.summary == "Matches password, reset: Password reset tokens and emails"

    def test_ignored_directories_are_skipped(self, sample_project):
        context = ContextAnalyzer().analyze(sample_project, "login")
        assert all(not f.path.startswith("node_modules") for f in context.relevant_files)

    def test_manifest_dependencies_and_stack(self, sample_project):
        context = ContextAnalyzer().analyze(sample_project, RAW)
        assert context.dependencies == ["fastapi", "pydantic", "pytest", "sqlalchemy"]
        assert context.technical_stack == ["FastAPI", "Pydantic", "Python", "SQLAlchemy", "pytest"]
        assert context.project_overview == "Demo web app with user accounts"

    def test_current_state_summarizes_scan(self, sample_project):
        context = ContextAnalyzer().analyze(sample_project, RAW)
        assert context.current_state == (
            "Scanned 5 files; 2 matched the request; manifests: pyproject.toml"
        )

    def test_readme_overview_when_manifest_has_no_description(self, tmp_path):
        (tmp_path / "README.md").write_text(
            "# Tool\n\n![badge](x.svg)\n\nA small tool\nfor testing.\n\nMore text.\n"
        )
        context = ContextAnalyzer().analyze(tmp_path, "anything")
        assert context.project_overview == "A small tool for testing."

    def test_javascript_manifests(self, tmp_path):
        (tmp_path / "package.json").write_text(
            json.dumps(
                {
                    "description": "Web client",
                    "dependencies": {"react": "^18", "@scope/ui": "1.0.0"},
                    "devDependencies": {"typescript": "5.0"},
                }
            )
        )
        (tmp_path / "tsconfig.json").write_text("{}")
        (tmp_path / "requirements-dev.txt").write_text("flask==2.0\n# comment\n-r base.txt\n")

        context = ContextAnalyzer().analyze(tmp_path, "anything")
        assert context.dependencies == ["@scope/ui", "flask", "react", "typescript"]
        assert context.technical_stack == ["Flask", "JavaScript", "Python", "React", "TypeScript"]

    def test_malformed_manifest_is_skipped(self, tmp_path, caplog):
        (tmp_path / "pyproject.toml").write_text("[project\nname =")
        with caplog.at_level(logging.WARNING):
            context = ContextAnalyzer().analyze(tmp_path, "anything")
        assert context.dependencies == []
        assert "malformed manifest" in caplog.text

    def test_missing_root_gives_empty_context(self, tmp_path):
        context = ContextAnalyzer().analyze(tmp_path / "missing", RAW)
        assert context == PromptContext.empty()

    def test_unreadable_file_is_skipped(self, sample_project, monkeypatch, caplog):
        analyzer = ContextAnalyzer()
        original = analyzer._describe_file

        def flaky(path):
            if path.name == "login.py":
                raise PermissionError("denied")
            return original(path)

        monkeypatch.setattr(analyzer, "_describe_file", flaky)
        with caplog.at_level(logging.WARNING):
            context = analyzer.analyze(sample_project, RAW)

        assert [f.path for f in context.relevant_files] == ["src/app/auth/password_reset.py"]
        assert "Skipping unreadable file" in caplog.text

    def test_no_terms_means_no_files(self, sample_project):
        context = ContextAnalyzer().analyze(sample_project, "")
        assert context.relevant_files == []


# ---------------------------------------------------------------------------
# Limits and budget
# ---------------------------------------------------------------------------


class TestLimits:
    def _make_files(self, root, count):
        src = root / "src"
        src.mkdir()
        for i in range(count):
            if i % 3 == 0:
                name = f"widget_cache_handler_{i}.py"
            elif i % 3 == 1:
                name = f"widget_cache_{i}.py"
            else:
                name = f"widget_{i}.py"
            (src / name).write_text("")

    def test_max_files_truncates_in_relevance_order(self, tmp_path):
        self._make_files(tmp_path, 500)
        context = ContextAnalyzer().analyze(tmp_path, "widget cache handler", max_files=20)

        assert len(context.relevant_files) == 20
        relevances = [f.relevance for f in context.relevant_files]
        assert relevances == sorted(relevances, reverse=True)
        assert relevances[0] == 3

    def test_explicit_zero_limits_are_honored(self, sample_project):
        analyzer = ContextAnalyzer()
        assert analyzer.analyze(sample_project, RAW, max_files=0).relevant_files == []

        context = analyzer.analyze(sample_project, RAW, max_tokens=0)
        assert context.relevant_files == []
        assert context.project_overview == ""

    def test_budget_drops_lowest_ranked_first(self, sample_project):
        full = ContextAnalyzer().analyze(sample_project, RAW, max_tokens=4000)
        small = ContextAnalyzer().analyze(sample_project, RAW, max_tokens=60)

        assert len(small.relevant_files) < len(full.relevant_files)
        assert small.relevant_files == full.relevant_files[: len(small.relevant_files)]

    def test_tiny_budget_trims_overview(self, sample_project):
        context = ContextAnalyzer().analyze(sample_project, RAW, max_tokens=10)
        assert context.relevant_files == []
        assert context.project_overview == ""


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


class TestCache:
    def test_repeated_analysis_is_cached(self, sample_project):
        analyzer = ContextAnalyzer()
        first = analyzer.analyze(sample_project, RAW)
        assert analyzer.analyze(sample_project, RAW) is first

    def test_clear_cache_does_not_change_results(self, sample_project):
        analyzer = ContextAnalyzer()
        first = analyzer.analyze(sample_project, RAW)
        analyzer.clear_cache()
        second = analyzer.analyze(sample_project, RAW)
        assert second is not first
        assert second == first

    def test_manifest_change_invalidates(self, sample_project):
        analyzer = ContextAnalyzer()
        analyzer.analyze(sample_project, RAW)
        (sample_project / "pyproject.toml").write_text(
            '[project]\nname = "demo"\ndependencies = ["django"]\n'
        )
        context = analyzer.analyze(sample_project, RAW)
        assert context.dependencies == ["django"]

    def test_new_matching_file_invalidates(self, sample_project):
        analyzer = ContextAnalyzer()
        before = analyzer.analyze(sample_project, RAW)
        (sample_project / "src" / "app" / "auth" / "login_session.py").write_text(
            "# Session cookies issued after login\n"
        )

        after = analyzer.analyze(sample_project, RAW)

        assert after is not before
        assert "src/app/auth/login_session.py" in [f.path for f in after.relevant_files]
        analyzer.clear_cache()
        assert analyzer.analyze(sample_project, RAW) == after

    def test_cache_is_bounded(self, sample_project):
        analyzer = ContextAnalyzer(cache_size=2)
        first = analyzer.analyze(sample_project, "login")
        analyzer.analyze(sample_project, "password")
        analyzer.analyze(sample_project, "theme")

        assert len(analyzer._cache) == 2
        assert analyzer.analyze(sample_project, "login") is not first

    def test_recently_used_entry_survives_eviction(self, sample_project):
        analyzer = ContextAnalyzer(cache_size=2)
        first = analyzer.analyze(sample_project, "login")
        analyzer.analyze(sample_project, "password")
        analyzer.analyze(sample_project, "login")
        analyzer.analyze(sample_project, "theme")

        assert analyzer.analyze(sample_project, "login") is first
