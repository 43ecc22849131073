"""Shared test fixtures and helpers."""

import threading

import pytest

from prompt_enhancer.config import EnhancerConfig
from prompt_enhancer.models import Complexity, WorkflowType
from prompt_enhancer.optimizer.schema import EnhancementFields

# ---------------------------------------------------------------------------
# Model capability fakes
# ---------------------------------------------------------------------------


class FakeCapability:
    """Records calls and returns (or raises) a canned response."""

    def __init__(self, response=None, error: Exception | None = None):
        self.response = response
        self.error = error
        self.calls: list[dict] = []

    def generate_structured_object(self, *, model, schema, prompt, timeout):
        self.calls.append({"model": model, "schema": schema, "prompt": prompt, "timeout": timeout})
        if self.error is not None:
            raise self.error
        return self.response


class BlockingCapability:
    """Blocks until released, to exercise timeouts and cancellation."""

    def __init__(self):
        self.release = threading.Event()
        self.started = threading.Event()

    def generate_structured_object(self, *, model, schema, prompt, timeout):
        self.started.set()
        self.release.wait(5)
        return None


def make_enhancement(**overrides) -> EnhancementFields:
    values = {
        "instruction": "Implement a dark mode toggle in `SettingsPanel` persisted to user prefs.",
        "success_criteria": ["Toggle switches the theme", "Preference survives reload"],
        "constraints": ["Use existing theme tokens"],
        "clarifying_questions": [],
        "workflow_type": WorkflowType.feature,
        "confidence_score": 85,
        "estimated_complexity": Complexity.moderate,
        "order_of_steps": ["Add toggle", "Persist preference", "Add tests"],
    }
    values.update(overrides)
    return EnhancementFields(**values)


@pytest.fixture
def fake_capability():
    return FakeCapability(response=make_enhancement())


@pytest.fixture
def failing_capability():
    return FakeCapability(error=RuntimeError("model unavailable"))


@pytest.fixture
def blocking_capability():
    capability = BlockingCapability()
    yield capability
    capability.release.set()


@pytest.fixture
def capability_factory():
    return FakeCapability


@pytest.fixture
def enhancement_factory():
    return make_enhancement


# ---------------------------------------------------------------------------
# Project trees
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_project(tmp_path):
    """Small Python project with a manifest, a README and an auth module."""
    root = tmp_path / "project"
    (root / "src" / "app" / "auth").mkdir(parents=True)
    (root / "src" / "app" / "ui").mkdir(parents=True)
    (root / "node_modules" / "login").mkdir(parents=True)

    (root / "pyproject.toml").write_text(
        "[project]\n"
        'name = "demo"\n'
        'description = "Demo web app with user accounts"\n'
        'dependencies = ["fastapi>=0.100", "pydantic", "SQLAlchemy==2.0"]\n'
        "\n[project.optional-dependencies]\n"
        'test = ["pytest"]\n'
    )
    (root / "README.md").write_text("# Demo\n\nA demo application.\n")
    (root / "src" / "app" / "auth" / "login.py").write_text(
        '"""Login flow and session creation."""\n\ndef login():\n    pass\n'
    )
    (root / "src" / "app" / "auth" / "password_reset.py").write_text(
        "# Password reset tokens and emails\n\ndef reset_password():\n    pass\n"
    )
    (root / "src" / "app" / "ui" / "theme.py").write_text("# Theme switching\n")
    (root / "node_modules" / "login" / "index.js").write_text("// vendored\n")
    return root


@pytest.fixture
def test_config(tmp_path, sample_project):
    return EnhancerConfig(
        project_path=sample_project,
        store_path=tmp_path / "store",
        model_timeout=2.0,
    )
