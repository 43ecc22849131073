"""Tests for the multi-provider model factory and the Strands capability."""

from unittest.mock import MagicMock

import pytest

from prompt_enhancer.config import ModelTier
from prompt_enhancer.errors import ConfigurationError, PromptLoadError
from prompt_enhancer.optimizer import capability as capability_module
from prompt_enhancer.optimizer.capability import StrandsModelCapability
from prompt_enhancer.optimizer.model_provider import (
    _PROVIDER_FACTORIES,
    LLMProvider,
    create_model,
    get_active_provider,
    get_model_id_for_tier,
)
from prompt_enhancer.optimizer.prompts import clear_prompt_cache, load_prompt
from prompt_enhancer.optimizer.schema import EnhancementFields

# ---------------------------------------------------------------------------
# get_active_provider
# ---------------------------------------------------------------------------


class TestGetActiveProvider:
    def test_default_is_bedrock(self, monkeypatch):
        monkeypatch.delenv("LLM_PROVIDER", raising=False)
        assert get_active_provider() is LLMProvider.BEDROCK

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("bedrock", LLMProvider.BEDROCK),
            ("anthropic", LLMProvider.ANTHROPIC),
            ("openai", LLMProvider.OPENAI),
            ("ollama", LLMProvider.OLLAMA),
        ],
    )
    def test_each_provider(self, monkeypatch, value, expected):
        monkeypatch.setenv("LLM_PROVIDER", value)
        assert get_active_provider() is expected

    def test_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "ANTHROPIC")
        assert get_active_provider() is LLMProvider.ANTHROPIC

    def test_invalid_raises(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "banana")
        with pytest.raises(ConfigurationError, match="Unknown LLM_PROVIDER 'banana'"):
            get_active_provider()


# ---------------------------------------------------------------------------
# get_model_id_for_tier
# ---------------------------------------------------------------------------


class TestGetModelIdForTier:
    def test_provider_specific_env_var(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        monkeypatch.setenv("ANTHROPIC_LIGHT_MODEL_ID", "my-custom-model")
        assert get_model_id_for_tier("light") == "my-custom-model"

    def test_defaults(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "openai")
        monkeypatch.delenv("OPENAI_LIGHT_MODEL_ID", raising=False)
        assert get_model_id_for_tier(ModelTier.LIGHT) == "gpt-4o-mini"

    def test_reasoning_falls_back_to_heavy(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        monkeypatch.delenv("ANTHROPIC_REASONING_MODEL_ID", raising=False)
        monkeypatch.setenv("ANTHROPIC_HEAVY_MODEL_ID", "heavy-model")
        assert get_model_id_for_tier("reasoning") == "heavy-model"

    def test_invalid_tier_raises(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "anthropic")
        with pytest.raises(ConfigurationError, match="Invalid tier 'mega'"):
            get_model_id_for_tier("mega")


# ---------------------------------------------------------------------------
# create_model
# ---------------------------------------------------------------------------


class TestCreateModel:
    def _patch_factory(self, monkeypatch, provider):
        """Replace the factory in the dispatch dict and return the mock."""
        mock = MagicMock(return_value=MagicMock())
        monkeypatch.setitem(_PROVIDER_FACTORIES, provider, mock)
        return mock

    def test_dispatch_passes_settings(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "bedrock")
        mock = self._patch_factory(monkeypatch, LLMProvider.BEDROCK)
        create_model(model_id="some-model", max_tokens=1000, temperature=0.2, read_timeout=9.0)

        mock.assert_called_once()
        kwargs = mock.call_args[1]
        assert kwargs["model_id"] == "some-model"
        assert kwargs["max_tokens"] == 1000
        assert kwargs["temperature"] == 0.2
        assert kwargs["read_timeout"] == 9.0

    def test_model_id_resolved_from_tier(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "ollama")
        monkeypatch.delenv("OLLAMA_HEAVY_MODEL_ID", raising=False)
        mock = self._patch_factory(monkeypatch, LLMProvider.OLLAMA)
        create_model(tier="heavy")
        assert mock.call_args[1]["model_id"] == "llama3.1:70b"

    def test_bedrock_requires_region(self, monkeypatch):
        monkeypatch.setenv("LLM_PROVIDER", "bedrock")
        monkeypatch.delenv("AWS_REGION", raising=False)
        with pytest.raises(ConfigurationError, match="AWS_REGION"):
            create_model(model_id="some-model")

    def test_every_provider_is_registered(self):
        assert set(_PROVIDER_FACTORIES) == set(LLMProvider)


# ---------------------------------------------------------------------------
# Prompt files and the Strands capability
# ---------------------------------------------------------------------------


class TestLoadPrompt:
    def test_bundled_prompt_loads(self):
        clear_prompt_cache()
        text = load_prompt("enhancement_prompt.txt")
        assert text.strip()
        assert load_prompt("enhancement_prompt.txt") is text

    def test_missing_prompt_raises(self):
        with pytest.raises(PromptLoadError, match="not found"):
            load_prompt("does_not_exist.txt")


class TestStrandsModelCapability:
    @pytest.fixture
    def fake_agent(self, monkeypatch):
        agent_cls = MagicMock()
        monkeypatch.setattr(capability_module, "Agent", agent_cls)
        monkeypatch.setattr(capability_module, "create_model", MagicMock(return_value="model"))
        return agent_cls

    def test_returns_structured_output(self, fake_agent):
        fields = MagicMock(name="fields")
        fake_agent.return_value.return_value = MagicMock(structured_output=fields)

        result = StrandsModelCapability().generate_structured_object(
            model="m", schema=EnhancementFields, prompt="Task", timeout=5.0
        )

        assert result is fields
        assert fake_agent.call_args[1]["structured_output_model"] is EnhancementFields
        fake_agent.return_value.assert_called_once_with("Task")

    def test_falls_back_to_text(self, fake_agent):
        text_result = MagicMock(structured_output=None)
        text_result.__str__.return_value = '{"instruction": "x"}'
        fake_agent.return_value.return_value = text_result

        result = StrandsModelCapability().generate_structured_object(
            model=None, schema=EnhancementFields, prompt="Task", timeout=5.0
        )
        assert result == '{"instruction": "x"}'

    def test_model_uses_call_timeout(self, fake_agent):
        fake_agent.return_value.return_value = MagicMock(structured_output="ok")
        StrandsModelCapability(tier=ModelTier.HEAVY).generate_structured_object(
            model=None, schema=EnhancementFields, prompt="Task", timeout=12.0
        )
        kwargs = capability_module.create_model.call_args[1]
        assert kwargs["tier"] is ModelTier.HEAVY
        assert kwargs["read_timeout"] == 12.0
