"""Model capability boundary.

The optimizer only depends on ``ModelCapability``; the Strands implementation
below is the production adapter. Tests inject fakes.
"""

import logging
from typing import Any, Protocol

from pydantic import BaseModel
from strands import Agent

from prompt_enhancer.config import MODEL_CONNECT_TIMEOUT, TOKENS_ENHANCEMENT, ModelTier
from prompt_enhancer.optimizer.model_provider import create_model
from prompt_enhancer.optimizer.prompts import load_prompt

logger = logging.getLogger(__name__)


class ModelCapability(Protocol):
    """Generate an object conforming to ``schema`` from a prompt."""

    def generate_structured_object(
        self,
        *,
        model: str | None,
        schema: type[BaseModel],
        prompt: str,
        timeout: float,
    ) -> Any: ...


class StrandsModelCapability:
    """ModelCapability backed by a Strands Agent with structured output."""

    def __init__(
        self,
        tier: ModelTier = ModelTier.LIGHT,
        max_tokens: int = TOKENS_ENHANCEMENT,
        temperature: float = 0.7,
        system_prompt_file: str = "enhancement_prompt.txt",
    ):
        self.tier = tier
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.system_prompt_file = system_prompt_file

    def generate_structured_object(
        self,
        *,
        model: str | None,
        schema: type[BaseModel],
        prompt: str,
        timeout: float,
    ) -> Any:
        agent = Agent(
            name="prompt_enhancer",
            system_prompt=load_prompt(self.system_prompt_file),
            model=create_model(
                model_id=model,
                tier=self.tier,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
                read_timeout=timeout,
                connect_timeout=min(timeout, MODEL_CONNECT_TIMEOUT),
            ),
            structured_output_model=schema,
            callback_handler=None,
        )

        logger.info(f"Requesting structured enhancement ({len(prompt)} chars)")
        result = agent(prompt)

        structured = getattr(result, "structured_output", None)
        if structured is not None:
            return structured

        # Some providers return the JSON as text only
        logger.warning("No structured output on agent result, returning text")
        return str(result)
