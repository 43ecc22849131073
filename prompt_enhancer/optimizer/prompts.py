"""Loader for the prompt files bundled with the optimizer."""

import logging
from pathlib import Path

from prompt_enhancer.errors import PromptLoadError

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent / "prompts"

_prompt_cache: dict[str, str] = {}


def load_prompt(filename: str, use_cache: bool = True) -> str:
    """Load a prompt file from the bundled prompts directory.

    Args:
        filename: File name inside ``prompts/`` (e.g. 'enhancement_prompt.txt')
        use_cache: Return the cached text when already loaded

    Raises:
        PromptLoadError: If the file cannot be found or read
    """
    if use_cache and filename in _prompt_cache:
        logger.debug(f"Loading prompt '{filename}' from cache")
        return _prompt_cache[filename]

    prompt_file = PROMPTS_DIR / filename
    try:
        prompt_text = prompt_file.read_text(encoding="utf-8")
    except FileNotFoundError:
        error_msg = f"Prompt file not found: {prompt_file}"
        logger.error(error_msg)
        raise PromptLoadError(error_msg) from None
    except OSError as e:
        error_msg = f"Could not read prompt file {prompt_file}: {e}"
        logger.error(error_msg)
        raise PromptLoadError(error_msg) from e

    logger.info(f"Loaded prompt '{filename}' from {prompt_file}")
    _prompt_cache[filename] = prompt_text
    return prompt_text


def clear_prompt_cache() -> None:
    _prompt_cache.clear()
