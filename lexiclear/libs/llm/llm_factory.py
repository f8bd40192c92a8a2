"""Selects the text-generation provider named by ``settings.llm.provider``."""

from __future__ import annotations

from lexiclear.core.registry import ProviderRegistry
from lexiclear.libs.llm.base_llm import BaseLLM


class LLMFactory(ProviderRegistry[BaseLLM]):
    """Registry of chat providers (``openai``, ``ollama``)."""

    kind = "LLM"
    base_class = BaseLLM
    section = "llm"


def _register_builtin_providers() -> None:
    from lexiclear.libs.llm.ollama_llm import OllamaLLM
    from lexiclear.libs.llm.openai_llm import OpenAILLM

    LLMFactory.register_provider("openai", OpenAILLM)
    LLMFactory.register_provider("ollama", OllamaLLM)


_register_builtin_providers()
