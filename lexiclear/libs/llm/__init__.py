"""
LLM Module.

Text-generation capability used by the orchestration layer:
- Base LLM class, Message and ChatResponse
- LLM factory
- Provider implementations (OpenAI, Ollama)
"""

from lexiclear.libs.llm.base_llm import BaseLLM, ChatResponse, Message
from lexiclear.libs.llm.llm_factory import LLMFactory
from lexiclear.libs.llm.ollama_llm import OllamaLLM, OllamaLLMError
from lexiclear.libs.llm.openai_llm import OpenAILLM, OpenAILLMError

__all__ = [
    "BaseLLM",
    "ChatResponse",
    "LLMFactory",
    "Message",
    "OllamaLLM",
    "OllamaLLMError",
    "OpenAILLM",
    "OpenAILLMError",
]
