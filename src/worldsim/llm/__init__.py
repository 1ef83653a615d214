"""LLM-backed delegate for tier-2 agents."""

from worldsim.llm.client import (
    ClaudeClient,
    OllamaClient,
    LLMClient,
    LLMRateLimitedError,
    LLMResponse,
    LLMUnavailableError,
    create_client,
)
from worldsim.llm.delegate import ThreadedDelegate
from worldsim.llm.ratelimit import RateLimiter

__all__ = [
    "ClaudeClient",
    "OllamaClient",
    "LLMClient",
    "LLMRateLimitedError",
    "LLMResponse",
    "LLMUnavailableError",
    "create_client",
    "ThreadedDelegate",
    "RateLimiter",
]
