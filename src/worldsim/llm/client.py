"""
Completion clients for the tier-2 delegate.

Two providers sit behind one small interface: Anthropic's hosted models and a
local Ollama server.  Either one may be missing at runtime; construction and
calls raise ``LLMUnavailableError`` rather than anything provider-specific,
and throttling surfaces as ``LLMRateLimitedError`` so the delegate can back
off without treating it as an outage.
"""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.request
from abc import ABC, abstractmethod
from dataclasses import dataclass


class LLMUnavailableError(Exception):
    """No provider could serve the request."""


class LLMRateLimitedError(LLMUnavailableError):
    """The provider (or the local limiter) refused the call for now."""


@dataclass
class LLMResponse:
    text: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0


class LLMClient(ABC):
    """One blocking completion call per request."""

    provider: str

    @abstractmethod
    def complete(
        self,
        system: str,
        messages: list[dict[str, str]],
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> LLMResponse: ...


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------

DEFAULT_CLAUDE_MODEL = "claude-3-5-haiku-latest"


class ClaudeClient(LLMClient):
    provider = "anthropic"

    def __init__(self, api_key: str | None = None, model: str = DEFAULT_CLAUDE_MODEL) -> None:
        key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not key:
            raise LLMUnavailableError("ANTHROPIC_API_KEY is not set")
        try:
            import anthropic
        except ImportError:
            raise LLMUnavailableError(
                "The 'anthropic' package is not installed. Run: pip install worldsim[llm]"
            )
        self._anthropic = anthropic
        self._client = anthropic.Anthropic(api_key=key)
        self.model = model

    def complete(
        self,
        system: str,
        messages: list[dict[str, str]],
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> LLMResponse:
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=messages,
            )
        except self._anthropic.RateLimitError as e:
            raise LLMRateLimitedError(f"Anthropic rate limit: {e}") from e
        except self._anthropic.APIError as e:
            raise LLMUnavailableError(f"Anthropic request failed: {e}") from e

        text = response.content[0].text if response.content else ""
        return LLMResponse(
            text=text,
            model=response.model,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )


# ---------------------------------------------------------------------------
# Ollama
# ---------------------------------------------------------------------------

DEFAULT_OLLAMA_MODEL = "llama3.2"


def ollama_base_url() -> str:
    host = os.environ.get("OLLAMA_HOST", "http://localhost:11434")
    if not host.startswith("http"):
        host = f"http://{host}"
    return host.rstrip("/")


class OllamaClient(LLMClient):
    """Local models over Ollama's chat endpoint; no key needed."""

    provider = "ollama"

    def __init__(self, model: str = DEFAULT_OLLAMA_MODEL, base_url: str | None = None) -> None:
        self.model = model
        self.base_url = base_url or ollama_base_url()

    def complete(
        self,
        system: str,
        messages: list[dict[str, str]],
        max_tokens: int = 500,
        temperature: float = 0.7,
    ) -> LLMResponse:
        payload = json.dumps({
            "model": self.model,
            "messages": [{"role": "system", "content": system}, *messages],
            "stream": False,
            "options": {"num_predict": max_tokens, "temperature": temperature},
        }).encode()
        req = urllib.request.Request(
            self.base_url + "/api/chat",
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=120) as resp:
                data = json.loads(resp.read().decode())
        except urllib.error.HTTPError as e:
            if e.code == 429:
                raise LLMRateLimitedError("Ollama is busy") from e
            raise LLMUnavailableError(f"Ollama request failed: {e}") from e
        except (urllib.error.URLError, OSError, ValueError) as e:
            raise LLMUnavailableError(f"Ollama request failed: {e}") from e

        return LLMResponse(
            text=data.get("message", {}).get("content", ""),
            model=self.model,
            input_tokens=data.get("prompt_eval_count", 0) or 0,
            output_tokens=data.get("eval_count", 0) or 0,
        )


def create_client(
    provider: str = "anthropic",
    model: str | None = None,
    api_key: str | None = None,
) -> LLMClient:
    """Build a client for ``"anthropic"`` or ``"ollama"``."""
    if provider == "anthropic":
        return ClaudeClient(api_key=api_key, model=model or DEFAULT_CLAUDE_MODEL)
    if provider == "ollama":
        return OllamaClient(model=model or DEFAULT_OLLAMA_MODEL)
    raise ValueError(f"Unknown provider: {provider!r}. Use 'anthropic' or 'ollama'.")
