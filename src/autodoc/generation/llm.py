"""Language model clients used for summarization and chat."""

from abc import ABC, abstractmethod
from typing import Any

import anthropic

from ..errors import ConfigError, FatalError, GenerationError, TransientError


class LLMClient(ABC):
    """Single-prompt completion against a named model."""

    @abstractmethod
    async def complete(self, prompt: str, model: str, system: str | None = None) -> str:
        """Return the model's text response.

        Implementations raise TransientError for retryable failures and
        FatalError for failures that should abort the whole run.
        """


class AnthropicClient(LLMClient):
    """Claude via the Anthropic Messages API."""

    def __init__(self, config: dict[str, Any]):
        api_key = config.get("anthropic_api_key")
        if not api_key:
            raise ConfigError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY or anthropic_api_key in config."
            )
        # Retries are owned by the scheduler's policy.
        self.client = anthropic.AsyncAnthropic(api_key=api_key, max_retries=0)
        self.max_tokens = config.get("max_output_tokens", 1024)

    async def complete(self, prompt: str, model: str, system: str | None = None) -> str:
        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": self.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system
        try:
            response = await self.client.messages.create(**kwargs)
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as e:
            raise FatalError(f"Anthropic rejected the credentials: {e}") from e
        except (anthropic.RateLimitError, anthropic.APIConnectionError) as e:
            raise TransientError(str(e)) from e
        except anthropic.APIStatusError as e:
            if e.status_code >= 500:
                raise TransientError(f"Anthropic server error {e.status_code}: {e}") from e
            raise GenerationError(f"Anthropic request failed ({e.status_code}): {e}") from e

        return "".join(block.text for block in response.content if getattr(block, "type", "") == "text")
