"""Base interfaces for generative-text models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GenerationOptions:
  """Sampling options forwarded to the model."""

  temperature: float = 0.7
  max_tokens: int = 2048


class GenerationError(RuntimeError):
  """Raised when a generative call fails, times out, or returns nothing usable."""

  def __init__(self, message: str, *, provider: str | None = None, model_id: str | None = None) -> None:
    super().__init__(message)
    self.provider = provider
    self.model_id = model_id


class TextModel(ABC):
  """Abstract base class for text generation clients."""

  provider: str

  @abstractmethod
  async def generate(self, prompt: str, *, model_id: str, options: GenerationOptions, system_prompt: str | None = None) -> str:
    """Return the generated text for the prompt."""

  async def aclose(self) -> None:
    """Release network resources held by the client."""
    return None


def chat_messages(prompt: str, system_prompt: str | None = None) -> list[dict[str, str]]:
  """Build an OpenAI-style message list."""
  messages: list[dict[str, str]] = []
  if system_prompt:
    messages.append({"role": "system", "content": system_prompt})
  messages.append({"role": "user", "content": prompt})
  return messages
