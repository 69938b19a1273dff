"""OpenAI-compatible chat completion client using the openai SDK."""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from lessonkit.ai.providers.base import GenerationError, GenerationOptions, TextModel, chat_messages

logger = logging.getLogger(__name__)


class OpenAITextModel(TextModel):
  """Text model backed by any endpoint that speaks the OpenAI chat API."""

  provider = "openai"

  def __init__(self, *, api_key: str | None, base_url: str | None = None, timeout_seconds: float = 180.0, client: AsyncOpenAI | None = None) -> None:
    if client is None:
      if not api_key:
        raise ValueError("LESSONKIT_AI_API_KEY environment variable is required")
      # The SDK retries on its own; the pipeline surfaces failures instead.
      client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout_seconds, max_retries=0)
    self._client = client

  async def generate(self, prompt: str, *, model_id: str, options: GenerationOptions, system_prompt: str | None = None) -> str:
    try:
      response = await self._client.chat.completions.create(
        model=model_id,
        messages=chat_messages(prompt, system_prompt),  # type: ignore[arg-type]
        temperature=options.temperature,
        max_tokens=options.max_tokens,
      )
    except openai.OpenAIError as exc:
      raise GenerationError(f"{model_id} request failed: {exc}", provider=self.provider, model_id=model_id) from exc

    if not response.choices:
      raise GenerationError(f"{model_id} returned no choices", provider=self.provider, model_id=model_id)
    content = response.choices[0].message.content or ""
    if response.usage:
      logger.info("%s usage: prompt=%s completion=%s", model_id, response.usage.prompt_tokens, response.usage.completion_tokens)
    if not content.strip():
      raise GenerationError(f"{model_id} returned empty content", provider=self.provider, model_id=model_id)
    return content

  async def aclose(self) -> None:
    await self._client.close()
