"""Client for an AI-chat proxy that holds provider keys server-side."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from lessonkit.ai.providers.base import GenerationError, GenerationOptions, TextModel, chat_messages

logger = logging.getLogger(__name__)


class ProxyTextModel(TextModel):
  """POST `{messages, model, temperature, max_tokens}` and read `{success, content, error}`."""

  provider = "proxy"

  def __init__(self, url: str, *, token: str | None = None, timeout_seconds: float = 180.0, transport: httpx.AsyncBaseTransport | None = None) -> None:
    self._url = url
    self._token = token
    self._timeout_seconds = timeout_seconds
    self._transport = transport

  def _build_client(self) -> httpx.AsyncClient:
    # Never trust environment proxy variables for the AI proxy call.
    return httpx.AsyncClient(transport=self._transport, timeout=self._timeout_seconds, trust_env=False)

  def _headers(self) -> dict[str, str]:
    headers = {"content-type": "application/json"}
    if self._token:
      headers["authorization"] = f"Bearer {self._token}"
    return headers

  async def generate(self, prompt: str, *, model_id: str, options: GenerationOptions, system_prompt: str | None = None) -> str:
    body: dict[str, Any] = {
      "messages": chat_messages(prompt, system_prompt),
      "model": model_id,
      "temperature": options.temperature,
      "max_tokens": options.max_tokens,
    }
    logger.info("Calling AI proxy with model %s (max_tokens=%s)", model_id, options.max_tokens)
    try:
      async with self._build_client() as client:
        response = await client.post(self._url, json=body, headers=self._headers())
        response.raise_for_status()
        data = response.json()
    except httpx.TimeoutException as exc:
      raise GenerationError(f"AI proxy timed out after {self._timeout_seconds:.0f}s", provider=self.provider, model_id=model_id) from exc
    except httpx.HTTPStatusError as exc:
      raise GenerationError(f"AI proxy returned {exc.response.status_code}: {exc.response.text[:200]}", provider=self.provider, model_id=model_id) from exc
    except httpx.RequestError as exc:
      raise GenerationError(f"AI proxy request failed: {exc}", provider=self.provider, model_id=model_id) from exc
    except ValueError as exc:
      raise GenerationError("AI proxy returned invalid JSON", provider=self.provider, model_id=model_id) from exc

    if not isinstance(data, dict) or not data.get("success"):
      error = data.get("error") if isinstance(data, dict) else None
      raise GenerationError(f"AI proxy error: {error or 'unknown error'}", provider=self.provider, model_id=model_id)
    content = data.get("content")
    if not isinstance(content, str) or not content.strip():
      raise GenerationError("AI proxy returned empty content", provider=self.provider, model_id=model_id)
    return content
