"""Provider implementations."""

from lessonkit.ai.providers.base import GenerationError, GenerationOptions, TextModel
from lessonkit.ai.providers.openai_compat import OpenAITextModel
from lessonkit.ai.providers.proxy import ProxyTextModel
from lessonkit.config import Settings


def get_text_model(settings: Settings) -> TextModel:
  """Build the configured text model client."""
  if settings.ai_provider == "proxy":
    if not settings.ai_proxy_url:
      raise ValueError("LESSONKIT_AI_PROXY_URL must be set when LESSONKIT_AI_PROVIDER is 'proxy'.")
    return ProxyTextModel(settings.ai_proxy_url, token=settings.ai_proxy_token, timeout_seconds=settings.ai_timeout_seconds)
  return OpenAITextModel(api_key=settings.ai_api_key, base_url=settings.ai_base_url, timeout_seconds=settings.ai_timeout_seconds)


__all__ = ["GenerationError", "GenerationOptions", "TextModel", "OpenAITextModel", "ProxyTextModel", "get_text_model"]
