import dataclasses
import json
from types import SimpleNamespace

import httpx
import openai
import pytest

from lessonkit.ai.providers import GenerationError, GenerationOptions, OpenAITextModel, ProxyTextModel, get_text_model
from lessonkit.ai.providers.base import chat_messages

PROXY_URL = "https://proxy.example/api/ai-chat"
OPTIONS = GenerationOptions(temperature=0.5, max_tokens=8192)


def _proxy(handler, *, token=None) -> ProxyTextModel:
  return ProxyTextModel(PROXY_URL, token=token, timeout_seconds=5, transport=httpx.MockTransport(handler))


def test_chat_messages_puts_system_prompt_first():
  assert chat_messages("Hi") == [{"role": "user", "content": "Hi"}]
  assert [message["role"] for message in chat_messages("Hi", "Be brief")] == ["system", "user"]


@pytest.mark.asyncio
async def test_proxy_returns_content_and_sends_request_body():
  seen: list[httpx.Request] = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(request)
    return httpx.Response(200, json={"success": True, "content": "HEADER:\nName:"})

  text = await _proxy(handler, token="secret").generate("Make a worksheet", model_id="gpt-4o", options=OPTIONS, system_prompt="You are a teacher")

  assert text == "HEADER:\nName:"
  body = json.loads(seen[0].content)
  assert body["model"] == "gpt-4o"
  assert body["temperature"] == 0.5
  assert body["max_tokens"] == 8192
  assert body["messages"][0] == {"role": "system", "content": "You are a teacher"}
  assert seen[0].headers["authorization"] == "Bearer secret"


@pytest.mark.asyncio
async def test_proxy_without_token_sends_no_authorization():
  seen: list[httpx.Request] = []

  def handler(request: httpx.Request) -> httpx.Response:
    seen.append(request)
    return httpx.Response(200, json={"success": True, "content": "ok"})

  await _proxy(handler).generate("prompt", model_id="m", options=OPTIONS)

  assert "authorization" not in seen[0].headers


@pytest.mark.asyncio
@pytest.mark.parametrize(
  ("response", "message"),
  [
    (httpx.Response(200, json={"success": False, "error": "quota exceeded"}), "AI proxy error: quota exceeded"),
    (httpx.Response(200, json={"success": False}), "AI proxy error: unknown error"),
    (httpx.Response(200, json={"success": True, "content": "  "}), "AI proxy returned empty content"),
    (httpx.Response(500, text="upstream exploded"), "AI proxy returned 500"),
    (httpx.Response(200, text="<html>not json</html>"), "AI proxy returned invalid JSON"),
  ],
)
async def test_proxy_failures_raise_generation_error(response, message):
  with pytest.raises(GenerationError) as excinfo:
    await _proxy(lambda request: response).generate("prompt", model_id="m", options=OPTIONS)

  assert str(excinfo.value).startswith(message)
  assert excinfo.value.provider == "proxy"
  assert excinfo.value.model_id == "m"


@pytest.mark.asyncio
async def test_proxy_timeout_raises_generation_error():
  def handler(request: httpx.Request) -> httpx.Response:
    raise httpx.ReadTimeout("timed out", request=request)

  with pytest.raises(GenerationError, match="timed out after 5s"):
    await _proxy(handler).generate("prompt", model_id="m", options=OPTIONS)


class _FakeCompletions:
  def __init__(self, *, response=None, error: Exception | None = None) -> None:
    self.calls: list[dict] = []
    self._response = response
    self._error = error

  async def create(self, **kwargs):
    self.calls.append(kwargs)
    if self._error is not None:
      raise self._error
    return self._response


def _fake_client(completions: _FakeCompletions) -> SimpleNamespace:
  async def close() -> None:
    return None

  return SimpleNamespace(chat=SimpleNamespace(completions=completions), close=close)


def _completion(content: str | None) -> SimpleNamespace:
  return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))], usage=SimpleNamespace(prompt_tokens=10, completion_tokens=20))


@pytest.mark.asyncio
async def test_openai_model_returns_first_choice():
  completions = _FakeCompletions(response=_completion("QUESTION: Who?"))
  model = OpenAITextModel(api_key=None, client=_fake_client(completions))

  text = await model.generate("prompt", model_id="gemini-2.0-flash", options=OPTIONS)

  assert text == "QUESTION: Who?"
  assert completions.calls[0]["model"] == "gemini-2.0-flash"
  assert completions.calls[0]["max_tokens"] == 8192
  await model.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize(
  "completions",
  [
    _FakeCompletions(error=openai.OpenAIError("rate limited")),
    _FakeCompletions(response=SimpleNamespace(choices=[], usage=None)),
    _FakeCompletions(response=_completion(None)),
  ],
)
async def test_openai_model_failures_raise_generation_error(completions):
  model = OpenAITextModel(api_key=None, client=_fake_client(completions))

  with pytest.raises(GenerationError) as excinfo:
    await model.generate("prompt", model_id="gpt-4o", options=OPTIONS)

  assert excinfo.value.provider == "openai"


def test_openai_model_requires_key():
  with pytest.raises(ValueError):
    OpenAITextModel(api_key=None)


def test_get_text_model_picks_provider(settings):
  assert isinstance(get_text_model(settings), OpenAITextModel)

  proxy_settings = dataclasses.replace(settings, ai_provider="proxy", ai_proxy_url=PROXY_URL)
  assert isinstance(get_text_model(proxy_settings), ProxyTextModel)

  with pytest.raises(ValueError):
    get_text_model(dataclasses.replace(settings, ai_provider="proxy", ai_proxy_url=None))
