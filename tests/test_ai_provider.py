"""Tests for backend error mapping and the concrete providers"""

from types import SimpleNamespace

import pytest

from charabot import ai_provider
from charabot.ai_provider import GeminiProvider, OllamaProvider, OpenAIProvider, create_ai_provider
from charabot.config import Config
from charabot.exceptions import ErrorKind, GenerativeBackendError, classify_backend_error
from charabot.models import SafetyConfig


class StatusError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


@pytest.mark.parametrize("error,kind", [
    (Exception("Rate limit exceeded"), ErrorKind.RATE_LIMITED),
    (Exception("Resource has been exhausted (e.g. check quota)."), ErrorKind.RATE_LIMITED),
    (StatusError("too many", 429), ErrorKind.RATE_LIMITED),
    (Exception("Response was blocked due to SAFETY"), ErrorKind.SAFETY_BLOCKED),
    (Exception("API key not valid"), ErrorKind.AUTH),
    (StatusError("forbidden", 403), ErrorKind.AUTH),
    (Exception("Connection refused"), ErrorKind.NETWORK),
    (TimeoutError(), ErrorKind.NETWORK),
    (Exception("something odd"), ErrorKind.UNKNOWN),
])
def test_classify_backend_error(error, kind):
    assert classify_backend_error(error) == kind


def test_backend_error_retryability():
    assert GenerativeBackendError(ErrorKind.NETWORK).retryable
    assert GenerativeBackendError(ErrorKind.RATE_LIMITED).retryable
    assert not GenerativeBackendError(ErrorKind.AUTH).retryable
    assert not GenerativeBackendError(ErrorKind.SAFETY_BLOCKED).retryable


class FakeGeminiModel:
    response = None
    error = None
    created = []

    def __init__(self, model_name, safety_settings=None):
        FakeGeminiModel.created.append((model_name, safety_settings))

    async def generate_content_async(self, prompt, generation_config=None):
        if FakeGeminiModel.error is not None:
            raise FakeGeminiModel.error
        return FakeGeminiModel.response


@pytest.fixture
def gemini(monkeypatch):
    monkeypatch.setattr(ai_provider.genai, "configure", lambda api_key: None)
    monkeypatch.setattr(ai_provider.genai, "GenerativeModel", FakeGeminiModel)
    FakeGeminiModel.response = None
    FakeGeminiModel.error = None
    FakeGeminiModel.created = []
    return GeminiProvider(api_key="key")


def gemini_response(text="สวัสดีครับ", block_reason=None, finish_reason=1):
    return SimpleNamespace(
        text=text,
        prompt_feedback=SimpleNamespace(block_reason=block_reason),
        candidates=[SimpleNamespace(finish_reason=finish_reason)],
    )


class TestGemini:

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GeminiProvider(api_key=None)

    async def test_generate_passes_safety_settings(self, gemini):
        FakeGeminiModel.response = gemini_response()
        safety = SafetyConfig()

        assert await gemini.generate("hi", safety) == "สวัสดีครับ"
        assert FakeGeminiModel.created == [("gemini-1.5-flash", safety.to_settings())]

    async def test_blocked_prompt(self, gemini):
        FakeGeminiModel.response = gemini_response(block_reason="SAFETY")
        with pytest.raises(GenerativeBackendError) as excinfo:
            await gemini.generate("hi", SafetyConfig())
        assert excinfo.value.kind == ErrorKind.SAFETY_BLOCKED

    async def test_safety_finish_reason(self, gemini):
        FakeGeminiModel.response = gemini_response(finish_reason=3)
        with pytest.raises(GenerativeBackendError) as excinfo:
            await gemini.generate("hi", SafetyConfig())
        assert excinfo.value.kind == ErrorKind.SAFETY_BLOCKED

    async def test_sdk_errors_are_classified(self, gemini):
        FakeGeminiModel.error = Exception("429 Resource exhausted: quota")
        with pytest.raises(GenerativeBackendError) as excinfo:
            await gemini.generate("hi", SafetyConfig())
        assert excinfo.value.kind == ErrorKind.RATE_LIMITED

    async def test_connection_reports_failure(self, gemini):
        FakeGeminiModel.error = Exception("API key not valid")
        ok, message = await gemini.test_connection()
        assert not ok
        assert "auth" in message


class FakeCompletions:
    def __init__(self, choice=None, error=None):
        self.choice = choice
        self.error = error

    async def create(self, **kwargs):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(choices=[self.choice])


def openai_with(completions):
    provider = OpenAIProvider(api_key="sk-test")
    provider.client = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return provider


class TestOpenAI:

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            OpenAIProvider(api_key="")

    async def test_generate(self):
        choice = SimpleNamespace(finish_reason="stop", message=SimpleNamespace(content="Elementary.", refusal=None))
        assert await openai_with(FakeCompletions(choice)).generate("hi", SafetyConfig()) == "Elementary."

    async def test_content_filter(self):
        choice = SimpleNamespace(finish_reason="content_filter", message=SimpleNamespace(content=None, refusal=None))
        with pytest.raises(GenerativeBackendError) as excinfo:
            await openai_with(FakeCompletions(choice)).generate("hi", SafetyConfig())
        assert excinfo.value.kind == ErrorKind.SAFETY_BLOCKED

    async def test_auth_error(self):
        provider = openai_with(FakeCompletions(error=StatusError("Incorrect API key provided", 401)))
        with pytest.raises(GenerativeBackendError) as excinfo:
            await provider.generate("hi", SafetyConfig())
        assert excinfo.value.kind == ErrorKind.AUTH


class FakeOllamaClient:
    def __init__(self, content):
        self.content = content

    async def chat(self, **kwargs):
        return {"message": {"content": self.content}}


class TestOllama:

    def test_host_gets_scheme(self):
        assert OllamaProvider(host="localhost:11434").host == "http://localhost:11434"

    async def test_think_blocks_are_removed(self):
        provider = OllamaProvider()
        provider.client = FakeOllamaClient("<think>\nplanning\n</think>\nสวัสดีครับ")
        assert await provider.generate("hi", SafetyConfig()) == "สวัสดีครับ"


class TestFactory:

    def test_default_provider_is_gemini(self, tmp_path, monkeypatch, gemini):
        monkeypatch.setenv("GEMINI_API_KEY", "env-key")
        provider = create_ai_provider(config=Config(tmp_path))
        assert isinstance(provider, GeminiProvider)

    def test_ollama_uses_env_host(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OLLAMA_HOST", "http://ollama.internal:11434")
        provider = create_ai_provider(provider="ollama", model="llama3", config=Config(tmp_path))
        assert isinstance(provider, OllamaProvider)
        assert provider.host == "http://ollama.internal:11434"
        assert provider.model == "llama3"

    def test_unknown_provider(self, tmp_path):
        with pytest.raises(ValueError):
            create_ai_provider(provider="claude", config=Config(tmp_path))
