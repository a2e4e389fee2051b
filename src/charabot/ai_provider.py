"""Generative backend integration for persona replies"""

import re
from typing import Optional, Protocol, Tuple
from abc import abstractmethod
import logging

import google.generativeai as genai
import ollama
from openai import AsyncOpenAI

from .config import Config
from .exceptions import ErrorKind, GenerativeBackendError, classify_backend_error
from .models import SafetyConfig

# Gemini finish_reason values: 1 STOP, 2 MAX_TOKENS, 3 SAFETY
GEMINI_FINISH_SAFETY = 3


class GenerativeBackend(Protocol):
    """Protocol for generative text backends"""

    @abstractmethod
    async def generate(self, prompt: str, safety: SafetyConfig) -> str:
        """Return generated text or raise GenerativeBackendError"""
        pass

    @abstractmethod
    async def test_connection(self) -> Tuple[bool, str]:
        """Return (ok, human-readable status)"""
        pass


def _wrap(error: Exception) -> GenerativeBackendError:
    if isinstance(error, GenerativeBackendError):
        return error
    return GenerativeBackendError(classify_backend_error(error), str(error))


class GeminiProvider:
    """Google Gemini provider"""

    def __init__(self, model: str = "gemini-1.5-flash", api_key: Optional[str] = None):
        self.model = model
        self.logger = logging.getLogger(__name__)
        if not api_key:
            raise ValueError("Gemini API key not provided. Set it with: charabot config set providers.gemini.api_key YOUR_KEY")
        genai.configure(api_key=api_key)
        self.logger.info(f"GeminiProvider initialized with model: {self.model}")

    async def generate(self, prompt: str, safety: SafetyConfig) -> str:
        """Generate text, mapping prompt blocks and SAFETY stops to SAFETY_BLOCKED"""
        try:
            model = genai.GenerativeModel(self.model, safety_settings=safety.to_settings())
            response = await model.generate_content_async(
                prompt,
                generation_config=genai.types.GenerationConfig(
                    temperature=0.9,
                    top_p=0.95,
                    max_output_tokens=1000,
                ),
            )
        except Exception as e:
            raise _wrap(e) from e

        feedback = getattr(response, "prompt_feedback", None)
        if feedback is not None and getattr(feedback, "block_reason", None):
            raise GenerativeBackendError(ErrorKind.SAFETY_BLOCKED, f"Prompt blocked: {feedback.block_reason}")

        if response.candidates:
            finish_reason = getattr(response.candidates[0], "finish_reason", None)
            if finish_reason == GEMINI_FINISH_SAFETY:
                raise GenerativeBackendError(ErrorKind.SAFETY_BLOCKED, "Response blocked by safety filter")

        try:
            return response.text
        except ValueError as e:
            raise _wrap(e) from e

    async def test_connection(self) -> Tuple[bool, str]:
        try:
            await self.generate("Hello", SafetyConfig())
        except GenerativeBackendError as e:
            self.logger.error(f"Gemini connection test failed: {e}")
            return False, f"Gemini connection failed ({e.kind.value}): {e}"
        return True, f"Gemini model {self.model} is reachable"


class OpenAIProvider:
    """OpenAI chat completions provider"""

    def __init__(self, model: str = "gpt-4o-mini", api_key: Optional[str] = None):
        self.model = model
        if not api_key:
            raise ValueError("OpenAI API key not provided. Set it with: charabot config set providers.openai.api_key YOUR_KEY")
        self.client = AsyncOpenAI(api_key=api_key)
        self.logger = logging.getLogger(__name__)

    async def generate(self, prompt: str, safety: SafetyConfig) -> str:
        # OpenAI applies its own moderation; refusals surface as SAFETY_BLOCKED
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=0.9,
                max_tokens=1000,
            )
        except Exception as e:
            raise _wrap(e) from e

        choice = response.choices[0]
        if choice.finish_reason == "content_filter" or getattr(choice.message, "refusal", None):
            raise GenerativeBackendError(ErrorKind.SAFETY_BLOCKED, "Response blocked by content filter")
        return choice.message.content or ""

    async def test_connection(self) -> Tuple[bool, str]:
        try:
            await self.client.models.list()
        except Exception as e:
            self.logger.error(f"OpenAI connection test failed: {e}")
            return False, f"OpenAI connection failed: {e}"
        return True, f"OpenAI model {self.model} is reachable"


class OllamaProvider:
    """Ollama provider for locally hosted models"""

    def __init__(self, model: str = "qwen2.5", host: Optional[str] = None):
        self.model = model
        self.host = host or "http://127.0.0.1:11434"
        if not self.host.startswith('http'):
            self.host = f'http://{self.host}'
        self.client = ollama.AsyncClient(host=self.host)
        self.logger = logging.getLogger(__name__)
        self.logger.info(f"OllamaProvider initialized with host: {self.host}, model: {self.model}")

    async def generate(self, prompt: str, safety: SafetyConfig) -> str:
        try:
            response = await self.client.chat(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                options={"temperature": 0.9, "top_p": 0.95, "num_predict": 1000},
                stream=False,
            )
        except Exception as e:
            raise _wrap(e) from e
        return self._clean_response(response['message']['content'])

    async def test_connection(self) -> Tuple[bool, str]:
        try:
            await self.client.list()
        except Exception as e:
            self.logger.error(f"Ollama connection test failed (host: {self.host}): {e}")
            return False, f"Ollama connection failed: {e}"
        return True, f"Ollama at {self.host} is reachable"

    def _clean_response(self, response: str) -> str:
        """Remove <think></think> blocks some local models emit"""
        return re.sub(r'<think>.*?</think>', '', response, flags=re.DOTALL).strip()


def create_ai_provider(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    config: Optional[Config] = None,
) -> GenerativeBackend:
    """Factory function to create generative backends"""
    config = config or Config()
    provider = provider or config.get('default_provider', 'gemini')

    if provider == "gemini":
        model = model or config.get('providers.gemini.default_model', 'gemini-1.5-flash')
        return GeminiProvider(model=model, api_key=config.get_api_key("gemini"))
    elif provider == "openai":
        model = model or config.get('providers.openai.default_model', 'gpt-4o-mini')
        return OpenAIProvider(model=model, api_key=config.get_api_key("openai"))
    elif provider == "ollama":
        model = model or config.get('providers.ollama.default_model', 'qwen2.5')
        return OllamaProvider(model=model, host=config.get_ollama_host())
    else:
        raise ValueError(f"Unknown provider: {provider}")
