"""
Generation Service
Sends a finished prompt to a chat model and returns its text.

Models are registered by name (llama3, llama3.1, mistral, gemini, openai);
CHAT_MODEL and DOCUMENT_CHAT_MODEL choose which one each endpoint uses.
"""
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional
import structlog
import openai
from openai import AsyncOpenAI
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types
import httpx

from docrag.config import Settings, get_settings
from docrag.errors import ExternalServiceFailure

logger = structlog.get_logger()


class ChatGenerator(ABC):
    """Prompt in, text out."""

    provider_name = "unknown"

    def __init__(self, model: str):
        self.model = model

    @abstractmethod
    async def generate(self, prompt: str) -> str:
        ...


class OpenAIChatGenerator(ChatGenerator):
    """Chat completions over the OpenAI protocol (OpenAI itself or Ollama's /v1)."""

    def __init__(
        self,
        model: str,
        api_key: str,
        base_url: Optional[str] = None,
        timeout: float = 180.0,
        temperature: Optional[float] = None,
        provider_name: str = "openai",
    ):
        super().__init__(model)
        self.temperature = temperature
        self.provider_name = provider_name
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    async def generate(self, prompt: str) -> str:
        kwargs = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except openai.APIError as e:
            logger.error("Generation failed", provider=self.provider_name, model=self.model, error=str(e))
            raise ExternalServiceFailure(
                f"Chat model '{self.model}' failed: {e}", provider_name=self.provider_name
            ) from e

        content = response.choices[0].message.content
        if content is None:
            raise ExternalServiceFailure(
                f"Chat model '{self.model}' returned an empty response",
                provider_name=self.provider_name,
            )
        return content


class GeminiGenerator(ChatGenerator):
    """Google Gemini through the google-genai SDK."""

    provider_name = "gemini"

    def __init__(
        self,
        model: str,
        api_key: Optional[str],
        timeout: float = 120.0,
        temperature: float = 0.3,
        max_output_tokens: int = 2048,
    ):
        super().__init__(model)
        self.client = genai.Client(
            api_key=api_key,
            http_options=genai_types.HttpOptions(timeout=int(timeout * 1000)),
        )
        self.config = genai_types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
        )

    async def generate(self, prompt: str) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=self.config,
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            logger.error("Generation failed", provider=self.provider_name, model=self.model, error=str(e))
            raise ExternalServiceFailure(
                f"Chat model '{self.model}' failed: {e}", provider_name=self.provider_name
            ) from e

        if response.text is None:
            raise ExternalServiceFailure(
                f"Chat model '{self.model}' returned an empty response",
                provider_name=self.provider_name,
            )
        return response.text


def _ollama(model: str, temperature: Optional[float] = None) -> Callable[[Settings], ChatGenerator]:
    def build(settings: Settings) -> ChatGenerator:
        return OpenAIChatGenerator(
            model=model,
            api_key="ollama",
            base_url=f"{settings.ollama_url.rstrip('/')}/v1",
            timeout=settings.model_timeout_seconds,
            temperature=temperature,
            provider_name="ollama",
        )
    return build


def _gemini(settings: Settings) -> ChatGenerator:
    return GeminiGenerator(
        model="gemini-2.5-flash",
        api_key=settings.google_api_key,
        timeout=settings.gemini_timeout_seconds,
    )


def _openai(settings: Settings) -> ChatGenerator:
    return OpenAIChatGenerator(
        model=settings.openai_chat_model,
        api_key=settings.openai_api_key,
        timeout=settings.model_timeout_seconds,
    )


GENERATORS: Dict[str, Callable[[Settings], ChatGenerator]] = {
    "llama3": _ollama("llama3", temperature=0.3),
    "llama3.1": _ollama("llama3.1"),
    "mistral": _ollama("mistral:7b"),
    "gemini": _gemini,
    "openai": _openai,
}


def create_generator(name: str, settings: Settings) -> ChatGenerator:
    """Build the chat model registered under ``name``."""
    try:
        factory = GENERATORS[name]
    except KeyError:
        raise ValueError(f"Unknown chat model '{name}'. Available: {sorted(GENERATORS)}")
    generator = factory(settings)
    logger.info("Chat model initialized", name=name, model=generator.model)
    return generator


# Singletons, one per registry key
_generators: Dict[str, ChatGenerator] = {}


def get_generator(name: Optional[str] = None) -> ChatGenerator:
    """Get the chat model for ``name`` (default: CHAT_MODEL)."""
    settings = get_settings()
    name = name or settings.chat_model
    if name not in _generators:
        _generators[name] = create_generator(name, settings)
    return _generators[name]
