"""Multi-provider AI completion client with per-model cost accounting."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

from ivc.config import settings
from ivc.models.settings import AISettings
from ivc.observability.metrics import record_ai_usage
from ivc.schemas.ai import (
    AIModelInfo,
    AIProviderInfo,
    AIResult,
    AISettingsIn,
    AISettingsOut,
    AIUsage,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

AGENT_TYPES = ("research", "writing", "social")
CONNECTION_TEST_PROMPT = (
    "Hello, this is a connection test. Please respond with 'OK' if you can "
    "see this message."
)


@dataclass(frozen=True)
class ModelSpec:
    id: str
    name: str
    max_tokens: int
    cost_per_1k_tokens: float


@dataclass(frozen=True)
class ProviderSpec:
    id: str
    name: str
    base_url: str
    fallback_cost_per_1k: float
    models: tuple[ModelSpec, ...] = field(default_factory=tuple)

    def model(self, model_id: str) -> ModelSpec | None:
        return next((m for m in self.models if m.id == model_id), None)


PROVIDERS: dict[str, ProviderSpec] = {
    "openai": ProviderSpec(
        id="openai",
        name="OpenAI",
        base_url="https://api.openai.com/v1/chat/completions",
        fallback_cost_per_1k=0.01,
        models=(
            ModelSpec("gpt-4-turbo-preview", "GPT-4 Turbo", 128000, 0.01),
            ModelSpec("gpt-4", "GPT-4", 8192, 0.03),
            ModelSpec("gpt-3.5-turbo", "GPT-3.5 Turbo", 16385, 0.001),
        ),
    ),
    "anthropic": ProviderSpec(
        id="anthropic",
        name="Claude (Anthropic)",
        base_url="https://api.anthropic.com/v1/messages",
        fallback_cost_per_1k=0.003,
        models=(
            ModelSpec("claude-3-opus-20240229", "Claude 3 Opus", 200000, 0.015),
            ModelSpec("claude-3-sonnet-20240229", "Claude 3 Sonnet", 200000, 0.003),
            ModelSpec("claude-3-haiku-20240307", "Claude 3 Haiku", 200000, 0.00025),
        ),
    ),
    "perplexity": ProviderSpec(
        id="perplexity",
        name="Perplexity",
        base_url="https://api.perplexity.ai/chat/completions",
        fallback_cost_per_1k=0.007,
        models=(
            ModelSpec("pplx-70b-online", "Perplexity 70B Online", 4096, 0.007),
            ModelSpec("pplx-7b-online", "Perplexity 7B Online", 4096, 0.0007),
        ),
    ),
    "grok": ProviderSpec(
        id="grok",
        name="Grok (xAI)",
        base_url="https://api.x.ai/v1/chat/completions",
        fallback_cost_per_1k=0.005,
        models=(ModelSpec("grok-beta", "Grok Beta", 8192, 0.005),),
    ),
    "openrouter": ProviderSpec(
        id="openrouter",
        name="OpenRouter (Multi-Provider)",
        base_url="https://openrouter.ai/api/v1/chat/completions",
        fallback_cost_per_1k=0.0,
        models=(
            ModelSpec("openai/gpt-4-turbo", "GPT-4 Turbo (via OpenRouter)", 128000, 0.01),
            ModelSpec(
                "anthropic/claude-3-opus", "Claude 3 Opus (via OpenRouter)", 200000, 0.015
            ),
            ModelSpec(
                "anthropic/claude-3-haiku",
                "Claude 3 Haiku (via OpenRouter)",
                200000,
                0.00025,
            ),
            ModelSpec("google/gemini-pro", "Gemini Pro (via OpenRouter)", 32768, 0.00125),
        ),
    ),
}

DEFAULT_AGENT_CONFIG: dict[str, dict[str, str]] = {
    "research": {"provider": "openrouter", "model": "anthropic/claude-3-opus"},
    "writing": {"provider": "openrouter", "model": "openai/gpt-4-turbo"},
    "social": {"provider": "openrouter", "model": "anthropic/claude-3-haiku"},
}

DEFAULT_SYSTEM_PROMPTS: dict[str, str] = {
    "research": (
        "You are a research assistant for IVC Accounting, a chartered accountancy "
        "practice in Essex. Find current, accurate UK tax and business topics and "
        "cite HMRC or gov.uk guidance where possible."
    ),
    "writing": (
        "You are a content writer for IVC Accounting. Write clear, practical blog "
        "posts in British English for small business owners and sole traders."
    ),
    "social": (
        "You write concise, engaging social media posts for IVC Accounting. Keep a "
        "professional but approachable tone and end with a clear call to action."
    ),
}
DEFAULT_TEMPERATURES = {"research": 0.7, "writing": 0.8, "social": 0.9}


class AIProviderError(Exception):
    """Provider unusable or returned an error.

    ``status_code`` is 400 for configuration problems (unknown provider,
    missing key) and 502 when the upstream call fails.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class AgentConfig:
    provider: str
    model: str
    temperature: float
    system_prompt: str | None = None


def calculate_cost(total_tokens: int, cost_per_1k_tokens: float) -> float:
    return (total_tokens / 1000) * cost_per_1k_tokens


def default_settings_payload() -> dict[str, Any]:
    payload: dict[str, Any] = {}
    for agent in AGENT_TYPES:
        payload[f"{agent}_system_prompt"] = DEFAULT_SYSTEM_PROMPTS[agent]
        payload[f"{agent}_temperature"] = DEFAULT_TEMPERATURES[agent]
        payload[f"{agent}_provider"] = DEFAULT_AGENT_CONFIG[agent]["provider"]
        payload[f"{agent}_model"] = DEFAULT_AGENT_CONFIG[agent]["model"]
    return payload


class AIService:
    """Routes prompts to the configured provider and normalises the reply."""

    def __init__(
        self,
        api_keys: dict[str, str | None] | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_keys = api_keys if api_keys is not None else settings.ai_api_keys
        self.timeout = timeout or settings.ai_request_timeout
        self.transport = transport
        self._dispatch = {
            "openai": self._call_chat_completions,
            "perplexity": self._call_chat_completions,
            "grok": self._call_chat_completions,
            "openrouter": self._call_openrouter,
            "anthropic": self._call_anthropic,
        }

    def available_providers(self) -> list[AIProviderInfo]:
        """Providers that have an API key configured."""
        return [
            self.provider_info(spec) for pid, spec in PROVIDERS.items() if self.api_keys.get(pid)
        ]

    @staticmethod
    def provider_info(spec: ProviderSpec) -> AIProviderInfo:
        return AIProviderInfo(
            id=spec.id,
            name=spec.name,
            base_url=spec.base_url,
            models=[
                AIModelInfo(
                    id=m.id,
                    name=m.name,
                    max_tokens=m.max_tokens,
                    cost_per_1k_tokens=m.cost_per_1k_tokens,
                )
                for m in spec.models
            ],
        )

    @staticmethod
    def resolve_config(
        db: Session | None,
        agent_type: str,
        provider: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
    ) -> AgentConfig:
        """Explicit override, then the stored AISettings row, then defaults."""
        defaults = DEFAULT_AGENT_CONFIG.get(agent_type, DEFAULT_AGENT_CONFIG["research"])
        row = db.get(AISettings, 1) if db is not None else None

        stored_provider = getattr(row, f"{agent_type}_provider", None) if row else None
        stored_model = getattr(row, f"{agent_type}_model", None) if row else None
        stored_temperature = getattr(row, f"{agent_type}_temperature", None) if row else None
        stored_prompt = getattr(row, f"{agent_type}_system_prompt", None) if row else None

        resolved_provider = provider or stored_provider or defaults["provider"]
        resolved_model = model or stored_model or defaults["model"]

        if temperature is None:
            temperature = (
                stored_temperature
                if stored_temperature is not None
                else settings.ai_default_temperature
            )
        return AgentConfig(
            provider=resolved_provider,
            model=resolved_model,
            temperature=temperature,
            system_prompt=stored_prompt,
        )

    @staticmethod
    def load_settings(db: Session) -> AISettingsOut:
        """The stored row, or the built-in defaults when nothing is saved yet."""
        row = db.get(AISettings, 1)
        if row is None:
            return AISettingsOut(**default_settings_payload())
        return AISettingsOut.model_validate(row)

    @staticmethod
    def save_settings(db: Session, data: AISettingsIn) -> AISettings:
        row = db.get(AISettings, 1)
        if row is None:
            row = AISettings(id=1)
            db.add(row)
        for name, value in data.model_dump().items():
            setattr(row, name, value)
        db.commit()
        db.refresh(row)
        logger.info("AI settings updated")
        return row

    async def generate(
        self,
        prompt: str,
        *,
        agent_type: str = "writing",
        db: Session | None = None,
        provider: str | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AIResult:
        config = self.resolve_config(db, agent_type, provider, model, temperature)
        logger.info(
            "AI generation requested",
            extra={
                "agent_type": agent_type,
                "provider": config.provider,
                "model": config.model,
            },
        )
        result = await self.call_provider(
            config.provider,
            config.model,
            prompt,
            temperature=config.temperature,
            max_tokens=max_tokens or settings.ai_default_max_tokens,
            system_prompt=config.system_prompt,
        )
        record_ai_usage(result.provider, result.usage.total_tokens, result.usage.cost)
        return result

    async def call_provider(
        self,
        provider: str,
        model: str,
        prompt: str,
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
        system_prompt: str | None = None,
        api_key: str | None = None,
    ) -> AIResult:
        """Dispatch one completion request.

        Raises:
            AIProviderError: Unknown provider, missing key, or upstream failure
        """
        spec = PROVIDERS.get(provider)
        handler = self._dispatch.get(provider)
        if spec is None or handler is None:
            raise AIProviderError(f"Unsupported provider: {provider}")
        api_key = api_key or self.api_keys.get(provider)
        if not api_key:
            raise AIProviderError(f"API key not found for provider {provider}")

        if temperature is None:
            temperature = settings.ai_default_temperature
        if max_tokens is None:
            max_tokens = settings.ai_default_max_tokens
        return await handler(
            spec, api_key, model, prompt, temperature, max_tokens, system_prompt
        )

    async def test_connection(self, provider: str, model: str | None = None) -> bool:
        """Send a short prompt; True when the reply contains 'ok'."""
        spec = PROVIDERS.get(provider)
        if model is None and spec and spec.models:
            model = spec.models[0].id
        try:
            result = await self.call_provider(
                provider,
                model or "test",
                CONNECTION_TEST_PROMPT,
                temperature=0,
                max_tokens=10,
            )
        except AIProviderError as exc:
            logger.warning(
                "AI connection test failed",
                extra={"provider": provider, "error": str(exc)},
            )
            return False
        return "ok" in result.content.lower()

    # Provider calls

    async def _post(
        self, spec: ProviderSpec, headers: dict[str, str], body: dict[str, Any]
    ) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(spec.base_url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.error(
                "AI provider request failed",
                extra={"provider": spec.id, "error": str(exc)},
            )
            raise AIProviderError(f"{spec.name} API error: {exc}", status_code=502) from exc

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not response.is_success:
            error = data.get("error") if isinstance(data, dict) else None
            message = error.get("message") if isinstance(error, dict) else error
            logger.error(
                "AI provider returned an error",
                extra={"provider": spec.id, "status": response.status_code},
            )
            raise AIProviderError(
                f"{spec.name} API error: {message or 'Unknown error'}", status_code=502
            )
        return data

    @staticmethod
    def _messages(prompt: str, system_prompt: str | None) -> list[dict[str, str]]:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    @staticmethod
    def _chat_content(data: dict[str, Any]) -> str:
        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise AIProviderError("Malformed provider response", status_code=502) from exc

    async def _call_chat_completions(
        self,
        spec: ProviderSpec,
        api_key: str,
        model: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str | None,
        extra_headers: dict[str, str] | None = None,
        reported_cost: bool = False,
    ) -> AIResult:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            **(extra_headers or {}),
        }
        body = {
            "model": model,
            "messages": self._messages(prompt, system_prompt),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        data = await self._post(spec, headers, body)
        usage = data.get("usage") or {}
        total = int(usage.get("total_tokens", 0))
        if reported_cost:
            cost = float(usage.get("total_cost") or 0)
        else:
            model_spec = spec.model(model)
            rate = (
                model_spec.cost_per_1k_tokens if model_spec else spec.fallback_cost_per_1k
            )
            cost = calculate_cost(total, rate)
        return AIResult(
            content=self._chat_content(data),
            usage=AIUsage(
                prompt_tokens=int(usage.get("prompt_tokens", 0)),
                completion_tokens=int(usage.get("completion_tokens", 0)),
                total_tokens=total,
                cost=cost,
            ),
            provider=spec.id,
            model=model,
        )

    async def _call_openrouter(
        self,
        spec: ProviderSpec,
        api_key: str,
        model: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str | None,
    ) -> AIResult:
        return await self._call_chat_completions(
            spec,
            api_key,
            model,
            prompt,
            temperature,
            max_tokens,
            system_prompt,
            extra_headers={
                "HTTP-Referer": settings.site_url,
                "X-Title": "IVC AI Assistant",
            },
            reported_cost=True,
        )

    async def _call_anthropic(
        self,
        spec: ProviderSpec,
        api_key: str,
        model: str,
        prompt: str,
        temperature: float,
        max_tokens: int,
        system_prompt: str | None,
    ) -> AIResult:
        headers = {
            "x-api-key": api_key,
            "anthropic-version": "2023-06-01",
            "Content-Type": "application/json",
        }
        body: dict[str, Any] = {
            "model": model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            body["system"] = system_prompt
        data = await self._post(spec, headers, body)

        try:
            content = "".join(
                block.get("text", "")
                for block in data["content"]
                if block.get("type", "text") == "text"
            )
        except (KeyError, TypeError, AttributeError) as exc:
            raise AIProviderError("Malformed provider response", status_code=502) from exc
        usage = data.get("usage") or {}
        input_tokens = int(usage.get("input_tokens", 0))
        output_tokens = int(usage.get("output_tokens", 0))
        total = input_tokens + output_tokens
        model_spec = spec.model(model)
        rate = model_spec.cost_per_1k_tokens if model_spec else spec.fallback_cost_per_1k
        return AIResult(
            content=content,
            usage=AIUsage(
                prompt_tokens=input_tokens,
                completion_tokens=output_tokens,
                total_tokens=total,
                cost=calculate_cost(total, rate),
            ),
            provider=spec.id,
            model=model,
        )


ai_service = AIService()
