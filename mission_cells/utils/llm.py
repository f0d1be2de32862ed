"""LLM provider abstraction and the retrying completion client."""

import logging
import os
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Union

import tenacity

from ..exceptions import (
    CompletionTimeoutError,
    ProtocolError,
    TransportError,
)

logger = logging.getLogger(__name__)

Message = Dict[str, str]
MockResponse = Union[str, Callable[[List[Message]], str]]

_CHAT_COMPLETIONS_SUFFIX = "/chat/completions"


class LLMProvider(ABC):
    """Abstract base class for LLM providers."""

    @abstractmethod
    def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Generate a completion for the given messages."""
        pass


class OpenAIProvider(LLMProvider):
    """OpenAI-compatible LLM provider (LM Studio, vLLM, OpenAI, ...)."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        base_url: Optional[str] = None,
    ):
        """
        Initialize the OpenAI provider.

        Args:
            api_key: API key (defaults to OPENAI_API_KEY env var; local servers
                accept any placeholder)
            model: Default model for completions
            base_url: Default base URL for the OpenAI-compatible API
        """
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY") or "not-needed"
        self.model = model
        self.base_url = _normalize_base_url(base_url) if base_url else None
        self._clients: Dict[Optional[str], Any] = {}

        try:
            import openai  # noqa: F401
        except ImportError:
            raise ImportError(
                "openai package not installed. Install with: uv add openai"
            )

    def _client_for(self, endpoint: Optional[str]):
        base_url = _normalize_base_url(endpoint) if endpoint else self.base_url
        if base_url not in self._clients:
            from openai import OpenAI

            # Retries are owned by CompletionClient.
            self._clients[base_url] = OpenAI(
                api_key=self.api_key, base_url=base_url, max_retries=0
            )
        return self._clients[base_url]

    def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Generate a completion using an OpenAI-compatible endpoint."""
        import openai

        client = self._client_for(endpoint)
        try:
            response = client.chat.completions.create(
                model=model or self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
                stream=False,
                timeout=timeout,
            )
        except openai.APITimeoutError as e:
            raise CompletionTimeoutError(f"Completion timed out: {e}") from e
        except (openai.APIConnectionError, openai.APIStatusError) as e:
            raise TransportError(f"Completion request failed: {e}") from e
        except openai.APIResponseValidationError as e:
            raise ProtocolError(f"Malformed completion response: {e}") from e

        try:
            content = response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ProtocolError(f"Malformed completion response: {e}") from e
        return content or ""


class MockProvider(LLMProvider):
    """Mock LLM provider for testing without API calls."""

    def __init__(
        self,
        responses: Optional[Dict[str, MockResponse]] = None,
        default: str = "Mock response",
    ):
        """
        Initialize the mock provider.

        Args:
            responses: Dict mapping prompt patterns to mock responses. A response
                may be a callable receiving the messages. Patterns are checked in
                insertion order against the text of every message.
            default: Reply used when no pattern matches
        """
        self.responses = responses or {}
        self.default = default
        self.calls: List[Dict[str, Any]] = []

    def complete(
        self,
        messages: List[Message],
        model: Optional[str] = None,
        endpoint: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> str:
        """Return a mock completion."""
        self.calls.append(
            {"messages": messages, "model": model, "endpoint": endpoint}
        )
        text = "\n".join(m.get("content", "") for m in messages).lower()
        for pattern, response in self.responses.items():
            if pattern.lower() in text:
                return response(messages) if callable(response) else response
        return self.default


class CompletionClient:
    """
    Binds a provider to endpoint defaults, timeout and bounded retries.

    This is the only way engine code talks to a model. Transport failures are
    retried with a fixed backoff and then propagate to the caller.
    """

    def __init__(
        self,
        provider: LLMProvider,
        endpoint: str,
        model: str,
        timeout: float = 15.0,
        max_retries: int = 5,
        retry_backoff: float = 1.0,
        concise_instruction: str = "",
    ):
        self.provider = provider
        self.endpoint = endpoint
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_backoff = retry_backoff
        self.concise_instruction = concise_instruction

    @classmethod
    def from_config(cls, provider: LLMProvider, config) -> "CompletionClient":
        return cls(
            provider=provider,
            endpoint=config.endpoint,
            model=config.model,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            retry_backoff=config.retry_backoff,
            concise_instruction=config.concise_instruction,
        )

    def complete(
        self,
        messages: List[Message],
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send messages to the completion service.

        Raises:
            TransportError: After all retries are exhausted
            CompletionTimeoutError: After all retries are exhausted
            ProtocolError: Immediately, malformed replies are not retried
        """
        retryer = tenacity.Retrying(
            retry=tenacity.retry_if_exception_type(TransportError),
            wait=tenacity.wait_fixed(self.retry_backoff),
            stop=tenacity.stop_after_attempt(max(1, self.max_retries)),
            before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        return retryer(
            self.provider.complete,
            messages,
            model=model or self.model,
            endpoint=endpoint or self.endpoint,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=self.timeout,
        )

    def query(self, system: str, prompt: str, temperature: float = 0.7) -> str:
        """Single system+user exchange with the concise instruction prepended."""
        user = f"{self.concise_instruction}\n{prompt}" if self.concise_instruction else prompt
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        return self.complete(messages, temperature=temperature).strip()

    def generate_fact(self, real: bool = True) -> str:
        """Generate a fresh real (or deliberately false) fact."""
        if real:
            return self.query(
                "You are a real-world fact generator.",
                "Generate a single interesting, true, real-world fact (not about a person). "
                "Output only the fact.",
            )
        return self.query(
            "You are a creative fact generator.",
            "Generate a single fictional, obviously false, or absurd 'fact' about a country "
            "or city. Make it sound plausible but clearly incorrect. Output only the fact.",
        )


def _normalize_base_url(endpoint: str) -> str:
    endpoint = endpoint.rstrip("/")
    if endpoint.endswith(_CHAT_COMPLETIONS_SUFFIX):
        endpoint = endpoint[: -len(_CHAT_COMPLETIONS_SUFFIX)]
    return endpoint


def get_llm_provider(
    provider: str = "openai",
    api_key: Optional[str] = None,
    model: str = "gpt-4o-mini",
    **kwargs,
) -> LLMProvider:
    """
    Factory function to get an LLM provider.

    Args:
        provider: Provider name ("openai" or "mock")
        api_key: API key for the provider
        model: Model to use
        **kwargs: Additional provider-specific arguments

    Returns:
        LLMProvider instance
    """
    if provider == "openai":
        return OpenAIProvider(api_key=api_key, model=model, **kwargs)
    elif provider == "mock":
        return MockProvider(**kwargs)
    else:
        raise ValueError(f"Unknown provider: {provider}")
