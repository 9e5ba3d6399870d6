"""Protocol adapters that build a minimal "ping" request per provider family."""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Type

from pingboard.config import ProviderConfig
from pingboard.schemas.check import MAX_MESSAGE_LENGTH, ProviderType

PING_PROMPT = "ping"


class UnsupportedProviderError(LookupError):
    """Raised when no adapter is registered for a provider type."""


@dataclass(frozen=True)
class ProbeRequest:
    """A fully built probe request."""
    url: str
    headers: Dict[str, str]
    body: Dict[str, Any]
    # Reported in results instead of ``url`` (keeps query credentials out)
    display_endpoint: Optional[str] = None
    method: str = field(default="POST")

    @property
    def reported_endpoint(self) -> str:
        return self.display_endpoint or self.url


def ensure_path(endpoint: str, fallback_path: str) -> str:
    """
    Append ``fallback_path`` to a bare endpoint.

    Endpoints that already end with the path, carry a versioned ``/v1/``
    segment, an Azure-style ``/deployments/`` segment, or a query string
    are treated as fully qualified and returned unchanged.

    Example:
        ```python
        ensure_path("https://api.example.com", "/v1/messages")
        # "https://api.example.com/v1/messages"
        ```
    """
    if not endpoint:
        return fallback_path
    if (
        endpoint.endswith(fallback_path)
        or "/v1/" in endpoint
        or "/deployments/" in endpoint
        or "?" in endpoint
    ):
        return endpoint
    return endpoint.rstrip("/") + fallback_path


def append_query(url: str, query: str) -> str:
    """Append a ``name=value`` pair to the URL's query string."""
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{query}"


class ProtocolAdapter:
    """
    Builds a provider-specific ping request and reads its error bodies.

    Subclasses register themselves with :func:`register_adapter` and only
    need to implement :meth:`build_request`.
    """

    provider_type: ProviderType

    def build_request(self, config: ProviderConfig) -> ProbeRequest:
        raise NotImplementedError

    def extract_error_message(self, raw_body: str) -> str:
        """
        Pull a human readable message out of an error response body.

        JSON bodies yield ``error.message``, a string ``error``, or a
        top-level ``message``, falling back to the compact JSON. Anything
        else is returned truncated.
        """
        if not raw_body:
            return ""
        try:
            parsed = json.loads(raw_body)
        except ValueError:
            return raw_body[:MAX_MESSAGE_LENGTH]

        message = None
        if isinstance(parsed, dict):
            error = parsed.get("error")
            if isinstance(error, dict):
                message = error.get("message")
            elif isinstance(error, str):
                message = error
            if not message:
                message = parsed.get("message")

        if not isinstance(message, str) or not message:
            message = json.dumps(parsed, separators=(",", ":"), ensure_ascii=False)
        return message[:MAX_MESSAGE_LENGTH]


_ADAPTERS: Dict[ProviderType, ProtocolAdapter] = {}


def register_adapter(
    provider_type: ProviderType
) -> Callable[[Type[ProtocolAdapter]], Type[ProtocolAdapter]]:
    """Class decorator registering an adapter for ``provider_type``."""
    def decorator(cls: Type[ProtocolAdapter]) -> Type[ProtocolAdapter]:
        cls.provider_type = provider_type
        _ADAPTERS[provider_type] = cls()
        return cls
    return decorator


def get_adapter(provider_type: ProviderType) -> ProtocolAdapter:
    """
    Resolve the adapter for a provider family.

    Raises:
        UnsupportedProviderError: If no adapter is registered
    """
    try:
        return _ADAPTERS[provider_type]
    except KeyError:
        name = getattr(provider_type, "value", provider_type)
        raise UnsupportedProviderError(f"Unsupported provider: {name}")


@register_adapter(ProviderType.OPENAI)
class ChatCompletionAdapter(ProtocolAdapter):
    """OpenAI-compatible ``/v1/chat/completions``."""

    path = "/v1/chat/completions"

    def build_request(self, config: ProviderConfig) -> ProbeRequest:
        return ProbeRequest(
            url=ensure_path(config.endpoint, self.path),
            headers={
                "Authorization": f"Bearer {config.credential.get_secret_value()}",
                "Content-Type": "application/json",
            },
            body={
                "model": config.model,
                "messages": [
                    {"role": "system", "content": "You are a health check endpoint."},
                    {"role": "user", "content": PING_PROMPT},
                ],
                "max_tokens": 3,
                "temperature": 0,
            },
            display_endpoint=config.endpoint,
        )


@register_adapter(ProviderType.GEMINI)
class GenerateContentAdapter(ProtocolAdapter):
    """Gemini ``models/<model>:generateContent``; the key travels as a query parameter."""

    suffix = ":generateContent"

    def build_request(self, config: ProviderConfig) -> ProbeRequest:
        if config.endpoint.endswith(self.suffix):
            url = config.endpoint
        else:
            url = f"{config.endpoint.rstrip('/')}/models/{config.model}{self.suffix}"

        return ProbeRequest(
            url=append_query(url, f"key={config.credential.get_secret_value()}"),
            headers={"Content-Type": "application/json"},
            body={
                "contents": [
                    {"role": "user", "parts": [{"text": PING_PROMPT}]},
                ],
            },
            display_endpoint=config.endpoint,
        )


@register_adapter(ProviderType.ANTHROPIC)
class MessagesAdapter(ProtocolAdapter):
    """Anthropic ``/v1/messages``."""

    path = "/v1/messages"
    api_version = "2023-06-01"

    def build_request(self, config: ProviderConfig) -> ProbeRequest:
        return ProbeRequest(
            url=ensure_path(config.endpoint, self.path),
            headers={
                "x-api-key": config.credential.get_secret_value(),
                "anthropic-version": self.api_version,
                "content-type": "application/json",
            },
            body={
                "model": config.model,
                "max_tokens": 10,
                "messages": [{"role": "user", "content": PING_PROMPT}],
            },
            display_endpoint=config.endpoint,
        )
