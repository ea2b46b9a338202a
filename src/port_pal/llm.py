"""Chat model construction for the command oracle."""

import os
from typing import NamedTuple

from langchain_openai import ChatOpenAI
import structlog

logger = structlog.get_logger(__name__)


class Provider(NamedTuple):
    key_env: str
    base_url: str | None


PROVIDERS = {
    "openrouter": Provider("OPEN_ROUTER_KEY", "https://openrouter.ai/api/v1"),
    "openai": Provider("OPENAI_API_KEY", None),
}


def create_chat_model(provider: str, model: str, temperature: float = 0.0) -> ChatOpenAI:
    """Build an OpenAI-compatible chat model for ``provider``.

    OpenRouter speaks the OpenAI protocol, so both providers share ChatOpenAI
    and differ only in base URL and which env var holds the key.

    Raises:
        ValueError: ``provider`` is not in PROVIDERS.
        KeyError: the provider's key env var is unset or empty.
    """
    try:
        key_env, base_url = PROVIDERS[provider]
    except KeyError:
        raise ValueError(
            f"Unknown LLM provider '{provider}' (expected one of: {', '.join(PROVIDERS)})"
        ) from None

    api_key = os.environ.get(key_env)
    if not api_key:
        raise KeyError(f"{key_env} is not set")

    logger.debug("llm_create", provider=provider, model=model, temperature=temperature)

    extra = {}
    if base_url:
        extra = {"base_url": base_url, "default_headers": {"X-Title": "Port Pal"}}
    return ChatOpenAI(api_key=api_key, model=model, temperature=temperature, **extra)
