"""
Model provider: OpenAI when OPENAI_API_KEY is set, otherwise a local Ollama model.
Both honour model name and temperature overrides from settings.
"""
from typing import Optional

import structlog
from langchain_core.language_models import BaseChatModel

from app.config import Settings, get_settings

log = structlog.get_logger()

REMOTE = "remote"
LOCAL = "local"


def model_tier(settings: Optional[Settings] = None) -> str:
    settings = settings or get_settings()
    return REMOTE if settings.openai_api_key else LOCAL


def create_model(settings: Optional[Settings] = None) -> BaseChatModel:
    settings = settings or get_settings()
    if model_tier(settings) == REMOTE:
        from langchain_openai import ChatOpenAI
        log.info("model_provider", provider="openai", model=settings.openai_model)
        return ChatOpenAI(
            model=settings.openai_model,
            api_key=settings.openai_api_key,
            temperature=settings.model_temperature,
        )

    from langchain_ollama import ChatOllama
    log.info(
        "model_provider",
        provider="ollama",
        model=settings.ollama_model,
        base_url=settings.ollama_base_url,
        hint=f"ollama serve && ollama pull {settings.ollama_model}",
    )
    return ChatOllama(
        model=settings.ollama_model,
        temperature=settings.model_temperature,
        base_url=settings.ollama_base_url,
    )
