"""
Registry of hosted model backends.

Each entry maps a provider id to a chat-model factory and its default model.
Adding a backend means registering it here; the request handler only ever
looks providers up by id.
"""
from dataclasses import dataclass
from typing import Callable, Dict, List

from langchain_core.language_models import BaseChatModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_openai import ChatOpenAI

from app.core.config import settings, logger

LOCAL_PROVIDER = "local"

@dataclass
class ProviderSpec:
    id: str
    label: str
    default_model: str
    factory: Callable[[str, str], BaseChatModel]  # (api_key, model_name) -> chat model

def _openai_factory(api_key: str, model_name: str) -> BaseChatModel:
    return ChatOpenAI(
        model=model_name,
        temperature=settings.MODEL_TEMPERATURE,
        api_key=api_key,
    )

def _google_factory(api_key: str, model_name: str) -> BaseChatModel:
    return ChatGoogleGenerativeAI(
        model=model_name,
        temperature=settings.MODEL_TEMPERATURE,
        google_api_key=api_key,
    )

PROVIDERS: Dict[str, ProviderSpec] = {}

def register_provider(spec: ProviderSpec) -> None:
    if spec.id == LOCAL_PROVIDER:
        raise ValueError(f"'{LOCAL_PROVIDER}' is reserved for the keyword heuristic.")
    PROVIDERS[spec.id] = spec
    logger.debug(f"Registered model provider '{spec.id}' (default model {spec.default_model})")

def get_provider(provider_id: str) -> ProviderSpec:
    """Raises KeyError for unknown ids."""
    return PROVIDERS[provider_id]

def list_providers() -> List[ProviderSpec]:
    return list(PROVIDERS.values())

def mask_key(key: str) -> str:
    if not key or len(key) < 5:
        return "❌ NOT SET"
    return f"✅ ...{key[-4:]}"  # Shows only last 4 chars

register_provider(ProviderSpec("openai", "OpenAI (GPT Models)", settings.OPENAI_DEFAULT_MODEL, _openai_factory))
register_provider(ProviderSpec("google", "Google (Gemini Models)", settings.GOOGLE_DEFAULT_MODEL, _google_factory))
