"""
OpenAI Client Factory.

Centralized client management for the completion and embedding APIs. Provides:
- A single lazily-created client shared by the chat and embedding services
- OpenAI (api.openai.com) or Azure OpenAI, chosen by ``settings.llm_provider``
- Azure managed identity when no API key is configured outside local
- Proper async shutdown

Usage:
    from dataroom_ai.services.openai_clients import get_openai_client

    client = await get_openai_client()
    response = await client.chat.completions.create(...)
"""

from __future__ import annotations

from dataclasses import dataclass

from azure.identity.aio import DefaultAzureCredential, get_bearer_token_provider
from openai import AsyncAzureOpenAI, AsyncOpenAI

from dataroom_ai.config import settings
from dataroom_ai.logger import get_logger

logger = get_logger(__name__)

_COGNITIVE_SERVICES_SCOPE = "https://cognitiveservices.azure.com/.default"


@dataclass(frozen=True)
class ClientConfig:
    """Configuration for an OpenAI-compatible client."""

    provider: str
    api_key: str | None = None
    base_url: str | None = None
    api_version: str | None = None
    use_managed_identity: bool = False


class OpenAIClientFactory:
    """
    Creates and caches the process-wide OpenAI client.

    Clients are lazy so importing this module never needs credentials.
    """

    _client: AsyncOpenAI | None = None
    _credential: DefaultAzureCredential | None = None

    @classmethod
    def _get_config(cls) -> ClientConfig:
        if settings.llm_provider == "azure":
            return ClientConfig(
                provider="azure",
                api_key=settings.azure_openai_api_key or None,
                base_url=settings.azure_openai_endpoint,
                api_version=settings.azure_openai_api_version,
                use_managed_identity=(
                    settings.use_managed_identity and not settings.azure_openai_api_key
                ),
            )
        if settings.llm_provider != "openai":
            raise ValueError(f"Unknown llm_provider: {settings.llm_provider}")
        return ClientConfig(
            provider="openai",
            api_key=settings.openai_api_key or None,
            base_url=settings.openai_base_url or None,
        )

    @classmethod
    async def get_client(cls) -> AsyncOpenAI:
        """Get or create the shared client."""
        if cls._client is not None:
            return cls._client

        config = cls._get_config()

        if config.provider == "azure" and config.use_managed_identity:
            cls._credential = DefaultAzureCredential()
            token_provider = get_bearer_token_provider(cls._credential, _COGNITIVE_SERVICES_SCOPE)
            cls._client = AsyncAzureOpenAI(
                azure_endpoint=config.base_url,
                azure_ad_token_provider=token_provider,
                api_version=config.api_version,
                timeout=settings.llm_request_timeout_seconds,
            )
            logger.info("openai_client_created", provider="azure", auth="managed_identity")
        elif config.provider == "azure":
            cls._client = AsyncAzureOpenAI(
                azure_endpoint=config.base_url,
                api_key=config.api_key,
                api_version=config.api_version,
                timeout=settings.llm_request_timeout_seconds,
            )
            logger.info("openai_client_created", provider="azure", auth="api_key")
        else:
            cls._client = AsyncOpenAI(
                api_key=config.api_key,
                base_url=config.base_url,
                timeout=settings.llm_request_timeout_seconds,
            )
            logger.info("openai_client_created", provider="openai", auth="api_key")

        return cls._client

    @classmethod
    async def close(cls) -> None:
        """Close the client and credential. Call on application shutdown."""
        if cls._client is not None:
            await cls._client.close()
            cls._client = None
        if cls._credential is not None:
            await cls._credential.close()
            cls._credential = None
        logger.info("openai_clients_closed")


async def get_openai_client() -> AsyncOpenAI:
    """Get the shared completion/embedding client."""
    return await OpenAIClientFactory.get_client()


async def shutdown_clients() -> None:
    """
    Shutdown hook to close all clients.

    Call this in FastAPI's lifespan shutdown.
    """
    await OpenAIClientFactory.close()
