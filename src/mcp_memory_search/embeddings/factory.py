"""
Embedding provider factory.

Creates the provider selected by ``MCP_EMBEDDING_PROVIDER``.
"""

import logging

from ..config import EmbeddingSettings
from .base import EmbeddingProvider
from .hashing import HashEmbeddingProvider
from .openai_provider import OpenAIEmbeddingProvider

logger = logging.getLogger(__name__)


def create_embedding_provider(settings: EmbeddingSettings | None = None) -> EmbeddingProvider:
    """
    Create the configured embedding provider.

    Args:
        settings: Embedding settings (defaults to the global settings group)

    Returns:
        Provider instance

    Raises:
        ValueError: If the OpenAI provider is selected without an API key
    """
    if settings is None:
        from ..config import settings as global_settings

        settings = global_settings.embedding

    if settings.provider == "openai":
        provider = OpenAIEmbeddingProvider.from_settings(settings)
        logger.info(f"Initialized OpenAI embedding provider: {settings.model} ({settings.dimensions} dims)")
        return provider

    provider = HashEmbeddingProvider(dimension=settings.dimensions)
    logger.info(f"Initialized hash embedding provider ({settings.dimensions} dims)")
    return provider
