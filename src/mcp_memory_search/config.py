"""Configuration for the memory search engines.

Each engine reads its own settings group; every group can be overridden
through environment variables using its prefix (e.g. ``MCP_PATTERN_FUZZY_THRESHOLD``).
"""

import logging
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_EMBEDDING_DIMENSIONS = 1536

RerankModel = Literal["cosine", "hybrid", "learning_to_rank", "none"]
FusionStrategy = Literal["weighted_sum", "convex", "max"]
ArrayMatchPolicy = Literal["exact", "contains"]


class PatternSettings(BaseSettings):
    """Pattern engine settings (regex, wildcard, fuzzy, structural, literal)."""

    model_config = SettingsConfigDict(env_prefix="MCP_PATTERN_", extra="ignore")

    enable_fuzzy_matching: bool = True
    fuzzy_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    max_edit_distance: int = Field(default=2, ge=0)
    enable_wildcards: bool = True
    case_sensitive: bool = False
    enable_regex_cache: bool = True
    regex_cache_size: int = Field(default=100, ge=1)
    default_flags: str = "gi"
    default_limit: int = Field(default=10, ge=1)
    # How lists inside a structural pattern are compared with document lists
    structural_array_match: ArrayMatchPolicy = "exact"


class SemanticSettings(BaseSettings):
    """Vector index and semantic engine settings."""

    model_config = SettingsConfigDict(env_prefix="MCP_SEMANTIC_", extra="ignore")

    embedding_dimensions: int = Field(default=DEFAULT_EMBEDDING_DIMENSIONS, ge=1)
    similarity_threshold: float = Field(default=0.7, ge=-1.0, le=1.0)
    max_results: int = Field(default=50, ge=1)
    enable_reranking: bool = True
    rerank_model: RerankModel = "cosine"
    hybrid_weight: float = Field(default=0.7, ge=0.0, le=1.0)
    recency_half_life_days: float = Field(default=30.0, gt=0.0)
    highlight_tag: str = "em"
    highlight_max_sentences: int = Field(default=3, ge=1)


class HybridSettings(BaseSettings):
    """Hybrid coordinator settings."""

    model_config = SettingsConfigDict(env_prefix="MCP_HYBRID_", extra="ignore")

    fusion: FusionStrategy = "weighted_sum"
    # Each subquery fetches limit * candidate_multiplier candidates before fusion
    candidate_multiplier: int = Field(default=2, ge=1)
    timeout_seconds: float | None = Field(default=None, gt=0.0)


class EmbeddingSettings(BaseSettings):
    """Embedding provider settings."""

    model_config = SettingsConfigDict(env_prefix="MCP_EMBEDDING_", extra="ignore")

    provider: Literal["openai", "hash"] = "hash"
    model: str = "text-embedding-ada-002"
    api_key: SecretStr | None = None
    base_url: str = "https://api.openai.com/v1"
    dimensions: int = Field(default=DEFAULT_EMBEDDING_DIMENSIONS, ge=1)
    timeout: float = Field(default=10.0, gt=0.0)
    max_retries: int = Field(default=3, ge=1)
    enable_cache: bool = True
    cache_ttl_seconds: int = Field(default=3600, ge=1)


class SearchSettings(BaseSettings):
    """Search manager settings: limits, result cache and analytics."""

    model_config = SettingsConfigDict(env_prefix="MCP_SEARCH_", extra="ignore")

    default_result_limit: int = Field(default=10, ge=1)
    max_result_limit: int = Field(default=100, ge=1)
    enable_cache: bool = True
    cache_ttl_seconds: int = Field(default=300, ge=1)
    redis_url: str | None = None
    enable_analytics: bool = True
    popular_query_limit: int = Field(default=10, ge=1)


class Settings(BaseSettings):
    """Aggregated settings for the search subsystem."""

    model_config = SettingsConfigDict(env_prefix="MCP_", extra="ignore")

    pattern: PatternSettings = Field(default_factory=PatternSettings)
    semantic: SemanticSettings = Field(default_factory=SemanticSettings)
    hybrid: HybridSettings = Field(default_factory=HybridSettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)


settings = Settings()
