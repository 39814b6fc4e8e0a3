"""Application settings using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    app_name: str = "Dataroom AI"
    debug: bool = False
    environment: str = "local"  # local, development, production
    log_format: str = "console"  # console (uvicorn style) or json

    # LLM provider: "openai" talks to api.openai.com, "azure" to an Azure OpenAI resource
    llm_provider: str = "openai"

    # OpenAI settings
    openai_api_key: str = ""
    openai_base_url: str = ""
    openai_llm_model: str = "gpt-4o"
    openai_embedding_model: str = "text-embedding-3-small"

    # Azure OpenAI settings (used when llm_provider == "azure")
    azure_openai_endpoint: str = ""
    azure_openai_api_key: str = ""  # Optional if using managed identity
    azure_openai_api_version: str = "2024-10-21"

    # LLM Configuration - temperature 0 keeps financial answers reproducible
    llm_temperature: float = 0.0
    llm_max_output_tokens: int = 512
    llm_request_timeout_seconds: float = 120.0

    # Embedding requests are non-streaming and should be bounded.
    embedding_request_timeout_seconds: float = 60.0
    embedding_max_retries: int = 2
    embedding_retry_base_seconds: float = 0.5
    embedding_dimensions: int = 1536

    # RAG pipeline budgets
    rag_top_k: int = 10
    rag_keyword_limit: int = 5
    rag_context_max_chars: int = 3500
    rag_aggregation_context_max_chars: int = 5000
    rag_answer_context_max_chars: int = 3000
    rag_aggregation_top_k_multiplier: int = 3
    rag_fallback_min_results: int = 5
    rag_fallback_top_k: int = 10
    rag_fallback_target_results: int = 10
    rag_source_preview_chars: int = 200

    # Vector store: "memory" (process-local) or "azure_search"
    vector_store_provider: str = "memory"
    azure_search_endpoint: str = ""
    azure_search_key: str = ""  # Optional if using managed identity
    azure_search_index_prefix: str = "dataroom"

    # Tenant status lookups: "static" (tenant_statuses below) or "http" (admin console)
    tenant_status_source: str = "static"
    tenant_statuses: dict[str, str] = {}
    tenant_admin_base_url: str = ""
    tenant_admin_api_key: str = ""
    http_request_timeout_seconds: float = 10.0

    # Unified cache
    cache_enabled: bool = True
    cache_max_entries: int = 1024
    cache_tenant_status_ttl_seconds: int = 60
    cache_embed_ttl_seconds: int = 3600
    cache_llm_ttl_seconds: int = 0  # opt-in
    cache_default_ttl_seconds: int = 300

    # Upload limits (bytes) to avoid unbounded memory usage.
    max_upload_bytes: int = 20 * 1024 * 1024  # 20 MiB
    spreadsheet_max_rows_per_sheet: int = 10000
    ingestion_embed_batch_size: int = 256
    # Ask the LLM for a one-line description of each uploaded file
    ingestion_describe_files: bool = True

    # Use managed identity for non-local environments without an explicit key
    @property
    def use_managed_identity(self) -> bool:
        """Use managed identity for Azure services in non-local environments."""
        return self.environment != "local"

    def get_tenant_index_name(self, tenant_slug: str) -> str:
        """Azure AI Search index holding one tenant's chunks."""
        return f"{self.azure_search_index_prefix}-{tenant_slug}".lower()


settings = Settings()
