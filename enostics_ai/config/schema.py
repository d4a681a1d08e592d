"""Configuration schema using Pydantic."""

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LocalModelConfig(BaseModel):
    """A model served by the local inference backend."""
    name: str
    path: str  # Tag as known to the backend, e.g. "llama3.2:3b"
    type: str = "llm"  # llm | embedding | classification
    size: str = ""
    capabilities: list[str] = Field(default_factory=list)


def _default_local_models() -> list[LocalModelConfig]:
    return [
        LocalModelConfig(
            name="llama3.2:3b",
            path="llama3.2:3b",
            type="llm",
            size="2.0GB",
            capabilities=["classification", "analysis", "summarization"],
        ),
        LocalModelConfig(
            name="qwen2.5:7b",
            path="qwen2.5:7b",
            type="llm",
            size="4.7GB",
            capabilities=["advanced-reasoning", "complex-analysis", "insights"],
        ),
        LocalModelConfig(
            name="nomic-embed-text",
            path="nomic-embed-text:latest",
            type="embedding",
            size="274MB",
            capabilities=["embeddings", "semantic-search", "similarity"],
        ),
    ]


class LocalModelsConfig(BaseModel):
    """Local inference backend (Ollama-compatible HTTP API)."""
    enabled: bool = True
    base_url: str = "http://127.0.0.1:11434"
    timeout_seconds: float = 30.0
    health_timeout_seconds: float = 2.0
    models: list[LocalModelConfig] = Field(default_factory=_default_local_models)
    cache_path: str = "./ai-models"
    max_memory_usage: int = 8192  # MB


class CloudProviderConfig(BaseModel):
    """Cloud LLM provider configuration."""
    name: str
    enabled: bool = False
    models: list[str] = Field(default_factory=list)
    api_key: str = ""
    api_base: str | None = None


def _default_cloud_providers() -> list[CloudProviderConfig]:
    return [CloudProviderConfig(name="openai", models=["gpt-3.5-turbo", "gpt-4"], enabled=False)]


class CloudModelsConfig(BaseModel):
    """Cloud providers."""
    enabled: bool = True
    providers: list[CloudProviderConfig] = Field(default_factory=_default_cloud_providers)
    timeout_seconds: float = 10.0


class EmbeddingsConfig(BaseModel):
    """Embedding backend."""
    provider: str = "local"  # local | openai | huggingface
    model: str = "nomic-embed-text"
    dimensions: int = 384
    batch_size: int = 32


class ModelsConfig(BaseModel):
    """Model providers."""
    local: LocalModelsConfig = Field(default_factory=LocalModelsConfig)
    cloud: CloudModelsConfig = Field(default_factory=CloudModelsConfig)
    embeddings: EmbeddingsConfig | None = Field(default_factory=EmbeddingsConfig)


class MemoryConfig(BaseModel):
    """Session memory configuration."""
    enabled: bool = True
    type: str = "local"
    max_size: int = 1000
    ttl: int = 3600  # seconds; 0 disables expiry


class ClassificationConfig(BaseModel):
    """Classification stage."""
    enabled: bool = True
    model: str = "llama3.2:3b"
    confidence_threshold: float = 0.7
    categories: list[str] = Field(
        default_factory=lambda: ["healthcare", "iot", "financial", "communication", "general"]
    )


class AgentsConfig(BaseModel):
    """Agent configuration."""
    classification: ClassificationConfig = Field(default_factory=ClassificationConfig)


class QualityFactorConfig(BaseModel):
    """Weighted quality factor."""
    name: str
    weight: float
    enabled: bool = True


def _default_quality_factors() -> list[QualityFactorConfig]:
    return [
        QualityFactorConfig(name="completeness", weight=0.3),
        QualityFactorConfig(name="accuracy", weight=0.4),
        QualityFactorConfig(name="consistency", weight=0.3),
    ]


class QualityFilterConfig(BaseModel):
    """Quality stage."""
    enabled: bool = True
    scoring_model: str = "quality-scorer"
    min_score: int = 50
    factors: list[QualityFactorConfig] = Field(default_factory=_default_quality_factors)


class FiltersConfig(BaseModel):
    """Filter configuration."""
    quality: QualityFilterConfig = Field(default_factory=QualityFilterConfig)


class DataSummarizerConfig(BaseModel):
    """Summarization stage."""
    enabled: bool = True
    model: str = "data-summarizer"
    max_length: int = 500
    include_metadata: bool = True


class SummarizersConfig(BaseModel):
    """Summarizer configuration."""
    data: DataSummarizerConfig = Field(default_factory=DataSummarizerConfig)


class ReviewConfig(BaseModel):
    """Inbox review pipeline."""
    enabled: bool = True
    classification_threshold: float = 0.6
    check_types: list[str] = Field(default_factory=lambda: ["security", "privacy", "quality", "spam"])


class BrowserToolConfig(BaseModel):
    """browse_web capability safety configuration."""
    timeout_seconds: float = 20.0
    max_content_chars: int = 2000
    deny_domains: list[str] = Field(
        default_factory=lambda: [
            "localhost",
            "127.0.0.1",
            "0.0.0.0",
            "::1",
            "169.254.169.254",
            "metadata.google.internal",
        ]
    )


class ExternalApiConfig(BaseModel):
    """call_external_api integrations."""
    timeout_seconds: float = 10.0
    weather_url: str = "https://api.open-meteo.com/v1/forecast"
    geocoding_url: str = "https://geocoding-api.open-meteo.com/v1/search"
    geolocation_url: str = "http://ip-api.com/json"


class ToolsConfig(BaseModel):
    """Capability configuration."""
    browser: BrowserToolConfig = Field(default_factory=BrowserToolConfig)
    external_api: ExternalApiConfig = Field(default_factory=ExternalApiConfig)


class LoggingConfig(BaseModel):
    """Log sink configuration."""
    level: str = "INFO"
    audit: bool = True  # emit audit-tagged records


class Config(BaseSettings):
    """Root configuration for the Enostics AI pipeline."""
    models: ModelsConfig = Field(default_factory=ModelsConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    agents: AgentsConfig = Field(default_factory=AgentsConfig)
    filters: FiltersConfig = Field(default_factory=FiltersConfig)
    summarizers: SummarizersConfig = Field(default_factory=SummarizersConfig)
    review: ReviewConfig = Field(default_factory=ReviewConfig)
    tools: ToolsConfig = Field(default_factory=ToolsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def get_local_model(self, name: str) -> LocalModelConfig | None:
        """Find a configured local model by name or backend path."""
        for model in self.models.local.models:
            if model.name == name or model.path == name:
                return model
        return None

    def enabled_cloud_providers(self) -> list[CloudProviderConfig]:
        if not self.models.cloud.enabled:
            return []
        return [p for p in self.models.cloud.providers if p.enabled]

    model_config = SettingsConfigDict(
        env_prefix="ENOSTICS_",
        env_nested_delimiter="__",
    )
