"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# This class uses pydantic-settings to read configuration from TWO
# sources (in priority order):
#
#   1. **Environment variables** - e.g., OPENAI_API_KEY=sk-abc123
#      (highest priority, always wins)
#   2. **.env file** - key=value lines in the project root .env file
#      (lower priority, used for local development)
#
# Field name `chunk_size` maps to env var `CHUNK_SIZE` (pydantic-settings
# uppercases and matches).  Defaults below are used when neither source
# sets a value.
#
# SECURITY: The .env file is in .gitignore and is never committed to the repo.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """textbook-rag settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Embedding ===
    # "openai" or "sentence_transformer".  The CLI factory falls back to the
    # local model when no OpenAI key is configured.
    embedding_provider: str = "openai"
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_embedding_model: str = "text-embedding-3-small"
    sentence_transformer_model: str = "all-MiniLM-L6-v2"
    # Must match the vector index; checked when the coordinator is built.
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100
    max_concurrent_requests: int = 5

    # === Vector index ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_collection: str = "textbook-embeddings"

    # === Chunking ===
    chunk_size: int = 1000
    chunk_overlap: int = 200
    min_chunk_size: int = 300
    # Word counts of the two overlap forms: inside a chapter/section, and
    # with no structural region open.
    section_overlap_words: int = 20
    overlap_words: int = 30
    lookahead_paragraphs: int = 3
    semantic_boundaries: bool = True
    mathematical_aware: bool = True
    dynamic_sizing: bool = True

    # === Structure detection ===
    structure_quality_threshold: float = 0.3
    max_chapters: int = 50

    # === Pipeline ===
    max_concurrent_processing: int = 3
    upsert_batch_size: int = 100

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_embedding_providers(self) -> list[str]:
        """Return embedding provider names usable with the current settings."""
        providers: list[str] = []
        if self.openai_api_key:
            providers.append("openai")
        providers.append("sentence_transformer")
        return providers
