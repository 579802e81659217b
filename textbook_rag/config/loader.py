"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY ───────────────────────────────────────────
#
# Configuration is loaded in layers (later layers override earlier):
#
#   1. Settings field defaults (config/settings.py)
#   2. config/config.yaml  - Static defaults checked into the repo
#   3. .env file           - Local developer overrides (not committed)
#   4. Environment vars    - Set by the job runner at deploy time
#
# load_config() reads the YAML file first, then deep-merges only the
# Settings values that were explicitly set (env, .env or constructor
# arguments) on top; field defaults never mask a YAML value:
#   yaml     = {"chunking": {"chunk_size": 800, "lookahead_paragraphs": 3}}
#   env      = CHUNK_SIZE=1000
#   result   = {"chunking": {"chunk_size": 1000, "lookahead_paragraphs": 3}}
#
# resolve_settings() maps the merged dict back onto a Settings copy, which
# is what the CLI wires its providers and chunker from.
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from textbook_rag.config.settings import Settings

# Settings field -> (YAML section, YAML key).
_FIELD_MAP: dict[str, tuple[str, str]] = {
    "app_env": ("app", "env"),
    "embedding_provider": ("embedding", "provider"),
    "openai_embedding_model": ("embedding", "openai_model"),
    "sentence_transformer_model": ("embedding", "sentence_transformer_model"),
    "embedding_dimensions": ("embedding", "dimensions"),
    "embedding_batch_size": ("embedding", "batch_size"),
    "max_concurrent_requests": ("embedding", "max_concurrent_requests"),
    "chromadb_persist_dir": ("vector_index", "persist_dir"),
    "chromadb_collection": ("vector_index", "collection"),
    "chunk_size": ("chunking", "chunk_size"),
    "chunk_overlap": ("chunking", "chunk_overlap"),
    "min_chunk_size": ("chunking", "min_chunk_size"),
    "section_overlap_words": ("chunking", "section_overlap_words"),
    "overlap_words": ("chunking", "overlap_words"),
    "lookahead_paragraphs": ("chunking", "lookahead_paragraphs"),
    "semantic_boundaries": ("chunking", "semantic_boundaries"),
    "mathematical_aware": ("chunking", "mathematical_aware"),
    "dynamic_sizing": ("chunking", "dynamic_sizing"),
    "structure_quality_threshold": ("structure", "quality_threshold"),
    "max_chapters": ("structure", "max_chapters"),
    "max_concurrent_processing": ("pipeline", "max_concurrent_processing"),
    "upsert_batch_size": ("pipeline", "upsert_batch_size"),
    "log_level": ("logging", "level"),
}


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge the explicitly set Settings values over it.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` is read when omitted.

    Returns:
        Fully resolved configuration dictionary.  Every mapped Settings
        field is present, falling back to the field default when neither
        YAML nor the environment sets it.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()

    defaults: dict = {}
    overrides: dict = {}
    for field, (section, key) in _FIELD_MAP.items():
        value = getattr(settings, field)
        defaults.setdefault(section, {})[key] = value
        if field in settings.model_fields_set:
            overrides.setdefault(section, {})[key] = value
    overrides.setdefault("embedding", {})["available_providers"] = (
        settings.get_available_embedding_providers()
    )

    _deep_merge(defaults, yaml_config)
    _deep_merge(defaults, overrides)
    return defaults


def resolve_settings(config: dict, settings: Settings) -> Settings:
    """Return a copy of *settings* carrying the values resolved in *config*."""
    update = {}
    for field, (section, key) in _FIELD_MAP.items():
        section_values = config.get(section)
        if isinstance(section_values, dict) and key in section_values:
            update[field] = section_values[key]
    # model_copy skips validation.
    return Settings.model_validate({**settings.model_dump(), **update})


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
