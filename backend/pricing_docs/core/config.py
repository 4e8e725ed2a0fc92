"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "PDOCS_"
DEFAULT_CONFIG_PATH = Path("~/.config/pricing-docs/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("storage", "upload_root"): "upload_root",
    ("embeddings", "backend"): "embedding_backend",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "dim"): "embedding_dim",
    ("embeddings", "api_key"): "openai_api_key",
    ("embeddings", "base_url"): "openai_base_url",
    ("embeddings", "timeout_s"): "embedding_timeout_s",
    ("chunking", "size"): "chunk_size",
    ("chunking", "overlap"): "chunk_overlap",
    ("ingest", "batch_size"): "batch_size",
    ("ingest", "batch_pause_s"): "batch_pause_s",
    ("search", "top_k"): "search_top_k",
    ("search", "min_similarity"): "search_min_similarity",
    ("search", "preview_chars"): "preview_chars",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".pricing-docs" / "docs.db")
    upload_root: Path = Field(default=Path("./uploads"))
    embedding_backend: Literal["openai", "hashed"] = "openai"
    embedding_model: str = "text-embedding-3-large"
    embedding_dim: int = Field(default=384, gt=0)
    openai_api_key: str | None = None
    openai_base_url: str | None = None
    embedding_timeout_s: float = Field(default=30.0, gt=0)
    chunk_size: int = 1000
    chunk_overlap: int = 150
    batch_size: int = Field(default=5, ge=1)
    batch_pause_s: float = Field(default=1.0, ge=0)
    search_top_k: int = Field(default=5, ge=1, le=50)
    search_min_similarity: float = Field(default=0.3, ge=-1.0, le=1.0)
    preview_chars: int = Field(default=200, ge=1)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", "upload_root", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("path settings must be a path or string")

    @field_validator("openai_api_key", "openai_base_url", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _check_overlap(self) -> "Settings":
        if self.chunk_size <= 0:
            raise ValueError("chunk_size must be positive")
        if not 0 <= self.chunk_overlap < self.chunk_size:
            raise ValueError("chunk_overlap must be >= 0 and smaller than chunk_size")
        return self

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map PDOCS_* environment variables into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    if "openai_api_key" not in overrides and os.environ.get("OPENAI_API_KEY"):
        overrides["openai_api_key"] = os.environ["OPENAI_API_KEY"]
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
