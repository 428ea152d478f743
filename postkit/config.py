from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any
import json
import os
import re

import yaml


@dataclass(frozen=True)
class ContentConfig:
    content_dir: str = "_posts"
    file_extensions: list[str] = field(default_factory=lambda: [".md", ".markdown"])


@dataclass(frozen=True)
class FrontMatterConfig:
    delimiter: str = "---"
    required_fields: list[str] = field(default_factory=lambda: ["title", "date"])


@dataclass(frozen=True)
class PermalinkConfig:
    default_category: str = "uncategorized"
    slug_max_length: int = 80


@dataclass(frozen=True)
class CategoriesConfig:
    # "insertion" keeps front-matter order, "alphabetical" sorts case-insensitively
    order: str = "insertion"


@dataclass(frozen=True)
class StorageConfig:
    documents_path: str = "_index/documents.jsonl"
    manifest_path: str = "_index/manifest.json"


@dataclass(frozen=True)
class PipelineConfig:
    workers: int = 4
    show_progress: bool = True


@dataclass(frozen=True)
class APIConfig:
    host: str = "127.0.0.1"
    port: int = 8000
    cors_origins: list[str] = field(default_factory=lambda: ["*"])


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    content: ContentConfig = field(default_factory=ContentConfig)
    front_matter: FrontMatterConfig = field(default_factory=FrontMatterConfig)
    permalink: PermalinkConfig = field(default_factory=PermalinkConfig)
    categories: CategoriesConfig = field(default_factory=CategoriesConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    api: APIConfig = field(default_factory=APIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


CATEGORY_ORDERS = ("insertion", "alphabetical")

_ENV_PATTERN = re.compile(r"\$\{([^:}]+):-?([^}]*)\}")


def _expand_env_var(value: str) -> str:
    """Expand environment variables in the form ${VAR:-default}."""

    def replace_env(match):
        return os.environ.get(match.group(1), match.group(2))

    return _ENV_PATTERN.sub(replace_env, value)


def _expand_env(value):
    """Recursively expand env vars in strings inside dicts/lists."""
    if isinstance(value, str):
        return _expand_env_var(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


def _coalesce(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _coalesce(merged[key], value)
        else:
            merged[key] = value
    return merged


def _from_dict(data: dict[str, Any]) -> AppConfig:
    config = AppConfig(
        content=ContentConfig(**data.get("content", {})),
        front_matter=FrontMatterConfig(**data.get("front_matter", {})),
        permalink=PermalinkConfig(**data.get("permalink", {})),
        categories=CategoriesConfig(**data.get("categories", {})),
        storage=StorageConfig(**data.get("storage", {})),
        pipeline=PipelineConfig(**data.get("pipeline", {})),
        api=APIConfig(**data.get("api", {})),
        logging=LoggingConfig(**data.get("logging", {})),
    )
    _validate(config)
    return config


def _validate(config: AppConfig) -> None:
    if config.categories.order not in CATEGORY_ORDERS:
        raise ValueError(
            f"Invalid categories.order '{config.categories.order}'. Must be one of: {CATEGORY_ORDERS}"
        )
    if not config.front_matter.delimiter.strip():
        raise ValueError("front_matter.delimiter must not be empty")
    if int(config.pipeline.workers) < 1:
        raise ValueError("pipeline.workers must be at least 1")
    if int(config.permalink.slug_max_length) < 1:
        raise ValueError("permalink.slug_max_length must be at least 1")


def config_from_dict(data: dict[str, Any]) -> AppConfig:
    """Create config from a (possibly partial) dictionary, filling defaults."""
    merged = _coalesce(asdict(AppConfig()), _expand_env(data or {}))
    return _from_dict(merged)


def load_config(path: str | Path | None) -> AppConfig:
    if path is None:
        return AppConfig()

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config not found: {path}")

    raw = path.read_text(encoding="utf-8")
    if path.suffix.lower() in {".json"}:
        data = json.loads(raw)
    else:
        data = yaml.safe_load(raw) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config root must be a mapping: {path}")

    return config_from_dict(data)


def load_env_config() -> AppConfig:
    """Load the file named by POSTKIT_CONFIG, or defaults when unset."""
    return load_config(os.getenv("POSTKIT_CONFIG") or None)

