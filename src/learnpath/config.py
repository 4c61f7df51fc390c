"""Application configuration loaded from config.yaml."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


@dataclass(frozen=True)
class LLMConfig:
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 8192
    temperature: float = 0.2
    max_retries: int = 3
    expansion_timeout: float = 60.0
    competency_timeout: float = 60.0
    path_timeout: float = 90.0


@dataclass(frozen=True)
class TaxonomyConfig:
    base_url: str = "http://localhost:8081"
    token_env: str = "LEARNPATH_TAXONOMY_TOKEN"
    timeout: float = 30.0
    max_retries: int = 3
    include_expansions: bool = True

    @property
    def token(self) -> str | None:
        return os.environ.get(self.token_env)


@dataclass(frozen=True)
class PipelineConfig:
    max_validation_attempts: int = 3
    max_concurrent_jobs: int = 4


@dataclass(frozen=True)
class StorageConfig:
    db_path: str = "~/.learnpath/learnpath.db"

    @property
    def resolved_db_path(self) -> Path:
        return Path(self.db_path).expanduser()


@dataclass(frozen=True)
class PromptsConfig:
    directory: str | None = None

    @property
    def resolved_directory(self) -> Path:
        # LEARNPATH_PROMPTS_DIR wins over the config file
        env_dir = os.environ.get("LEARNPATH_PROMPTS_DIR")
        if env_dir:
            return Path(env_dir).expanduser()
        if self.directory:
            return Path(self.directory).expanduser()
        return PROJECT_ROOT / "prompts"


@dataclass(frozen=True)
class AppConfig:
    llm: LLMConfig = field(default_factory=LLMConfig)
    taxonomy: TaxonomyConfig = field(default_factory=TaxonomyConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)


def load_config(path: str | Path | None = None) -> AppConfig:
    """Load config from YAML file, falling back to defaults."""
    if path is None:
        candidates = [
            Path.cwd() / "config.yaml",
            PROJECT_ROOT / "config.yaml",
        ]
        for c in candidates:
            if c.exists():
                path = c
                break

    raw: dict = {}
    if path is not None:
        p = Path(path)
        if p.exists():
            raw = yaml.safe_load(p.read_text()) or {}

    return AppConfig(
        llm=LLMConfig(**raw.get("llm", {})),
        taxonomy=TaxonomyConfig(**raw.get("taxonomy", {})),
        pipeline=PipelineConfig(**raw.get("pipeline", {})),
        storage=StorageConfig(**raw.get("storage", {})),
        prompts=PromptsConfig(**raw.get("prompts", {})),
    )
