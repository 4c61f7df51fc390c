"""Tests for config loading."""

import pytest

from learnpath.config import PROJECT_ROOT, AppConfig, LLMConfig, PromptsConfig, StorageConfig, TaxonomyConfig, load_config


class TestConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.llm.model == "claude-sonnet-4-5-20250929"
        assert config.pipeline.max_validation_attempts == 3
        assert config.taxonomy.include_expansions is True

    def test_load_config_defaults(self, tmp_path):
        """Loading from non-existent path returns defaults."""
        config = load_config(tmp_path / "nonexistent.yaml")
        assert config.pipeline.max_concurrent_jobs == 4

    def test_load_config_from_yaml(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text(
            "llm:\n  path_timeout: 120\npipeline:\n  max_validation_attempts: 5\n"
            "taxonomy:\n  base_url: http://skills.internal\n"
        )
        config = load_config(yaml_path)
        assert config.llm.path_timeout == 120
        assert config.pipeline.max_validation_attempts == 5
        assert config.taxonomy.base_url == "http://skills.internal"
        # Defaults for unspecified
        assert config.llm.expansion_timeout == 60.0

    def test_empty_yaml_gives_defaults(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text("")
        assert load_config(yaml_path) == AppConfig()

    def test_storage_resolved_path(self):
        resolved = StorageConfig(db_path="~/test.db").resolved_db_path
        assert "~" not in str(resolved)

    def test_frozen_config(self):
        config = LLMConfig()
        with pytest.raises(AttributeError):
            config.model = "changed"


class TestSecretsAndPaths:
    def test_taxonomy_token_from_env(self, monkeypatch):
        monkeypatch.setenv("LEARNPATH_TAXONOMY_TOKEN", "tok")
        assert TaxonomyConfig().token == "tok"

    def test_taxonomy_token_missing(self, monkeypatch):
        monkeypatch.delenv("LEARNPATH_TAXONOMY_TOKEN", raising=False)
        assert TaxonomyConfig().token is None

    def test_prompts_directory_precedence(self, monkeypatch, tmp_path):
        monkeypatch.delenv("LEARNPATH_PROMPTS_DIR", raising=False)
        assert PromptsConfig().resolved_directory == PROJECT_ROOT / "prompts"
        assert PromptsConfig(directory=str(tmp_path)).resolved_directory == tmp_path

        monkeypatch.setenv("LEARNPATH_PROMPTS_DIR", str(tmp_path / "env"))
        assert PromptsConfig(directory=str(tmp_path)).resolved_directory == tmp_path / "env"
