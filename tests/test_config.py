"""
Tests for server settings and repository configuration.
"""
import json

import pytest

from repo_rag.config.repositories import GitHubRepoConfig, load_repository_config
from repo_rag.config.settings import RAGServerConfig

ENV_VARS = (
    "PORT", "WEBHOOK_BASE_URL", "WEBHOOK_SECRET", "GITHUB_TOKEN", "AI_SERVICE_TYPE",
    "GEMINI_API_KEY", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_MODELS",
    "EMBEDDING_PROVIDER", "QDRANT_URL", "QDRANT_COLLECTION", "VECTOR_SIZE",
    "MAX_CHUNK_SIZE", "REPOS_CONFIG", "LOG_LEVEL", "OLLAMA_URL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch


class TestRAGServerConfig:

    def test_defaults(self, clean_env):
        config = RAGServerConfig.from_env()

        assert config.port == 3000
        assert config.collection_name == "company_knowledge"
        assert config.max_chunk_size == 1000
        assert config.gemini_models[0] == "gemini-2.0-flash"
        assert config.webhook_url == "http://localhost:3000/webhook/github"

    def test_from_env(self, clean_env):
        clean_env.setenv("PORT", "8080")
        clean_env.setenv("WEBHOOK_BASE_URL", "https://rag.example.com/")
        clean_env.setenv("GEMINI_MODELS", "gemini-1.5-pro, gemini-1.5-flash")
        clean_env.setenv("QDRANT_COLLECTION", "code")
        clean_env.setenv("VECTOR_SIZE", "384")
        clean_env.setenv("LOG_LEVEL", "debug")

        config = RAGServerConfig.from_env()

        assert config.port == 8080
        assert config.webhook_url == "https://rag.example.com/webhook/github"
        assert config.gemini_models == ["gemini-1.5-pro", "gemini-1.5-flash"]
        assert config.collection_name == "code"
        assert config.vector_size == 384
        assert config.log_level == "DEBUG"

    def test_invalid_numbers_keep_defaults(self, clean_env):
        clean_env.setenv("PORT", "not-a-port")
        clean_env.setenv("MAX_CHUNK_SIZE", "big")

        config = RAGServerConfig.from_env()

        assert config.port == 3000
        assert config.max_chunk_size == 1000

    def test_from_args(self, clean_env):
        clean_env.setenv("AI_SERVICE_TYPE", "claude")

        config = RAGServerConfig.from_args({
            "port": 9000,
            "mock": True,
            "repos_config": "other.json",
            "verbose": True
        })

        assert config.port == 9000
        assert config.ai_service_type == "mock"
        assert config.embedding_provider == "mock"
        assert config.repos_config_path == "other.json"
        assert config.log_level == "DEBUG"

    def test_from_args_without_overrides(self, clean_env):
        clean_env.setenv("AI_SERVICE_TYPE", "claude")

        config = RAGServerConfig.from_args({"port": None, "mock": False, "service_type": None})

        assert config.ai_service_type == "claude"
        assert config.port == 3000


class TestRepositoryConfig:

    def test_load(self, tmp_path):
        path = tmp_path / "repos.json"
        path.write_text(json.dumps({
            "githubRepositories": [
                {"owner": "acme", "repo": "api", "excludePaths": ["docs/**"]}
            ],
            "localRepositories": [{"name": "tools", "path": "/src/tools"}],
            "settings": {"enableWebhooks": True}
        }))

        config = load_repository_config(str(path))

        assert config.github_repositories == [
            GitHubRepoConfig(owner="acme", repo="api", branch="main", exclude_paths=["docs/**"])
        ]
        assert config.github_repositories[0].full_name == "acme/api"
        assert config.local_repositories[0].name == "tools"
        assert config.local_repositories[0].exclude_paths == []
        assert config.settings.enable_real_time_sync is True
        assert config.settings.enable_webhooks is True

    def test_missing_file_is_empty(self, tmp_path):
        config = load_repository_config(str(tmp_path / "missing.json"))

        assert config.github_repositories == []
        assert config.local_repositories == []

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "repos.json"
        path.write_text("{not json")

        with pytest.raises(ValueError):
            load_repository_config(str(path))

    def test_missing_required_key(self, tmp_path):
        path = tmp_path / "repos.json"
        path.write_text(json.dumps({"githubRepositories": [{"owner": "acme"}]}))

        with pytest.raises(ValueError, match="Invalid repository config"):
            load_repository_config(str(path))
