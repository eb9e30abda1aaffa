"""Configuration package exports."""

from .settings import RAGServerConfig
from .extraction import ExtractionConfig, LanguageConfig, DEFAULT_EXTRACTION_CONFIG
from .repositories import (
    GitHubRepoConfig,
    LocalRepoConfig,
    RepositoryConfig,
    RepositorySettings,
    load_repository_config,
)

__all__ = [
    "RAGServerConfig",
    "ExtractionConfig",
    "LanguageConfig",
    "DEFAULT_EXTRACTION_CONFIG",
    "GitHubRepoConfig",
    "LocalRepoConfig",
    "RepositoryConfig",
    "RepositorySettings",
    "load_repository_config",
]
