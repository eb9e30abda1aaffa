"""
Repository configuration

Loads the list of GitHub and local repositories to index from a JSON file:

    {
        "githubRepositories": [{"owner": "acme", "repo": "api", "branch": "main",
                                "excludePaths": ["docs/**"]}],
        "localRepositories": [{"name": "tools", "path": "../tools"}],
        "settings": {"enableRealTimeSync": true, "enableWebhooks": false}
    }
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger("repo_rag.config.repositories")


@dataclass
class GitHubRepoConfig:
    """A GitHub repository to sync"""
    owner: str
    repo: str
    branch: str = "main"
    exclude_paths: List[str] = field(default_factory=list)
    
    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GitHubRepoConfig":
        return cls(
            owner=data["owner"],
            repo=data["repo"],
            branch=data.get("branch") or "main",
            exclude_paths=list(data.get("excludePaths") or [])
        )


@dataclass
class LocalRepoConfig:
    """A directory on disk to scan and watch"""
    name: str
    path: str
    exclude_paths: List[str] = field(default_factory=list)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LocalRepoConfig":
        return cls(
            name=data["name"],
            path=data["path"],
            exclude_paths=list(data.get("excludePaths") or [])
        )


@dataclass
class RepositorySettings:
    enable_real_time_sync: bool = True
    enable_webhooks: bool = False


@dataclass
class RepositoryConfig:
    github_repositories: List[GitHubRepoConfig] = field(default_factory=list)
    local_repositories: List[LocalRepoConfig] = field(default_factory=list)
    settings: RepositorySettings = field(default_factory=RepositorySettings)
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RepositoryConfig":
        settings = data.get("settings") or {}
        return cls(
            github_repositories=[
                GitHubRepoConfig.from_dict(r) for r in data.get("githubRepositories") or []
            ],
            local_repositories=[
                LocalRepoConfig.from_dict(r) for r in data.get("localRepositories") or []
            ],
            settings=RepositorySettings(
                enable_real_time_sync=bool(settings.get("enableRealTimeSync", True)),
                enable_webhooks=bool(settings.get("enableWebhooks", False))
            )
        )


def load_repository_config(path: str) -> RepositoryConfig:
    """Load repository configuration from a JSON file
    
    Args:
        path: Path to the JSON file
        
    Returns:
        Parsed configuration (empty if the file does not exist)
        
    Raises:
        ValueError: If the file is not valid JSON or misses required keys
    """
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Repository config not found at {config_path}, no repositories configured")
        return RepositoryConfig()
    
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        config = RepositoryConfig.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError) as e:
        raise ValueError(f"Invalid repository config {config_path}: {str(e)}") from e
    
    logger.info(
        f"Loaded {len(config.github_repositories)} GitHub and "
        f"{len(config.local_repositories)} local repositories from {config_path}"
    )
    return config
