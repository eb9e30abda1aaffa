"""
GitHub Watcher

Syncs GitHub repositories into the knowledge base through the GitHub REST
API and applies push and repository webhook events incrementally.
"""

import base64
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import aiohttp

from repo_rag.config.repositories import GitHubRepoConfig
from repo_rag.models.knowledge import FileInfo
from repo_rag.services.knowledge_extraction.knowledge_builder import (
    KnowledgeItemBuilder,
    generate_knowledge_id,
)
from repo_rag.services.rag_engine import RAGEngine

GITHUB_API_URL = "https://api.github.com"


def should_exclude_file(file_path: str, exclude_paths: Optional[List[str]]) -> bool:
    """Apply a repository's exclude paths
    
    ``prefix/**`` excludes everything under prefix; any other entry
    excludes paths containing it.
    """
    if not exclude_paths:
        return False
    
    for exclude_path in exclude_paths:
        if exclude_path.endswith('/**'):
            if file_path.startswith(exclude_path[:-3]):
                return True
        elif exclude_path in file_path:
            return True
    return False


class GitHubWatcher:
    """Keeps the knowledge base in sync with GitHub repositories"""
    
    def __init__(
        self,
        rag_engine: RAGEngine,
        github_token: Optional[str] = None,
        webhook_secret: str = "",
        builder: Optional[KnowledgeItemBuilder] = None,
        api_url: str = GITHUB_API_URL
    ):
        """Initialize the watcher
        
        Args:
            rag_engine: Engine that stores extracted knowledge
            github_token: Token for the GitHub API
            webhook_secret: Secret configured on created webhooks
            builder: Knowledge item builder
            api_url: GitHub API base URL
        """
        self.rag_engine = rag_engine
        self.github_token = github_token
        self.webhook_secret = webhook_secret
        self.builder = builder or KnowledgeItemBuilder()
        self.api_url = api_url.rstrip("/")
        self.repos: List[GitHubRepoConfig] = []
        self.logger = logging.getLogger("repo_rag.integrations.github_watcher")
    
    def add_repositories(self, repos: List[GitHubRepoConfig]) -> None:
        self.repos.extend(repos)
        self.logger.info(f"Added {len(repos)} repositories to watch")
    
    def get_watched_repositories(self) -> List[GitHubRepoConfig]:
        return list(self.repos)
    
    def find_repository(self, full_name: str) -> Optional[GitHubRepoConfig]:
        for repo in self.repos:
            if repo.full_name == full_name:
                return repo
        return None
    
    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Call the GitHub API and return the decoded JSON body
        
        Raises:
            ValueError: If the API returns an error status
        """
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28"
        }
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        
        async with aiohttp.ClientSession() as session:
            async with session.request(
                method, f"{self.api_url}{path}", headers=headers, **kwargs
            ) as response:
                if response.status >= 400:
                    error_text = await response.text()
                    raise ValueError(f"GitHub API error ({response.status}): {error_text}")
                if response.status == 204:
                    return None
                return await response.json()
    
    async def perform_initial_sync(self) -> None:
        self.logger.info("Starting initial sync of repositories...")
        
        for repo in self.repos:
            await self.sync_repository(repo)
        
        self.logger.info("Initial sync completed")
    
    async def sync_repository(self, repo: GitHubRepoConfig) -> int:
        """Index every eligible file of a repository branch
        
        Returns:
            Number of files added to the knowledge base
        """
        self.logger.info(f"Syncing {repo.full_name}...")
        
        try:
            tree = await self._request(
                "GET",
                f"/repos/{repo.owner}/{repo.repo}/git/trees/{repo.branch}",
                params={"recursive": "1"}
            )
        except (ValueError, aiohttp.ClientError) as e:
            self.logger.error(f"Error syncing repository {repo.full_name}: {str(e)}")
            return 0
        
        processed_files = 0
        
        for entry in tree.get("tree", []):
            file_path = entry.get("path")
            if entry.get("type") != "blob" or not file_path:
                continue
            
            if should_exclude_file(file_path, repo.exclude_paths):
                continue
            
            if not self.builder.should_process_file(file_path):
                continue
            
            try:
                content = await self.fetch_file_content(repo.owner, repo.repo, file_path, repo.branch)
                if content is None:
                    continue
                
                knowledge = self.builder.build(FileInfo(
                    repository=repo.full_name,
                    file_path=file_path,
                    content=content,
                    last_modified=datetime.now(timezone.utc)
                ))
                
                if knowledge:
                    await self.rag_engine.add_knowledge(knowledge)
                    processed_files += 1
            except Exception as e:
                self.logger.error(f"Error processing file {file_path}: {str(e)}")
        
        self.logger.info(f"Synced {repo.full_name} - {processed_files} files processed")
        return processed_files
    
    async def fetch_file_content(
        self,
        owner: str,
        repo: str,
        path: str,
        ref: Optional[str] = None
    ) -> Optional[str]:
        """Fetch and decode a file's text content
        
        Returns:
            File text, or None if the path is not a decodable file
        """
        params = {"ref": ref} if ref else None
        try:
            data = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}", params=params)
        except (ValueError, aiohttp.ClientError) as e:
            self.logger.error(f"Error fetching content for {path}: {str(e)}")
            return None
        
        if not isinstance(data, dict) or "content" not in data:
            return None
        
        try:
            return base64.b64decode(data["content"]).decode("utf-8")
        except (ValueError, UnicodeDecodeError):
            self.logger.warning(f"Skipping non-text file {path}")
            return None
    
    async def handle_webhook_event(self, payload: Dict[str, Any]) -> None:
        """Dispatch a webhook payload (ping, repository or push)"""
        if payload.get("zen"):
            self.logger.info("GitHub webhook ping received")
            return
        
        if payload.get("action") and payload.get("repository"):
            await self.process_repository_event(payload)
        elif payload.get("commits") is not None and payload.get("repository"):
            await self.process_push_event(payload)
    
    async def process_repository_event(self, payload: Dict[str, Any]) -> None:
        repo_full_name = payload["repository"]["full_name"]
        action = payload["action"]
        self.logger.info(f"Repository event: {action} for {repo_full_name}")
        
        if action == "deleted":
            await self.rag_engine.remove_repository_knowledge(repo_full_name)
        elif action == "created":
            owner, repo = repo_full_name.split("/", 1)
            branch = payload["repository"].get("default_branch") or "main"
            await self.sync_repository(GitHubRepoConfig(owner=owner, repo=repo, branch=branch))
    
    async def process_push_event(self, payload: Dict[str, Any]) -> None:
        repo_full_name = payload["repository"]["full_name"]
        commits = payload.get("commits") or []
        self.logger.info(f"Push event for {repo_full_name} - {len(commits)} commits")
        
        for commit in commits:
            for file_path in commit.get("added") or []:
                await self.process_file_change("added", repo_full_name, file_path)
            
            for file_path in commit.get("modified") or []:
                await self.process_file_change("modified", repo_full_name, file_path)
            
            for file_path in commit.get("removed") or []:
                await self.process_file_change("removed", repo_full_name, file_path)
    
    async def process_file_change(self, action: str, repo_full_name: str, file_path: str) -> None:
        """Apply one file change from a push to the knowledge base
        
        Files of unwatched repositories and ineligible paths are ignored.
        """
        repo_config = self.find_repository(repo_full_name)
        if not repo_config:
            return
        
        if should_exclude_file(file_path, repo_config.exclude_paths):
            return
        
        if not self.builder.should_process_file(file_path):
            return
        
        self.logger.info(f"Processing {action} file: {file_path}")
        
        try:
            if action == "removed":
                await self.rag_engine.remove_knowledge(generate_knowledge_id(repo_full_name, file_path))
                return
            
            content = await self.fetch_file_content(
                repo_config.owner, repo_config.repo, file_path, repo_config.branch
            )
            if content is None:
                return
            
            knowledge = self.builder.build(FileInfo(
                repository=repo_full_name,
                file_path=file_path,
                content=content,
                last_modified=datetime.now(timezone.utc)
            ))
            
            if knowledge:
                if action == "modified":
                    await self.rag_engine.update_knowledge(knowledge)
                else:
                    await self.rag_engine.add_knowledge(knowledge)
        except Exception as e:
            self.logger.error(f"Error processing {action} file {file_path}: {str(e)}")
    
    async def add_webhook_to_repository(self, repo: GitHubRepoConfig, webhook_url: str) -> Optional[Dict[str, Any]]:
        """Create a push/repository webhook pointing at this server"""
        try:
            hook = await self._request(
                "POST",
                f"/repos/{repo.owner}/{repo.repo}/hooks",
                json={
                    "name": "web",
                    "active": True,
                    "events": ["push", "repository"],
                    "config": {
                        "url": webhook_url,
                        "content_type": "json",
                        "secret": self.webhook_secret
                    }
                }
            )
        except (ValueError, aiohttp.ClientError) as e:
            self.logger.error(f"Error adding webhook to {repo.full_name}: {str(e)}")
            return None
        
        self.logger.info(f"Webhook added to {repo.full_name}")
        return hook
    
    async def list_webhooks(self, repo: GitHubRepoConfig) -> List[Dict[str, Any]]:
        try:
            return await self._request("GET", f"/repos/{repo.owner}/{repo.repo}/hooks")
        except (ValueError, aiohttp.ClientError) as e:
            self.logger.error(f"Error listing webhooks for {repo.full_name}: {str(e)}")
            return []
    
    async def remove_webhook(self, repo: GitHubRepoConfig, webhook_id: int) -> bool:
        try:
            await self._request("DELETE", f"/repos/{repo.owner}/{repo.repo}/hooks/{webhook_id}")
        except (ValueError, aiohttp.ClientError) as e:
            self.logger.error(f"Error removing webhook from {repo.full_name}: {str(e)}")
            return False
        
        self.logger.info(f"Webhook {webhook_id} removed from {repo.full_name}")
        return True
    
    async def get_repository_info(self, repo: GitHubRepoConfig) -> Optional[Dict[str, Any]]:
        try:
            data = await self._request("GET", f"/repos/{repo.owner}/{repo.repo}")
        except (ValueError, aiohttp.ClientError) as e:
            self.logger.error(f"Error getting repository info for {repo.full_name}: {str(e)}")
            return None
        
        return {
            "name": data.get("name"),
            "full_name": data.get("full_name"),
            "description": data.get("description"),
            "language": data.get("language"),
            "size": data.get("size"),
            "stargazers_count": data.get("stargazers_count"),
            "forks_count": data.get("forks_count"),
            "open_issues_count": data.get("open_issues_count"),
            "default_branch": data.get("default_branch"),
            "updated_at": data.get("updated_at")
        }
    
    async def search_organization_repositories(self, org: str) -> List[GitHubRepoConfig]:
        """List an organization's repositories as sync configurations"""
        try:
            data = await self._request("GET", f"/orgs/{org}/repos", params={"per_page": "100"})
        except (ValueError, aiohttp.ClientError) as e:
            self.logger.error(f"Error searching repositories for organization {org}: {str(e)}")
            return []
        
        return [
            GitHubRepoConfig(
                owner=repo["owner"]["login"],
                repo=repo["name"],
                branch=repo.get("default_branch") or "main"
            )
            for repo in data
        ]
