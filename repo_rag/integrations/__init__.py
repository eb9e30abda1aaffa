"""File sources and delivery endpoints feeding the knowledge base."""

from .github_watcher import GitHubWatcher
from .local_watcher import LocalFileWatcher, RepositoryNotFoundError
from .webhook_handler import WebhookHandler

__all__ = [
    "GitHubWatcher",
    "LocalFileWatcher",
    "RepositoryNotFoundError",
    "WebhookHandler",
]
