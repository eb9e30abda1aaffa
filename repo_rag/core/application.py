"""
RAG Application

Wires configuration, services and file sources together and exposes the
operations used by the command line interface.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from repo_rag.config.repositories import RepositoryConfig, load_repository_config
from repo_rag.config.settings import RAGServerConfig
from repo_rag.integrations.github_watcher import GitHubWatcher
from repo_rag.integrations.local_watcher import LocalFileWatcher
from repo_rag.integrations.webhook_handler import WebhookHandler
from repo_rag.models.knowledge import SearchResult
from repo_rag.services import AIServiceRegistry, create_ai_services_from_config
from repo_rag.services.embedding_service import EmbeddingService
from repo_rag.services.knowledge_extraction.content_chunker import ContentChunker
from repo_rag.services.knowledge_extraction.knowledge_builder import KnowledgeItemBuilder
from repo_rag.services.rag_engine import RAGEngine
from repo_rag.services.vector_store.qdrant_service import QdrantVectorService


@dataclass
class RAGSystem:
    """Initialized components of a running application"""
    rag_engine: RAGEngine
    github_watcher: GitHubWatcher
    local_watcher: LocalFileWatcher
    webhook_handler: WebhookHandler


class RAGApplication:
    """Knowledge base over GitHub and local repositories"""
    
    def __init__(self, config: RAGServerConfig, repo_config: Optional[RepositoryConfig] = None):
        """Initialize with configuration
        
        Args:
            config: Server configuration
            repo_config: Repositories to index (loaded from
                ``config.repos_config_path`` if omitted)
        """
        self.config = config
        self.repo_config = repo_config
        self.system: Optional[RAGSystem] = None
        self.ai_services: Optional[AIServiceRegistry] = None
        self.logger = logging.getLogger("repo_rag.core.application")
    
    async def initialize(self) -> RAGSystem:
        """Create and connect all components (idempotent)"""
        if self.system is not None:
            return self.system
        
        self.logger.info("Initializing RAG system...")
        
        if self.repo_config is None:
            self.repo_config = load_repository_config(self.config.repos_config_path)
        
        self.ai_services = create_ai_services_from_config(self.config)
        embedding_service = EmbeddingService.from_config(self.config)
        if embedding_service.provider == "ollama" and not embedding_service.check_ollama_available():
            self.logger.warning(f"Ollama not reachable at {self.config.ollama_url}, embedding calls will fail over to fallback vectors")
        
        vector_service = QdrantVectorService(
            url=self.config.qdrant_url,
            api_key=self.config.qdrant_api_key,
            collection_name=self.config.collection_name,
            vector_size=self.config.vector_size
        )
        
        rag_engine = RAGEngine(
            vector_service=vector_service,
            embedding_service=embedding_service,
            ai_service=self.ai_services.get_service(),
            chunker=ContentChunker(self.config.max_chunk_size)
        )
        await rag_engine.initialize()
        
        builder = KnowledgeItemBuilder()
        
        github_watcher = GitHubWatcher(
            rag_engine,
            github_token=self.config.github_token,
            webhook_secret=self.config.webhook_secret,
            builder=builder
        )
        github_watcher.add_repositories(self.repo_config.github_repositories)
        
        local_watcher = LocalFileWatcher(rag_engine, builder=builder)
        local_watcher.add_local_repositories(self.repo_config.local_repositories)
        
        webhook_handler = WebhookHandler(github_watcher, webhook_secret=self.config.webhook_secret)
        
        self.system = RAGSystem(
            rag_engine=rag_engine,
            github_watcher=github_watcher,
            local_watcher=local_watcher,
            webhook_handler=webhook_handler
        )
        
        self.logger.info("RAG system initialized")
        return self.system
    
    def _require_system(self) -> RAGSystem:
        if self.system is None:
            raise RuntimeError("System not initialized. Call initialize() first.")
        return self.system
    
    async def start_system(self) -> None:
        """Serve webhooks, run the initial sync and start the local watchers"""
        system = self._require_system()
        self.logger.info("Starting RAG system...")
        
        await system.webhook_handler.start(port=self.config.port)
        
        if self.repo_config.settings.enable_real_time_sync:
            self.logger.info("Performing initial sync...")
            await system.github_watcher.perform_initial_sync()
            await system.local_watcher.perform_initial_scan()
            await system.local_watcher.start_watching()
            self.logger.info("Initial sync completed")
        
        if self.repo_config.settings.enable_webhooks:
            await self.setup_webhooks()
        
        self.logger.info("RAG system is running")
        self.log_system_info()
    
    async def setup_webhooks(self) -> None:
        system = self._require_system()
        webhook_url = self.config.webhook_url
        self.logger.info(f"Setting up GitHub webhooks to {webhook_url}...")
        
        for repo in system.github_watcher.get_watched_repositories():
            await system.github_watcher.add_webhook_to_repository(repo, webhook_url)
    
    def log_system_info(self) -> None:
        port = self.config.port
        self.logger.info(f"Webhook server: http://localhost:{port}")
        self.logger.info(f"GitHub webhook: http://localhost:{port}/webhook/github")
        self.logger.info(f"Health check: http://localhost:{port}/health")
        self.logger.info(f"GitHub repos: {len(self.repo_config.github_repositories)}")
        self.logger.info(f"Local repos: {len(self.repo_config.local_repositories)}")
        self.logger.info(
            f"Real-time sync: {'enabled' if self.repo_config.settings.enable_real_time_sync else 'disabled'}, "
            f"webhooks: {'enabled' if self.repo_config.settings.enable_webhooks else 'disabled'}"
        )
    
    async def ask_question(self, question: str, context: Optional[str] = None) -> str:
        return await self._require_system().rag_engine.generate_response(question, context)
    
    async def search_knowledge(self, query: str, limit: int = 10) -> List[SearchResult]:
        return await self._require_system().rag_engine.search_knowledge(query, limit)
    
    async def sync(self, target: Optional[str] = None) -> None:
        """Run a one-off sync of 'github', 'local', or both"""
        system = self._require_system()
        
        if target in (None, "github"):
            await system.github_watcher.perform_initial_sync()
        if target in (None, "local"):
            await system.local_watcher.perform_initial_scan()
    
    async def get_system_stats(self) -> Dict[str, Any]:
        system = self._require_system()
        return {
            "rag": await system.rag_engine.get_stats(),
            "watchers": system.local_watcher.get_watcher_status(),
            "repositories": {
                "github": len(self.repo_config.github_repositories),
                "local": len(self.repo_config.local_repositories)
            }
        }
    
    async def shutdown(self) -> None:
        if self.system is None:
            return
        
        self.logger.info("Shutting down RAG system...")
        await self.system.local_watcher.stop_all_watchers()
        await self.system.webhook_handler.stop()
        self.logger.info("RAG system shutdown complete")
