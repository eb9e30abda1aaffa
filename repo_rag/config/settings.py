"""
Configuration settings for the RAG server

This module manages server configuration and environment variables.
Loads configuration from .env file and environment variables.
"""

import os
import logging
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Dict, Any, List

from dotenv import load_dotenv

env_path = Path(__file__).resolve().parents[2] / '.env'
load_dotenv(dotenv_path=env_path)
logging.getLogger("repo_rag.config").debug(f"Loaded environment variables from {env_path}")


@dataclass
class RAGServerConfig:
    """Configuration for the RAG server"""
    # Server info
    name: str = "repo-rag"
    version: str = "1.0.0"
    description: str = "Retrieval-augmented answers over GitHub and local repositories"
    
    # Webhook server settings
    port: int = 3000
    webhook_base_url: Optional[str] = None
    webhook_secret: str = ""
    github_token: Optional[str] = None
    
    # Text generation
    ai_service_type: str = "gemini"  # 'gemini', 'claude', or 'mock'
    gemini_api_key: Optional[str] = None
    gemini_models: List[str] = None
    anthropic_api_key: Optional[str] = None
    claude_default_model: str = "claude-3-5-haiku-latest"
    claude_default_max_tokens: int = 4096
    claude_default_temperature: float = 0.7
    
    # Embeddings
    embedding_provider: str = "gemini"  # 'gemini', 'ollama', 'openai', or 'mock'
    gemini_embedding_model: str = "text-embedding-004"
    openai_api_key: Optional[str] = None
    openai_embedding_model: str = "text-embedding-3-small"
    ollama_url: str = "http://localhost:11434"
    ollama_model: str = "nomic-embed-text"
    
    # Vector store
    qdrant_url: Optional[str] = None
    qdrant_api_key: Optional[str] = None
    collection_name: str = "company_knowledge"
    vector_size: int = 768
    
    # Ingestion
    max_chunk_size: int = 1000
    repos_config_path: str = "config/repos.json"
    log_level: str = "INFO"
    
    def __post_init__(self):
        if self.gemini_models is None:
            self.gemini_models = [
                "gemini-2.0-flash",
                "gemini-1.5-flash",
                "gemini-1.5-pro"
            ]
    
    @property
    def webhook_url(self) -> str:
        """Public URL GitHub should deliver webhooks to"""
        base_url = self.webhook_base_url or f"http://localhost:{self.port}"
        return f"{base_url.rstrip('/')}/webhook/github"
    
    @classmethod
    def from_env(cls) -> "RAGServerConfig":
        """Create a configuration from environment variables"""
        config = cls()
        
        if os.environ.get("RAG_SERVER_NAME"):
            config.name = os.environ.get("RAG_SERVER_NAME")
        
        if os.environ.get("PORT"):
            try:
                config.port = int(os.environ.get("PORT"))
            except ValueError:
                pass
        
        config.webhook_base_url = os.environ.get("WEBHOOK_BASE_URL")
        config.webhook_secret = os.environ.get("WEBHOOK_SECRET", "")
        config.github_token = os.environ.get("GITHUB_TOKEN")
        
        # AI service type
        if os.environ.get("AI_SERVICE_TYPE"):
            config.ai_service_type = os.environ.get("AI_SERVICE_TYPE")
        
        # API keys
        config.gemini_api_key = os.environ.get("GEMINI_API_KEY")
        config.anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY")
        config.openai_api_key = os.environ.get("OPENAI_API_KEY")
        
        if os.environ.get("GEMINI_MODELS"):
            config.gemini_models = [
                m.strip() for m in os.environ.get("GEMINI_MODELS").split(",") if m.strip()
            ]
        
        if os.environ.get("CLAUDE_DEFAULT_MODEL"):
            config.claude_default_model = os.environ.get("CLAUDE_DEFAULT_MODEL")
        
        if os.environ.get("CLAUDE_DEFAULT_MAX_TOKENS"):
            try:
                config.claude_default_max_tokens = int(os.environ.get("CLAUDE_DEFAULT_MAX_TOKENS"))
            except ValueError:
                pass
        
        if os.environ.get("CLAUDE_DEFAULT_TEMPERATURE"):
            try:
                config.claude_default_temperature = float(os.environ.get("CLAUDE_DEFAULT_TEMPERATURE"))
            except ValueError:
                pass
        
        # Embedding settings
        if os.environ.get("EMBEDDING_PROVIDER"):
            config.embedding_provider = os.environ.get("EMBEDDING_PROVIDER")
        
        if os.environ.get("GEMINI_EMBEDDING_MODEL"):
            config.gemini_embedding_model = os.environ.get("GEMINI_EMBEDDING_MODEL")
        
        if os.environ.get("OPENAI_EMBEDDING_MODEL"):
            config.openai_embedding_model = os.environ.get("OPENAI_EMBEDDING_MODEL")
        
        if os.environ.get("OLLAMA_URL"):
            config.ollama_url = os.environ.get("OLLAMA_URL")
        
        if os.environ.get("OLLAMA_MODEL"):
            config.ollama_model = os.environ.get("OLLAMA_MODEL")
        
        # Vector store settings
        config.qdrant_url = os.environ.get("QDRANT_URL")
        config.qdrant_api_key = os.environ.get("QDRANT_API_KEY")
        
        if os.environ.get("QDRANT_COLLECTION"):
            config.collection_name = os.environ.get("QDRANT_COLLECTION")
        
        if os.environ.get("VECTOR_SIZE"):
            try:
                config.vector_size = int(os.environ.get("VECTOR_SIZE"))
            except ValueError:
                pass
        
        if os.environ.get("MAX_CHUNK_SIZE"):
            try:
                config.max_chunk_size = int(os.environ.get("MAX_CHUNK_SIZE"))
            except ValueError:
                pass
        
        if os.environ.get("REPOS_CONFIG"):
            config.repos_config_path = os.environ.get("REPOS_CONFIG")
        
        if os.environ.get("LOG_LEVEL"):
            config.log_level = os.environ.get("LOG_LEVEL").upper()
        
        return config
    
    @classmethod
    def from_args(cls, args: Dict[str, Any]) -> "RAGServerConfig":
        """Create a configuration from command line arguments"""
        config = cls.from_env()  # Start with environment variables
        
        # Override with command line arguments if provided
        if args.get("port"):
            config.port = args.get("port")
        
        if args.get("mock"):
            config.ai_service_type = "mock"
            config.embedding_provider = "mock"
        elif args.get("service_type"):
            config.ai_service_type = args.get("service_type")
        
        if args.get("embedding_provider"):
            config.embedding_provider = args.get("embedding_provider")
        
        if args.get("repos_config"):
            config.repos_config_path = args.get("repos_config")
        
        if args.get("qdrant_url"):
            config.qdrant_url = args.get("qdrant_url")
        
        if args.get("log_level"):
            config.log_level = args.get("log_level").upper()
        
        if args.get("verbose"):
            config.log_level = "DEBUG"
        
        return config
