"""
Embedding Service for the RAG server

This module provides embedding generation for knowledge chunks using
hosted or local embedding models.
"""

import logging
import asyncio
import hashlib
from typing import List, Optional

import aiohttp
import numpy as np
import requests

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"
OPENAI_EMBEDDINGS_URL = "https://api.openai.com/v1/embeddings"


class EmbeddingService:
    """Service for generating embeddings from text"""
    
    def __init__(
        self,
        provider: str = "gemini",
        gemini_api_key: Optional[str] = None,
        gemini_model: str = "text-embedding-004",
        openai_api_key: Optional[str] = None,
        openai_model: str = "text-embedding-3-small",
        ollama_url: str = "http://localhost:11434",
        ollama_model: str = "nomic-embed-text",
        dimension: int = 768,
        batch_size: int = 10,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        """Initialize the embedding service
        
        Args:
            provider: 'gemini', 'ollama', 'openai' or 'mock'
            gemini_api_key: Google Gemini API key
            gemini_model: Gemini embedding model
            openai_api_key: OpenAI API key
            openai_model: OpenAI embedding model
            ollama_url: URL for the Ollama API
            ollama_model: Model to use with Ollama
            dimension: Vector size, used for fallback embeddings
            batch_size: Maximum batch size for embedding requests
            max_retries: Maximum number of retries for failed requests
            retry_delay: Delay between retries in seconds
        """
        self.logger = logging.getLogger("repo_rag.services.embedding")
        self.provider = provider
        self.gemini_api_key = gemini_api_key
        self.gemini_model = gemini_model
        self.openai_api_key = openai_api_key
        self.openai_model = openai_model
        self.ollama_url = ollama_url.rstrip("/")
        self.ollama_model = ollama_model
        self.dimension = dimension
        self.batch_size = batch_size
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        
        if self.provider == "gemini" and not self.gemini_api_key:
            self.logger.warning("Gemini API key missing, using fallback embeddings")
            self.provider = "mock"
        elif self.provider == "openai" and not self.openai_api_key:
            self.logger.warning("OpenAI API key missing, using fallback embeddings")
            self.provider = "mock"
        
        self.logger.info(f"Initialized embedding service with {self.provider} provider")
    
    @classmethod
    def from_config(cls, config) -> "EmbeddingService":
        """Create an embedding service from a RAGServerConfig"""
        return cls(
            provider=config.embedding_provider,
            gemini_api_key=config.gemini_api_key,
            gemini_model=config.gemini_embedding_model,
            openai_api_key=config.openai_api_key,
            openai_model=config.openai_embedding_model,
            ollama_url=config.ollama_url,
            ollama_model=config.ollama_model,
            dimension=config.vector_size
        )
    
    def check_ollama_available(self) -> bool:
        """Check if Ollama is reachable
        
        Returns:
            True if Ollama is available, False otherwise
        """
        try:
            resp = requests.get(f"{self.ollama_url}/api/tags", timeout=2)
        except requests.RequestException as e:
            self.logger.warning(f"Ollama check failed: {str(e)}")
            return False
        
        if resp.status_code != 200:
            self.logger.warning(f"Ollama returned unexpected status: {resp.status_code}")
            return False
        return True
    
    async def get_embedding(self, text: str) -> List[float]:
        """Get embedding for a single text"""
        embeddings = await self.get_embeddings([text])
        return embeddings[0]
    
    async def get_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Get embeddings for multiple texts
        
        Args:
            texts: List of texts to embed
            
        Returns:
            List of embedding vectors, in input order
        """
        all_embeddings = []
        
        for i in range(0, len(texts), self.batch_size):
            batch = texts[i:i + self.batch_size]
            batch_embeddings = await self._get_embeddings_with_retry(batch)
            all_embeddings.extend(batch_embeddings)
        
        return all_embeddings
    
    async def _get_embeddings_with_retry(self, texts: List[str]) -> List[List[float]]:
        retries = 0
        
        while True:
            try:
                if self.provider == "gemini":
                    return await self._get_gemini_embeddings(texts)
                elif self.provider == "ollama":
                    return await self._get_ollama_embeddings(texts)
                elif self.provider == "openai":
                    return await self._get_openai_embeddings(texts)
                else:
                    return [self.create_fallback_embedding(t) for t in texts]
            
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                retries += 1
                if retries > self.max_retries:
                    self.logger.error(f"Failed to get embeddings after {self.max_retries} retries: {str(e)}")
                    raise
                
                self.logger.warning(f"Embedding request failed (attempt {retries}/{self.max_retries}): {str(e)}")
                await asyncio.sleep(self.retry_delay * retries)
    
    async def _get_gemini_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Get embeddings from the Gemini API"""
        url = f"{GEMINI_API_URL}/models/{self.gemini_model}:batchEmbedContents"
        data = {
            "requests": [
                {
                    "model": f"models/{self.gemini_model}",
                    "content": {"parts": [{"text": text}]}
                }
                for text in texts
            ]
        }
        
        async with aiohttp.ClientSession() as session:
            async with session.post(
                url,
                params={"key": self.gemini_api_key},
                json=data
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ValueError(f"Gemini API error ({response.status}): {error_text}")
                
                result = await response.json()
                return [item["values"] for item in result["embeddings"]]
    
    async def _get_ollama_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Get embeddings from the Ollama API, one request per text"""
        embeddings = []
        
        async with aiohttp.ClientSession() as session:
            for text in texts:
                payload = {
                    "model": self.ollama_model,
                    "prompt": text
                }
                
                async with session.post(
                    f"{self.ollama_url}/api/embeddings",
                    json=payload,
                    timeout=aiohttp.ClientTimeout(total=30)
                ) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ValueError(f"Ollama API error ({response.status}): {error_text}")
                    
                    result = await response.json()
                    if "embedding" not in result:
                        raise ValueError(f"No embedding found in Ollama response: {result}")
                    embeddings.append(result["embedding"])
        
        return embeddings
    
    async def _get_openai_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Get embeddings from the OpenAI API"""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.openai_api_key}"
        }
        
        data = {
            "input": texts,
            "model": self.openai_model,
            "dimensions": self.dimension,
            "encoding_format": "float"
        }
        
        async with aiohttp.ClientSession() as session:
            async with session.post(
                OPENAI_EMBEDDINGS_URL,
                headers=headers,
                json=data
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise ValueError(f"OpenAI API error ({response.status}): {error_text}")
                
                result = await response.json()
                return [item["embedding"] for item in result["data"]]
    
    def create_fallback_embedding(self, text: str, dimension: Optional[int] = None) -> List[float]:
        """Create a deterministic embedding from a hash of the text
        
        Used when no provider is configured or a provider call fails.
        Identical text always maps to the identical unit vector.
        
        Args:
            text: Text to embed
            dimension: Embedding dimension (defaults to the service dimension)
            
        Returns:
            Normalized embedding vector
        """
        dimension = dimension or self.dimension
        
        digest = hashlib.sha256(text.encode('utf-8', errors='surrogatepass')).digest()
        rng = np.random.default_rng(int.from_bytes(digest[:8], "big"))
        vector = rng.uniform(-1.0, 1.0, dimension)
        
        return (vector / np.linalg.norm(vector)).tolist()
