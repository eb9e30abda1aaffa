"""
RAG Engine

Stores knowledge items as embedded chunks and answers questions by
retrieving the most similar chunks and prompting a language model.
"""

import logging
from typing import Any, Dict, List, Optional

from repo_rag.models.knowledge import KnowledgeItem, SearchResult
from repo_rag.services.embedding_service import EmbeddingService
from repo_rag.services.generation_service import AIServiceInterface
from repo_rag.services.knowledge_extraction.content_chunker import ContentChunker
from repo_rag.services.vector_store.qdrant_service import QdrantVectorService

ANSWER_PROMPT = """
You are an expert software engineer familiar with the company's codebase. 
Answer the question based on the provided code context and knowledge.

Knowledge from codebase:
{knowledge_context}

{additional_context}

Question: {question}

Provide a detailed, accurate answer based on the codebase knowledge. Include:
1. Direct answer to the question
2. Relevant code examples from the knowledge base
3. Best practices from the codebase
4. File references where applicable

Answer:"""

ERROR_RESPONSE = "Sorry, I encountered an error generating a response. Please try again."


class RAGEngine:
    """Knowledge storage and question answering over the vector store"""
    
    def __init__(
        self,
        vector_service: QdrantVectorService,
        embedding_service: EmbeddingService,
        ai_service: Optional[AIServiceInterface] = None,
        chunker: Optional[ContentChunker] = None,
        answer_context_size: int = 10
    ):
        """Initialize with required services
        
        Args:
            vector_service: Vector store holding the chunks
            embedding_service: Embedding provider for chunks and queries
            ai_service: Text generation service for answers
            chunker: Content chunker (default 1000-character chunks)
            answer_context_size: Number of chunks retrieved per question
        """
        self.vector_service = vector_service
        self.embedding_service = embedding_service
        self.ai_service = ai_service
        self.chunker = chunker or ContentChunker()
        self.answer_context_size = answer_context_size
        self.logger = logging.getLogger("repo_rag.services.rag_engine")
    
    async def initialize(self) -> None:
        created = await self.vector_service.initialize()
        if created:
            self.logger.info("Vector collection created")
        else:
            self.logger.info("Vector collection already exists")
    
    async def generate_embeddings(self, texts: List[str]) -> List[List[float]]:
        """Embed texts, substituting a fallback vector for any that fail"""
        try:
            return await self.embedding_service.get_embeddings(texts)
        except Exception as e:
            self.logger.error(f"Error generating embeddings, using fallback: {str(e)}")
            return [self.embedding_service.create_fallback_embedding(t) for t in texts]
    
    async def add_knowledge(self, item: KnowledgeItem) -> int:
        """Chunk, embed and store a knowledge item
        
        Returns:
            Number of chunks stored
        """
        chunks = self.chunker.chunk(item.content)
        embeddings = await self.generate_embeddings(chunks)
        
        base_payload = item.metadata.to_payload()
        chunk_keys = []
        payloads = []
        for index, chunk in enumerate(chunks):
            chunk_keys.append(f"{item.id}_chunk_{index}")
            payloads.append({
                **base_payload,
                "original_id": item.id,
                "chunk_index": index,
                "title": item.title,
                "total_chunks": len(chunks),
                "content": chunk
            })
        
        await self.vector_service.upsert_chunks(chunk_keys, embeddings, payloads)
        
        self.logger.info(f"Added knowledge: {item.title} ({len(chunks)} chunks)")
        return len(chunks)
    
    async def update_knowledge(self, item: KnowledgeItem) -> int:
        """Replace every stored chunk of an item with its new version"""
        await self.remove_knowledge(item.id)
        chunk_count = await self.add_knowledge(item)
        self.logger.info(f"Updated knowledge: {item.title}")
        return chunk_count
    
    async def remove_knowledge(self, knowledge_id: str) -> None:
        await self.vector_service.delete_by_filter({"original_id": knowledge_id})
        self.logger.info(f"Removed knowledge: {knowledge_id}")
    
    async def remove_repository_knowledge(self, repository: str) -> None:
        await self.vector_service.delete_by_filter({"repository": repository})
        self.logger.info(f"Removed all knowledge for repository: {repository}")
    
    async def search_knowledge(
        self,
        query: str,
        limit: int = 5,
        filter_params: Optional[Dict[str, Any]] = None
    ) -> List[SearchResult]:
        """Find the chunks most similar to a query"""
        query_embedding = (await self.generate_embeddings([query]))[0]
        
        hits = await self.vector_service.search_similar(
            query_embedding,
            filter_params=filter_params,
            limit=limit
        )
        
        results = []
        for hit in hits:
            metadata = dict(hit["payload"])
            content = metadata.pop("content", "")
            results.append(SearchResult(content=content, score=hit["score"], metadata=metadata))
        return results
    
    async def generate_response(self, question: str, context: Optional[str] = None) -> str:
        """Answer a question from retrieved knowledge
        
        Args:
            question: Natural-language question
            context: Optional additional context from the caller
            
        Returns:
            Generated answer, or an apology if generation fails
        """
        search_results = await self.search_knowledge(question, self.answer_context_size)
        
        knowledge_context = "\n\n".join(
            f"{result.metadata.get('title', '')}: {result.content}"
            for result in search_results
        )
        prompt = ANSWER_PROMPT.format(
            knowledge_context=knowledge_context,
            additional_context=f"Additional context: {context}" if context else "",
            question=question
        )
        
        if self.ai_service is None:
            self.logger.error("No AI service configured for answering questions")
            return ERROR_RESPONSE
        
        try:
            return await self.ai_service.generate_text(prompt)
        except Exception as e:
            self.logger.error(f"Error generating response: {str(e)}")
            return ERROR_RESPONSE
    
    async def get_stats(self) -> Dict[str, Any]:
        return {
            "total_chunks": await self.vector_service.count(),
            "collection_name": self.vector_service.collection_name
        }
