"""
Qdrant Vector Database Service for the RAG server

This module provides chunk storage and similarity search using Qdrant.
Each chunk is stored under a UUID derived from its chunk key
("<item id>_chunk_<index>"), so re-adding the same item overwrites the
same points.
"""

import logging
import uuid
from typing import Dict, List, Optional, Any

from qdrant_client import QdrantClient
from qdrant_client.http import models
from qdrant_client.http.models import Distance, VectorParams, PointStruct

CHUNK_ID_NAMESPACE = uuid.UUID("6f1c3c1e-8b8e-4c55-9a53-1f4c2b7d9e10")

INDEXED_FIELDS = ("original_id", "repository", "file_path", "language")


def chunk_point_id(chunk_key: str) -> str:
    """Map a chunk key to a stable Qdrant point id"""
    return str(uuid.uuid5(CHUNK_ID_NAMESPACE, chunk_key))


class QdrantVectorService:
    """Service for vector storage and retrieval using Qdrant"""
    
    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        collection_name: str = "company_knowledge",
        vector_size: int = 768,
        distance: str = "Cosine",
    ):
        """Initialize the Qdrant vector service
        
        Args:
            url: Qdrant server URL (None for in-memory)
            api_key: API key for Qdrant cloud
            collection_name: Name of the collection to use
            vector_size: Size of the embedding vectors
            distance: Distance metric to use ("Cosine", "Euclid", or "Dot")
        """
        self.logger = logging.getLogger("repo_rag.services.qdrant")
        self.collection_name = collection_name
        self.vector_size = vector_size
        
        distance_map = {
            "cosine": Distance.COSINE,
            "euclid": Distance.EUCLID,
            "dot": Distance.DOT,
        }
        self.distance = distance_map.get(distance.lower(), Distance.COSINE)
        
        if url:
            self.client = QdrantClient(url=url, api_key=api_key)
            self.logger.info(f"Initialized Qdrant client with remote server at {url}")
        else:
            self.client = QdrantClient(":memory:")
            self.logger.info("Initialized in-memory Qdrant client")
    
    async def initialize(self) -> bool:
        """Create the collection and its payload indices if missing"""
        if self.client.collection_exists(self.collection_name):
            self.logger.info(f"Qdrant collection '{self.collection_name}' already exists")
            return False
        
        self.logger.info(f"Creating collection '{self.collection_name}'")
        self.client.create_collection(
            collection_name=self.collection_name,
            vectors_config=VectorParams(
                size=self.vector_size,
                distance=self.distance
            )
        )
        
        for field_name in INDEXED_FIELDS:
            self.client.create_payload_index(
                collection_name=self.collection_name,
                field_name=field_name,
                field_schema=models.PayloadSchemaType.KEYWORD
            )
        return True
    
    async def upsert_chunks(
        self,
        chunk_keys: List[str],
        embeddings: List[List[float]],
        payloads: List[Dict[str, Any]]
    ) -> List[str]:
        """Store chunks with their embeddings and payloads
        
        Args:
            chunk_keys: Chunk keys, one per chunk
            embeddings: Vector embeddings, one per chunk
            payloads: Payload dictionaries, one per chunk
            
        Returns:
            Point ids, in input order
        """
        if not (len(chunk_keys) == len(embeddings) == len(payloads)):
            raise ValueError("chunk_keys, embeddings and payloads must have the same length")
        
        points = []
        for chunk_key, embedding, payload in zip(chunk_keys, embeddings, payloads):
            points.append(
                PointStruct(
                    id=chunk_point_id(chunk_key),
                    vector=embedding,
                    payload={"chunk_key": chunk_key, **payload}
                )
            )
        
        self.client.upsert(
            collection_name=self.collection_name,
            points=points
        )
        
        return [point.id for point in points]
    
    async def search_similar(
        self,
        query_embedding: List[float],
        filter_params: Optional[Dict[str, Any]] = None,
        limit: int = 5
    ) -> List[Dict[str, Any]]:
        """Search for chunks similar to the query embedding
        
        Args:
            query_embedding: Vector embedding of the query
            filter_params: Optional payload filter (repository, language, ...)
            limit: Maximum number of results to return
            
        Returns:
            Matching chunks as {"id", "score", "payload"} dictionaries
        """
        filter_condition = self._build_filter(filter_params) if filter_params else None
        
        response = self.client.query_points(
            collection_name=self.collection_name,
            query=query_embedding,
            query_filter=filter_condition,
            limit=limit,
            with_payload=True
        )
        
        return [
            {
                "id": point.id,
                "score": point.score,
                "payload": point.payload or {}
            }
            for point in response.points
        ]
    
    def _build_filter(self, filter_params: Dict[str, Any]) -> models.Filter:
        """Build a Qdrant filter from filter parameters
        
        Lists become MatchAny conditions, scalars MatchValue; all are ANDed.
        """
        conditions = []
        
        for key, value in filter_params.items():
            if isinstance(value, list):
                conditions.append(
                    models.FieldCondition(
                        key=key,
                        match=models.MatchAny(any=value)
                    )
                )
            else:
                conditions.append(
                    models.FieldCondition(
                        key=key,
                        match=models.MatchValue(value=value)
                    )
                )
        
        return models.Filter(must=conditions)
    
    async def delete_by_filter(self, filter_params: Dict[str, Any]) -> str:
        """Delete points matching the filter
        
        Returns:
            Qdrant update status
        """
        if not filter_params:
            raise ValueError("Refusing to delete with an empty filter")
        
        result = self.client.delete(
            collection_name=self.collection_name,
            points_selector=models.FilterSelector(
                filter=self._build_filter(filter_params)
            )
        )
        
        return result.status
    
    async def count(self, filter_params: Optional[Dict[str, Any]] = None) -> int:
        """Count stored points, optionally matching a filter"""
        result = self.client.count(
            collection_name=self.collection_name,
            count_filter=self._build_filter(filter_params) if filter_params else None,
            exact=True
        )
        return result.count
    
    async def clear_collection(self) -> None:
        """Drop and recreate the collection"""
        self.client.delete_collection(self.collection_name)
        await self.initialize()
