"""Services module."""

from dataroom_ai.services.embedding_service import EmbeddingService, get_embedding_service
from dataroom_ai.services.llm_service import LLMService, get_llm_service
from dataroom_ai.services.vector_store import (
    DocumentChunk,
    InMemoryVectorStore,
    RetrievedChunk,
    VectorStore,
    get_vector_store,
)

__all__ = [
    "DocumentChunk",
    "EmbeddingService",
    "get_embedding_service",
    "InMemoryVectorStore",
    "LLMService",
    "get_llm_service",
    "RetrievedChunk",
    "VectorStore",
    "get_vector_store",
]
