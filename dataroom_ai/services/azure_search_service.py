"""
Azure AI Search vector store.

Each tenant gets its own index (``<prefix>-<slug>``) holding spreadsheet row
chunks with their embeddings, so tenant isolation never depends on a filter.

Uses the async Azure Search SDK (azure.search.documents.aio) for non-blocking I/O.
"""

from __future__ import annotations

import time
from typing import Any

from azure.core.credentials import AzureKeyCredential
from azure.core.exceptions import ResourceNotFoundError
from azure.identity.aio import DefaultAzureCredential
from azure.search.documents.aio import SearchClient
from azure.search.documents.indexes.aio import SearchIndexClient
from azure.search.documents.indexes.models import (
    HnswAlgorithmConfiguration,
    SearchableField,
    SearchField,
    SearchFieldDataType,
    SearchIndex,
    SimpleField,
    VectorSearch,
    VectorSearchProfile,
)
from azure.search.documents.models import VectorizedQuery

from dataroom_ai.config import settings
from dataroom_ai.logger import get_logger
from dataroom_ai.services.vector_store import DocumentChunk, RetrievedChunk

logger = get_logger(__name__)

_SELECT_FIELDS = ["id", "file_id", "content", "source_file", "category", "chunk_index"]


def odata_quote(value: str) -> str:
    """Quote a string literal for an OData filter expression."""
    return "'" + value.replace("'", "''") + "'"


def _to_result(document: dict[str, Any], similarity: float | None = None) -> RetrievedChunk:
    return RetrievedChunk(
        id=document["id"],
        content=document.get("content") or "",
        similarity=document.get("@search.score", 0.0) if similarity is None else similarity,
        file_id=document.get("file_id"),
        source_file=document.get("source_file"),
        category=document.get("category"),
        metadata={"chunk_index": document.get("chunk_index", 0)},
    )


class AzureSearchVectorStore:
    """Vector store for one tenant backed by an Azure AI Search index."""

    # Upload batches are capped at 1000 documents by the service
    UPLOAD_BATCH_SIZE = 1000

    def __init__(self, tenant_slug: str) -> None:
        self.tenant_slug = tenant_slug
        self._index_name = settings.get_tenant_index_name(tenant_slug)
        self._index_client: SearchIndexClient | None = None
        self._search_client: SearchClient | None = None
        self._credential: DefaultAzureCredential | None = None
        self._initialized = False

    async def _initialize_client(self) -> None:
        """Initialize the Azure Search clients with managed identity or key authentication."""
        if self._initialized:
            return

        endpoint = settings.azure_search_endpoint
        if not endpoint:
            logger.warning(
                "azure_search_config_missing",
                message="Azure AI Search not configured - vector search will not be available",
            )
            return

        try:
            if settings.azure_search_key:
                credential: AzureKeyCredential | DefaultAzureCredential = AzureKeyCredential(
                    settings.azure_search_key
                )
                logger.info("azure_search_init", auth_method="key", index=self._index_name)
            else:
                self._credential = DefaultAzureCredential()
                credential = self._credential
                logger.info(
                    "azure_search_init", auth_method="managed_identity", index=self._index_name
                )

            self._index_client = SearchIndexClient(endpoint=endpoint, credential=credential)
            await self._ensure_index_exists()
            self._search_client = SearchClient(
                endpoint=endpoint,
                index_name=self._index_name,
                credential=credential,
            )
            self._initialized = True
            logger.info("azure_search_initialized", index=self._index_name)

        except Exception as error:
            # Leave the store uninitialized; queries return no results
            logger.error("azure_search_init_failed", index=self._index_name, error=str(error))

    async def _ensure_index_exists(self) -> None:
        """Create the tenant index with a vector profile if it does not exist yet."""
        if not self._index_client:
            return

        try:
            await self._index_client.get_index(self._index_name)
            logger.info("azure_search_index_exists", index=self._index_name)
            return
        except ResourceNotFoundError:
            pass

        fields = [
            SimpleField(
                name="id", type=SearchFieldDataType.String, key=True, filterable=True, sortable=True
            ),
            SimpleField(
                name="file_id", type=SearchFieldDataType.String, filterable=True, sortable=True
            ),
            SearchableField(name="content", type=SearchFieldDataType.String, searchable=True),
            SimpleField(name="source_file", type=SearchFieldDataType.String, filterable=True),
            SimpleField(
                name="category", type=SearchFieldDataType.String, filterable=True, facetable=True
            ),
            SimpleField(
                name="chunk_index", type=SearchFieldDataType.Int32, filterable=True, sortable=True
            ),
            SimpleField(
                name="created_at",
                type=SearchFieldDataType.DateTimeOffset,
                filterable=True,
                sortable=True,
            ),
            SearchField(
                name="embedding",
                type=SearchFieldDataType.Collection(SearchFieldDataType.Single),
                searchable=True,
                vector_search_dimensions=settings.embedding_dimensions,
                vector_search_profile_name="vector-profile",
            ),
        ]

        vector_search = VectorSearch(
            algorithms=[HnswAlgorithmConfiguration(name="hnsw-config")],
            profiles=[
                VectorSearchProfile(
                    name="vector-profile",
                    algorithm_configuration_name="hnsw-config",
                ),
            ],
        )

        await self._index_client.create_index(
            SearchIndex(name=self._index_name, fields=fields, vector_search=vector_search)
        )
        logger.info("azure_search_index_created", index=self._index_name)

    async def _ensure_initialized(self) -> bool:
        if not self._initialized:
            await self._initialize_client()
        return self._initialized

    async def add_chunks(self, chunks: list[DocumentChunk]) -> int:
        """Upload chunks in batches; returns how many the service accepted."""
        if not chunks or not await self._ensure_initialized():
            return 0

        documents = [
            {
                "id": chunk.id,
                "file_id": chunk.file_id,
                "content": chunk.content,
                "source_file": chunk.source_file or "",
                "category": chunk.category or "",
                "chunk_index": chunk.chunk_index,
                "created_at": chunk.created_at.isoformat(),
                "embedding": chunk.embedding,
            }
            for chunk in chunks
        ]

        success_count = 0
        for i in range(0, len(documents), self.UPLOAD_BATCH_SIZE):
            batch = documents[i : i + self.UPLOAD_BATCH_SIZE]
            result = await self._search_client.upload_documents(documents=batch)
            success_count += sum(1 for r in result if r.succeeded)

        logger.info(
            "bulk_chunks_stored",
            index=self._index_name,
            total_chunks=len(chunks),
            succeeded=success_count,
        )
        return success_count

    async def _file_chunk_ids(self, file_id: str) -> list[str]:
        """Page through every chunk id of a file before anything is deleted."""
        ids: list[str] = []
        while True:
            results = await self._search_client.search(
                search_text="*",
                filter=f"file_id eq {odata_quote(file_id)}",
                select=["id"],
                order_by=["id"],
                top=self.UPLOAD_BATCH_SIZE,
                skip=len(ids),
            )
            page = [result["id"] async for result in results]
            ids.extend(page)
            if len(page) < self.UPLOAD_BATCH_SIZE:
                return ids

    async def delete_file(self, file_id: str) -> int:
        """Delete every chunk of a file; returns how many deletes succeeded."""
        if not await self._ensure_initialized():
            return 0

        chunk_ids = await self._file_chunk_ids(file_id)
        deleted = 0
        for i in range(0, len(chunk_ids), self.UPLOAD_BATCH_SIZE):
            batch = chunk_ids[i : i + self.UPLOAD_BATCH_SIZE]
            delete_result = await self._search_client.delete_documents(
                documents=[{"id": chunk_id} for chunk_id in batch]
            )
            deleted += sum(1 for r in delete_result if r.succeeded)

        logger.info("file_chunks_deleted", index=self._index_name, file_id=file_id, count=deleted)
        return deleted

    async def count(self) -> int:
        if not await self._ensure_initialized():
            return 0
        return await self._search_client.get_document_count()

    async def _vector_query(
        self,
        embedding: list[float],
        *,
        top_k: int,
        filter_expression: str | None,
    ) -> list[RetrievedChunk]:
        if top_k <= 0:
            return []

        start_time = time.perf_counter()
        results = await self._search_client.search(
            search_text=None,
            vector_queries=[
                VectorizedQuery(vector=embedding, k_nearest_neighbors=top_k, fields="embedding")
            ],
            filter=filter_expression,
            top=top_k,
            select=_SELECT_FIELDS,
        )
        items = [_to_result(result) async for result in results]

        logger.debug(
            "vector_search_completed",
            index=self._index_name,
            results=len(items),
            top_k=top_k,
            query_time_ms=f"{(time.perf_counter() - start_time) * 1000:.2f}",
        )
        return items

    async def search_multi_file(
        self, embedding: list[float], category: str | None, *, top_k: int
    ) -> list[RetrievedChunk]:
        if not await self._ensure_initialized():
            logger.warning("azure_search_not_initialized", index=self._index_name)
            return []

        if not category:
            return await self._vector_query(embedding, top_k=top_k, filter_expression=None)

        results = await self._vector_query(
            embedding, top_k=top_k, filter_expression=f"category eq {odata_quote(category)}"
        )
        if len(results) < top_k:
            results.extend(
                await self._vector_query(
                    embedding,
                    top_k=top_k - len(results),
                    filter_expression=f"category ne {odata_quote(category)}",
                )
            )
        return results

    async def search_by_files(
        self, embedding: list[float], file_ids: list[str], *, top_k: int
    ) -> list[RetrievedChunk]:
        if not file_ids or not await self._ensure_initialized():
            return []
        joined = ",".join(f.replace("'", "''") for f in file_ids)
        return await self._vector_query(
            embedding,
            top_k=top_k,
            filter_expression=f"search.in(file_id, '{joined}', ',')",
        )

    async def search_by_keyword(self, keywords: list[str], *, limit: int) -> list[RetrievedChunk]:
        needles = [k for k in keywords if k]
        if not needles or limit <= 0 or not await self._ensure_initialized():
            return []

        # Full-text narrows candidates; the substring check keeps only exact identifiers.
        search_text = " | ".join(f'"{k}"' for k in needles)
        results = await self._search_client.search(
            search_text=search_text,
            query_type="simple",
            search_fields=["content"],
            select=_SELECT_FIELDS,
            top=limit * 4,
        )

        upper = [k.upper() for k in needles]
        matches: list[RetrievedChunk] = []
        async for result in results:
            content = (result.get("content") or "").upper()
            if any(k in content for k in upper):
                matches.append(_to_result(result, similarity=1.0))
                if len(matches) >= limit:
                    break
        return matches

    async def dispose(self) -> None:
        """Dispose of the Azure Search clients."""
        if self._search_client:
            await self._search_client.close()
        if self._index_client:
            await self._index_client.close()
        if self._credential:
            await self._credential.close()
        self._index_client = None
        self._search_client = None
        self._credential = None
        self._initialized = False
        logger.info("azure_search_disposed", index=self._index_name)
