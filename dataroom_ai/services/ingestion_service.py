"""
Spreadsheet ingestion into a tenant's vector store.

Each extracted row record is embedded and stored as its own chunk, tagged
with the file id, source filename and financial category so retrieval can
prioritise by category and restrict by file.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import PurePath
from uuid import uuid4

from dataroom_ai.config import settings
from dataroom_ai.errors import UnsupportedFileTypeError
from dataroom_ai.file_processing import (
    extract_text_from_csv,
    extract_text_from_excel,
    get_excel_content_preview,
)
from dataroom_ai.logger import get_logger
from dataroom_ai.rag.categories import DEFAULT_CATEGORY, is_known_category
from dataroom_ai.rag.prompts import file_description_prompt
from dataroom_ai.services.embedding_service import EmbeddingService, get_embedding_service
from dataroom_ai.services.llm_service import LLMService, get_llm_service
from dataroom_ai.services.vector_store import DocumentChunk, VectorStore, get_vector_store

logger = get_logger(__name__)

EXCEL_EXTENSIONS = frozenset({".xlsx", ".xlsm"})
CSV_EXTENSIONS = frozenset({".csv"})
SUPPORTED_EXTENSIONS = EXCEL_EXTENSIONS | CSV_EXTENSIONS

DESCRIPTION_SAMPLE_RECORDS = 5


@dataclass
class IngestionResult:
    file_id: str
    filename: str
    category: str
    chunks: int
    description: str | None = None


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower()


def is_supported_file(filename: str) -> bool:
    return file_extension(filename) in SUPPORTED_EXTENSIONS


def extract_records(filename: str, data: bytes) -> list[str]:
    """Pick the extractor for the file's extension."""
    extension = file_extension(filename)
    if extension in EXCEL_EXTENSIONS:
        return extract_text_from_excel(
            data, max_rows_per_sheet=settings.spreadsheet_max_rows_per_sheet
        )
    if extension in CSV_EXTENSIONS:
        return extract_text_from_csv(data)
    raise UnsupportedFileTypeError(filename)


def _description_sample(filename: str, data: bytes, records: list[str]) -> str:
    if file_extension(filename) in EXCEL_EXTENSIONS:
        preview = get_excel_content_preview(data)
        if preview:
            return "\n".join(
                json.dumps(
                    {
                        "sheet": info.name,
                        "rows": info.row_count,
                        "columns": info.columns,
                        "sample": info.sample_row,
                    },
                    default=str,
                )
                for info in preview.values()
            )
    return "\n".join(records[:DESCRIPTION_SAMPLE_RECORDS])


class IngestionService:
    """Extract, embed and store uploaded spreadsheets."""

    def __init__(
        self,
        embeddings: EmbeddingService | None = None,
        llm: LLMService | None = None,
        *,
        store_factory: Callable[[str], VectorStore] = get_vector_store,
    ) -> None:
        self.embeddings = embeddings or get_embedding_service()
        self.llm = llm or get_llm_service()
        self._store_factory = store_factory

    async def describe_file(self, filename: str, data: bytes, records: list[str]) -> str | None:
        """One or two sentences on what the file holds; None when the model is unavailable."""
        try:
            sample = _description_sample(filename, data, records)
            description = await self.llm.complete(
                [{"role": "user", "content": file_description_prompt(filename, sample)}],
                max_tokens=100,
                temperature=0,
            )
        except Exception as exc:
            logger.warning("file_description_failed", file=filename, error=str(exc))
            return None
        return description or None

    async def ingest_file(
        self,
        tenant_slug: str,
        filename: str,
        data: bytes,
        category: str | None = None,
        file_id: str | None = None,
    ) -> IngestionResult:
        """
        Index one spreadsheet for a tenant.

        Args:
            tenant_slug: Tenant whose store receives the chunks
            filename: Original filename; its extension selects the extractor
            data: Raw file bytes
            category: Financial category of the file
            file_id: Optional id; generated when omitted

        Returns:
            IngestionResult with the number of chunks stored
        """
        records = extract_records(filename, data)
        file_id = file_id or uuid4().hex
        category = category or DEFAULT_CATEGORY
        if not is_known_category(category):
            logger.warning("ingest_unknown_category", category=category, file=filename)

        description = None
        if settings.ingestion_describe_files:
            description = await self.describe_file(filename, data, records)

        embeddings = await self.embeddings.embed_batch(
            records, batch_size=settings.ingestion_embed_batch_size
        )
        metadata = {"description": description} if description else {}
        chunks = [
            DocumentChunk(
                id=f"{file_id}-{index}",
                file_id=file_id,
                content=record,
                embedding=embedding,
                chunk_index=index,
                source_file=filename,
                category=category,
                metadata=dict(metadata),
            )
            for index, (record, embedding) in enumerate(zip(records, embeddings, strict=True))
        ]

        store = self._store_factory(tenant_slug)
        stored = await store.add_chunks(chunks)
        logger.info(
            "file_ingested",
            tenant=tenant_slug,
            file_id=file_id,
            file=filename,
            category=category,
            chunks=stored,
        )
        return IngestionResult(
            file_id=file_id,
            filename=filename,
            category=category,
            chunks=stored,
            description=description,
        )

    async def delete_file(self, tenant_slug: str, file_id: str) -> int:
        """Remove every chunk of a file; returns the number removed."""
        deleted = await self._store_factory(tenant_slug).delete_file(file_id)
        logger.info("file_deleted", tenant=tenant_slug, file_id=file_id, chunks=deleted)
        return deleted


_ingestion_service: IngestionService | None = None


def get_ingestion_service() -> IngestionService:
    """Get or create the global ingestion service."""
    global _ingestion_service
    if _ingestion_service is None:
        _ingestion_service = IngestionService()
    return _ingestion_service
