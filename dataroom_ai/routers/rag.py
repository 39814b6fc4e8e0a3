"""RAG router - question answering and file indexing for one tenant."""

import json
from typing import Annotated

from fastapi import APIRouter, Depends, Form, HTTPException, UploadFile, status
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from dataroom_ai.config import settings
from dataroom_ai.errors import RAGPipelineError, UnsupportedFileTypeError, UploadTooLargeError
from dataroom_ai.logger import get_logger, query_preview
from dataroom_ai.rag.chain import RAGChain
from dataroom_ai.services.embedding_service import get_embedding_service
from dataroom_ai.services.ingestion_service import (
    IngestionService,
    get_ingestion_service,
    is_supported_file,
)
from dataroom_ai.services.llm_service import get_llm_service
from dataroom_ai.services.vector_store import get_vector_store
from dataroom_ai.tenancy.dependencies import ActiveTenant

logger = get_logger(__name__)

router = APIRouter()


async def _read_upload_file_limited(file: UploadFile, *, max_bytes: int) -> bytes:
    """Read an UploadFile into memory with a hard maximum size."""
    if max_bytes <= 0:
        return await file.read()

    buf = bytearray()
    chunk_size = 1024 * 1024  # 1 MiB

    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > max_bytes:
            raise UploadTooLargeError(max_bytes)

    return bytes(buf)


def get_rag_chain(tenant: ActiveTenant) -> RAGChain:
    """Chain bound to the tenant's store; services are shared process-wide."""
    return RAGChain(
        get_llm_service(),
        get_embedding_service(),
        get_vector_store(tenant),
        tenant_slug=tenant,
    )


RAGChainDep = Annotated[RAGChain, Depends(get_rag_chain)]
IngestionDep = Annotated[IngestionService, Depends(get_ingestion_service)]


class QueryRequest(BaseModel):
    """Request body for a RAG question."""

    query: str = Field(..., min_length=1, max_length=10000, description="User question")
    file_ids: list[str] | None = Field(
        default=None, description="Restrict retrieval to these files"
    )
    top_k: int | None = Field(default=None, ge=1, le=100, description="Chunks to retrieve")


class SourceResponse(BaseModel):
    content: str
    similarity: float
    file_id: str | None = None
    source_file: str | None = None
    category: str | None = None


class QueryResponse(BaseModel):
    """Answer with the chunks it was grounded on."""

    answer: str
    sources: list[SourceResponse]
    category: str
    processing_time_ms: int
    sub_queries: list[str] | None = None


class UploadFileResponse(BaseModel):
    file_id: str
    filename: str
    category: str
    chunks: int
    description: str | None = None


class DeleteFileResponse(BaseModel):
    file_id: str
    chunks_deleted: int


@router.post("/rag/query", response_model=QueryResponse)
async def query(request: QueryRequest, chain: RAGChainDep) -> QueryResponse:
    """Answer a question from the tenant's indexed files."""
    logger.info("rag_query_requested", query=query_preview(request.query))
    try:
        result = await chain.process_query(
            request.query, file_ids=request.file_ids, top_k=request.top_k
        )
    except RAGPipelineError:
        raise
    except Exception as e:
        logger.error("rag_query_failed", error=str(e))
        raise RAGPipelineError(str(e), stage="query") from e
    return QueryResponse(**result.to_dict())


@router.post("/rag/stream")
async def query_stream(request: QueryRequest, chain: RAGChainDep):
    """
    Answer a question as Server-Sent Events.

    Each event is ``data: {"type": ..., "data": ...}``; the answer arrives as
    ``chunk`` events and a final ``done`` event carries the sources.
    """
    logger.info("rag_stream_requested", query=query_preview(request.query))

    async def event_generator():
        try:
            async for event in chain.process_query_stream(
                request.query, file_ids=request.file_ids, top_k=request.top_k
            ):
                yield f"data: {json.dumps(event.to_dict())}\n\n"
        except Exception as e:
            logger.error("rag_stream_failed", error=str(e))
            stage = e.stage if isinstance(e, RAGPipelineError) else "query"
            yield f"data: {json.dumps({'type': 'error', 'data': str(e), 'stage': stage})}\n\n"

    return StreamingResponse(
        event_generator(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        },
    )


@router.post(
    "/files",
    response_model=UploadFileResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload and index a spreadsheet",
)
async def upload_file(
    file: UploadFile,
    tenant: ActiveTenant,
    ingestion: IngestionDep,
    category: Annotated[str | None, Form()] = None,
) -> UploadFileResponse:
    """Index an .xlsx, .xlsm or .csv file; every row becomes a searchable chunk."""
    filename = file.filename or "unknown"
    if not is_supported_file(filename):
        raise UnsupportedFileTypeError(filename)

    logger.info("file_upload_requested", file=filename, category=category)
    data = await _read_upload_file_limited(file, max_bytes=settings.max_upload_bytes)

    try:
        result = await ingestion.ingest_file(tenant, filename, data, category)
    except HTTPException:
        raise
    except Exception as e:
        logger.error("file_upload_failed", file=filename, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Upload error: {str(e)}",
        ) from e

    return UploadFileResponse(
        file_id=result.file_id,
        filename=result.filename,
        category=result.category,
        chunks=result.chunks,
        description=result.description,
    )


@router.delete("/files/{file_id}", response_model=DeleteFileResponse)
async def delete_file(
    file_id: str,
    tenant: ActiveTenant,
    ingestion: IngestionDep,
) -> DeleteFileResponse:
    """Delete a file and all its chunks."""
    deleted = await ingestion.delete_file(tenant, file_id)
    if deleted == 0:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    return DeleteFileResponse(file_id=file_id, chunks_deleted=deleted)
