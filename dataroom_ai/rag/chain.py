"""
Retrieval-augmented answering over a tenant's financial spreadsheets.

The chain wires classification, keyword and vector retrieval, context
assembly and answer generation together. It is constructed per request with
the tenant's vector store; LLM and embedding services are shared.
"""

from __future__ import annotations

import re
import time
from collections.abc import AsyncIterator

from dataroom_ai.config import settings
from dataroom_ai.errors import RAGPipelineError
from dataroom_ai.logger import get_logger, query_preview
from dataroom_ai.rag.classification import (
    classify_query,
    detect_aggregation_needs,
    extract_keywords,
    identify_category,
)
from dataroom_ai.rag.context import (
    assemble_context,
    build_sources,
    filter_low_value_results,
    merge_unique,
    prioritize_exact_matches,
    sort_by_similarity,
    truncate_context,
)
from dataroom_ai.rag.decomposition import decompose_query
from dataroom_ai.rag.models import RAGResponse, StreamEvent
from dataroom_ai.rag.prompts import (
    FINANCIAL_ASSISTANT_SYSTEM_PROMPT,
    aggregation_prompt,
    basic_qa_prompt,
    combined_answer_prompt,
    exact_lookup_prompt,
    file_relevance_prompt,
)
from dataroom_ai.services.embedding_service import EmbeddingService
from dataroom_ai.services.llm_service import ChatMessages, LLMService
from dataroom_ai.services.vector_store import RetrievedChunk, VectorStore

logger = get_logger(__name__)

NO_FILES_ANSWER = "I might not have the files containing that information."
EMPTY_ANSWER = "I apologize, but I couldn't generate a response."
NO_CONTEXT_ANSWER = "I couldn't find any relevant information for that query in the available files."

_RELEVANCE_SCORE = re.compile(r"\d+")


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _answer_messages(prompt: str) -> ChatMessages:
    return [
        {"role": "system", "content": FINANCIAL_ASSISTANT_SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]


class RAGChain:
    """Answer questions from one tenant's indexed spreadsheets."""

    def __init__(
        self,
        llm: LLMService,
        embeddings: EmbeddingService,
        store: VectorStore,
        *,
        tenant_slug: str | None = None,
    ) -> None:
        self.llm = llm
        self.embeddings = embeddings
        self.store = store
        self.tenant_slug = tenant_slug

    def _pipeline_error(self, stage: str, exc: Exception) -> RAGPipelineError:
        logger.error("rag_pipeline_failed", stage=stage, tenant=self.tenant_slug, error=str(exc))
        return RAGPipelineError(str(exc), stage=stage)

    async def _answer(self, prompt: str) -> str:
        answer = await self.llm.complete(
            _answer_messages(prompt),
            max_tokens=settings.llm_max_output_tokens,
            temperature=0,
            scope=self.tenant_slug,
        )
        return answer or EMPTY_ANSWER

    async def _keyword_search(self, keywords: list[str]) -> list[RetrievedChunk]:
        if not keywords:
            return []
        results = await self.store.search_by_keyword(keywords, limit=settings.rag_keyword_limit)
        logger.info("rag_keyword_search", keywords=",".join(keywords), matches=len(results))
        return results

    async def _vector_search(
        self,
        embedding: list[float],
        category: str,
        file_ids: list[str] | None,
        top_k: int,
    ) -> list[RetrievedChunk]:
        if file_ids:
            return await self.store.search_by_files(embedding, file_ids, top_k=top_k)
        return await self.store.search_multi_file(embedding, category, top_k=top_k)

    async def generate_answer(self, query: str, context_chunks: list[str]) -> str:
        """Answer from plain context chunks with the basic QA prompt."""
        if not context_chunks:
            return NO_FILES_ANSWER

        context = truncate_context("\n".join(context_chunks), settings.rag_answer_context_max_chars)
        return await self._answer(basic_qa_prompt(context, query))

    async def answer_combined(self, query: str, context_parts: list[str]) -> str:
        """Answer one question from the contexts gathered for several sub-questions."""
        parts = [p for p in context_parts if p and p.strip()]
        if not parts:
            return NO_FILES_ANSWER
        return await self._answer(combined_answer_prompt(query, parts))

    async def rate_file_relevance(
        self,
        query: str,
        filename: str,
        category: str,
        description: str | None = None,
    ) -> int:
        """
        Ask the model how relevant a file is to a question, on a 0-10 scale.

        Unparseable answers and LLM failures score 0 so the file is simply
        ranked last.
        """
        try:
            answer = await self.llm.complete(
                [
                    {
                        "role": "user",
                        "content": file_relevance_prompt(query, filename, category, description),
                    }
                ],
                max_tokens=5,
                temperature=0,
                scope=self.tenant_slug,
            )
        except Exception as exc:
            logger.warning("rag_file_relevance_failed", file=filename, error=str(exc))
            return 0

        match = _RELEVANCE_SCORE.search(answer)
        if match is None:
            return 0
        return max(0, min(10, int(match.group())))

    async def process_query(
        self,
        query: str,
        file_ids: list[str] | None = None,
        top_k: int | None = None,
    ) -> RAGResponse:
        """Run the full pipeline and return the answer with its sources."""
        start = time.perf_counter()
        top_k = top_k or settings.rag_top_k
        logger.info("rag_processing_query", query=query_preview(query))

        classification = await classify_query(query, self.llm)
        logger.info(
            "rag_query_classified",
            strategy=classification.processing_strategy,
            complexity=classification.complexity,
            category=classification.category,
        )

        sub_queries = await decompose_query(query, classification.complexity, self.llm)

        extraction = extract_keywords(query)
        try:
            keyword_results = await self._keyword_search(extraction.keywords)
            embedding = await self.embeddings.get_query_embedding(query)
            results = await self._vector_search(embedding, classification.category, file_ids, top_k)
        except Exception as exc:
            raise self._pipeline_error("retrieval", exc) from exc
        logger.info("rag_vector_search", results=len(results))

        results = sort_by_similarity(prioritize_exact_matches(keyword_results, results))
        context = assemble_context(results, extraction.keywords, settings.rag_context_max_chars)

        try:
            if not context.strip():
                answer = NO_FILES_ANSWER
            elif extraction.type == "exact_lookup":
                answer = await self._answer(exact_lookup_prompt(context, query, extraction.keywords))
            else:
                answer = await self.generate_answer(query, [context])
        except Exception as exc:
            raise self._pipeline_error("answer", exc) from exc

        response = RAGResponse(
            answer=answer,
            sources=build_sources(results, settings.rag_source_preview_chars),
            category=classification.category,
            processing_time_ms=_elapsed_ms(start),
            sub_queries=sub_queries if len(sub_queries) > 1 else None,
        )
        logger.info("rag_query_processed", duration_ms=response.processing_time_ms)
        return response

    async def process_query_stream(
        self,
        query: str,
        file_ids: list[str] | None = None,
        top_k: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Same pipeline as ``process_query`` with progress events and a streamed answer."""
        start = time.perf_counter()
        top_k = top_k or settings.rag_top_k

        yield StreamEvent("status", "Analyzing query...")

        extraction = extract_keywords(query)
        category_info = await identify_category(query, self.llm)
        aggregation = detect_aggregation_needs(query)
        try:
            keyword_results = await self._keyword_search(extraction.keywords)
            embedding = await self.embeddings.get_query_embedding(query)
        except Exception as exc:
            raise self._pipeline_error("retrieval", exc) from exc

        yield StreamEvent("status", "Searching documents...")

        needs_aggregation = aggregation.needs_aggregation or category_info.requires_aggregation
        adjusted_top_k = top_k * settings.rag_aggregation_top_k_multiplier if needs_aggregation else top_k
        logger.info(
            "rag_stream_search",
            category=category_info.primary,
            top_k=adjusted_top_k,
            aggregation=needs_aggregation,
        )

        try:
            results = await self._vector_search(
                embedding, category_info.primary, file_ids, adjusted_top_k
            )
            results = filter_low_value_results(results)

            if len(results) < settings.rag_fallback_min_results and category_info.fallback:
                for fallback in category_info.fallback:
                    extra = await self.store.search_multi_file(
                        embedding, fallback, top_k=settings.rag_fallback_top_k
                    )
                    added = merge_unique(results, filter_low_value_results(extra))
                    logger.info("rag_fallback_category", category=fallback, added=len(added))
                    if len(results) >= settings.rag_fallback_target_results:
                        break
        except Exception as exc:
            raise self._pipeline_error("retrieval", exc) from exc

        results = prioritize_exact_matches(keyword_results, results)

        yield StreamEvent("status", f"Found {len(results)} relevant chunks. Generating answer...")

        results = sort_by_similarity(results)
        max_chars = (
            settings.rag_aggregation_context_max_chars
            if needs_aggregation
            else settings.rag_context_max_chars
        )
        context = assemble_context(results, extraction.keywords, max_chars)

        if not context.strip():
            yield StreamEvent("chunk", NO_CONTEXT_ANSWER)
            yield StreamEvent(
                "done",
                RAGResponse(
                    answer="",
                    sources=[],
                    category=category_info.primary,
                    processing_time_ms=_elapsed_ms(start),
                ),
            )
            return

        if extraction.type == "exact_lookup":
            prompt = exact_lookup_prompt(context, query, extraction.keywords)
        elif aggregation.needs_aggregation and aggregation.aggregation_type is not None:
            prompt = aggregation_prompt(
                context, query, aggregation.aggregation_type, aggregation.group_by_field
            )
        else:
            prompt = basic_qa_prompt(context, query)

        try:
            async for delta in self.llm.stream(
                _answer_messages(prompt),
                max_tokens=settings.llm_max_output_tokens,
                temperature=0,
            ):
                yield StreamEvent("chunk", delta)
        except Exception as exc:
            raise self._pipeline_error("answer", exc) from exc

        yield StreamEvent(
            "done",
            RAGResponse(
                answer="",
                sources=build_sources(results, settings.rag_source_preview_chars),
                category=category_info.primary,
                processing_time_ms=_elapsed_ms(start),
            ),
        )
