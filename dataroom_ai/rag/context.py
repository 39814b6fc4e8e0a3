"""Result filtering, merging and context assembly under size budgets."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import replace

from dataroom_ai.logger import get_logger
from dataroom_ai.rag.models import Source
from dataroom_ai.services.vector_store import RetrievedChunk

logger = get_logger(__name__)

EXACT_MATCH_SIMILARITY = 0.99

_FIELD_DEFINITION = re.compile(r"field:.*type:.*description:")


def validate_context(chunks: Iterable[RetrievedChunk] | None) -> list[str]:
    """Stripped, non-empty chunk texts."""
    valid: list[str] = []
    for chunk in chunks or []:
        text = chunk.text or chunk.content
        if text and text.strip():
            valid.append(text.strip())
    if not valid:
        logger.warning("rag_empty_context_chunks")
    return valid


def _is_low_value(result: RetrievedChunk) -> bool:
    content = result.content.lower()
    if "data dictionary" in content or "sheet: meta" in content:
        return True
    return bool(_FIELD_DEFINITION.search(content))


def filter_low_value_results(results: list[RetrievedChunk]) -> list[RetrievedChunk]:
    """Drop data-dictionary and field-definition rows unless nothing else is left."""
    filtered = [r for r in results if not _is_low_value(r)]
    if not filtered:
        if results:
            logger.info("rag_all_results_metadata", count=len(results))
        return results

    logger.debug("rag_low_value_filtered", removed=len(results) - len(filtered))
    return filtered


def prioritize_exact_matches(
    keyword_results: list[RetrievedChunk],
    vector_results: list[RetrievedChunk],
) -> list[RetrievedChunk]:
    """Exact identifier hits go first with near-perfect similarity; vector duplicates removed."""
    if not keyword_results:
        return vector_results

    boosted = [replace(r, similarity=EXACT_MATCH_SIMILARITY) for r in keyword_results]
    keyword_ids = {r.id for r in keyword_results}
    unique_vector = [r for r in vector_results if r.id not in keyword_ids]
    return boosted + unique_vector


def merge_unique(existing: list[RetrievedChunk], new: list[RetrievedChunk]) -> list[RetrievedChunk]:
    """Append results with unseen ids to ``existing``; returns what was added."""
    seen = {r.id for r in existing}
    added: list[RetrievedChunk] = []
    for result in new:
        if result.id not in seen:
            seen.add(result.id)
            added.append(result)
    existing.extend(added)
    return added


def sort_by_similarity(results: list[RetrievedChunk]) -> list[RetrievedChunk]:
    return sorted(results, key=lambda r: r.similarity, reverse=True)


def assemble_context(results: list[RetrievedChunk], keywords: list[str], max_chars: int) -> str:
    """
    Join whole chunks into a context string no longer than ``max_chars``.

    Chunks are never cut: a spreadsheet row is either in the context or not.
    When identifiers were asked for, rows containing them are placed first.
    """
    chunks: list[str] = []
    current_length = 0

    if keywords:
        upper_keywords = [k.upper() for k in keywords]
        for result in results:
            content = result.content
            if any(k in content.upper() for k in upper_keywords) and (
                current_length + len(content) < max_chars
            ):
                chunks.append(content)
                current_length += len(content)

    for result in results:
        content = result.content
        if content in chunks:
            continue
        if current_length + len(content) < max_chars:
            chunks.append(content)
            current_length += len(content)
        else:
            break

    logger.debug("rag_context_assembled", chars=current_length, chunks=len(chunks))
    return "\n\n".join(chunks)


def truncate_context(context: str, max_chars: int) -> str:
    """Cut to ``max_chars`` and back off to the last full sentence."""
    if len(context) <= max_chars:
        return context
    logger.debug("rag_context_truncated", original=len(context), limit=max_chars)
    return ".".join(context[:max_chars].split(".")[:-1]) + "."


def build_sources(results: list[RetrievedChunk], preview_chars: int) -> list[Source]:
    return [
        Source(
            content=(
                r.content[:preview_chars] + "..." if len(r.content) > preview_chars else r.content
            ),
            similarity=r.similarity,
            file_id=r.file_id,
            source_file=r.source_file,
            category=r.category,
        )
        for r in results
    ]
