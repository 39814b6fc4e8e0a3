"""Split complex questions into a few focused sub-questions."""

from __future__ import annotations

import re

from dataroom_ai.logger import get_logger
from dataroom_ai.rag.classification import processing_strategy
from dataroom_ai.rag.prompts import complex_decomposition_prompt, decomposition_prompt
from dataroom_ai.services.llm_service import LLMService

logger = get_logger(__name__)

_LIST_MARKER = re.compile(r"^[0-9.\-)\s]+")
MIN_SUB_QUERY_CHARS = 10
MAX_SUB_QUERIES = 3


def parse_sub_queries(text: str) -> list[str]:
    """One sub-question per line, list markers stripped, short and repeated lines dropped."""
    sub_queries: list[str] = []
    for line in text.strip().split("\n"):
        cleaned = _LIST_MARKER.sub("", line.strip()).strip()
        if len(cleaned) > MIN_SUB_QUERY_CHARS and cleaned not in sub_queries:
            sub_queries.append(cleaned)
    return sub_queries


async def decompose_query(query: str, complexity: int, llm: LLMService) -> list[str]:
    """Return 2-3 sub-questions, or ``[query]`` when splitting would not help."""
    if complexity <= 2:
        logger.debug("rag_decomposition_skipped", complexity=complexity)
        return [query]

    prompt = (
        complex_decomposition_prompt(query)
        if processing_strategy(complexity) == "complex"
        else decomposition_prompt(query)
    )

    try:
        result = await llm.complete(
            [{"role": "user", "content": prompt}],
            max_tokens=200,
            temperature=0,
        )
    except Exception as exc:
        logger.warning("rag_decomposition_failed", error=str(exc))
        return [query]

    if not result:
        return [query]

    sub_queries = parse_sub_queries(result)
    if len(sub_queries) <= 1 or len(sub_queries) > MAX_SUB_QUERIES:
        logger.info("rag_decomposition_not_beneficial", parsed=len(sub_queries))
        return [query]

    logger.info("rag_query_decomposed", sub_queries=len(sub_queries))
    return sub_queries
