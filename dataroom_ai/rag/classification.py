"""
Query classification for the RAG pipeline.

Cheap regex rules run first; they catch the query shapes the LLM tends to
misroute (geography and industry breakdowns live in Revenue By Customer, not
Monthly Financials). Only queries no rule matches are sent to the model.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from dataroom_ai.logger import get_logger, query_preview
from dataroom_ai.rag.categories import (
    DEFAULT_CATEGORY,
    get_related_categories,
    is_known_category,
)
from dataroom_ai.rag.models import (
    AggregationNeeds,
    AggregationType,
    CategoryInfo,
    GroupByField,
    KeywordExtraction,
    ProcessingStrategy,
    QueryClassification,
)
from dataroom_ai.rag.prompts import financial_category_prompt
from dataroom_ai.services.llm_service import LLMService

logger = get_logger(__name__)


def _rx(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


@dataclass(frozen=True)
class _CategoryRule:
    name: str
    pattern: re.Pattern[str]
    info: CategoryInfo


# Order matters: the first matching rule wins.
PRE_CLASSIFICATION_RULES: tuple[_CategoryRule, ...] = (
    _CategoryRule(
        "geography",
        _rx(r"geography|geographic|region|country|location|apac|emea|north america|india|europe"),
        CategoryInfo("Revenue By Customer", ("Customer Contracts",), "single", True),
    ),
    _CategoryRule(
        "industry",
        _rx(r"industry|industries|sector|vertical|fintech|retail|manufacturing|media|healthcare"),
        CategoryInfo("Revenue By Customer", (), "single", True),
    ),
    _CategoryRule(
        "customer_revenue",
        _rx(r"customer (revenue|sales)|revenue (by|from|per) customer|which customer"),
        CategoryInfo("Revenue By Customer", ("Monthly Financials",), "single", True),
    ),
    _CategoryRule(
        "invoice_id",
        _rx(r"INV-\d+"),
        CategoryInfo("Accounts Receivable", ("Accounts Payable",), "multi", False),
    ),
    _CategoryRule(
        "stock_options",
        _rx(r"vesting schedule of|stock options for|grants for|grantee|employee.*option"),
        CategoryInfo("Stock Option Grants", (), "single", False),
    ),
    _CategoryRule(
        "ytd",
        _rx(r"ytd|year to date|year-to-date"),
        CategoryInfo("YTD Financials", ("Monthly Financials",), "single", False),
    ),
    _CategoryRule(
        "projection",
        _rx(r"projection|forecast|future|expected|next year|2026|2027"),
        CategoryInfo("Financial Projections", (), "single", False),
    ),
)

_IDENTIFIER_PATTERNS: tuple[re.Pattern[str], ...] = (
    _rx(r"INV-\d+"),
    _rx(r"CUST-\d+"),
    _rx(r"VEND-\d+"),
    _rx(r"OPT-\d+"),
)

_COMPARISON = _rx(r"compare|vs|versus|difference|between")
_TIME_RANGE = _rx(r"year|month|quarter|ytd|yoy|trend")
_METADATA_QUERY = _rx(r"what files|list files|available documents|show me files")

_NEEDS_SUM = _rx(r"total|sum of|combined")
_NEEDS_AVERAGE = _rx(r"average|mean|avg")
_NEEDS_COUNT = _rx(r"how many|count|number of")
_NEEDS_MAX = _rx(r"highest|maximum|most|top|best")
_NEEDS_MIN = _rx(r"lowest|minimum|least|worst")

_GROUP_BY_INDUSTRY = _rx(r"by industry|per industry|industry|industries")
_GROUP_BY_GEOGRAPHY = _rx(r"by geography|by region|by country|geography|region")
_GROUP_BY_CUSTOMER = _rx(r"by customer|per customer|each customer")
_GROUP_BY_MONTH = _rx(r"by month|monthly|per month")

DEFAULT_CATEGORY_INFO = CategoryInfo(DEFAULT_CATEGORY, (), "single", False)


def extract_keywords(query: str) -> KeywordExtraction:
    """Pull record identifiers (INV-, CUST-, VEND-, OPT-) out of the query."""
    keywords: list[str] = []
    for pattern in _IDENTIFIER_PATTERNS:
        keywords.extend(pattern.findall(query))
    return KeywordExtraction(keywords=keywords, type="exact_lookup" if keywords else "general")


def detect_aggregation_needs(query: str) -> AggregationNeeds:
    group_by_industry = bool(_GROUP_BY_INDUSTRY.search(query))
    group_by_geography = bool(_GROUP_BY_GEOGRAPHY.search(query))

    aggregation_type: AggregationType | None = None
    if _NEEDS_SUM.search(query):
        aggregation_type = "sum"
    elif _NEEDS_AVERAGE.search(query):
        aggregation_type = "average"
    elif _NEEDS_COUNT.search(query):
        aggregation_type = "count"
    elif _NEEDS_MAX.search(query):
        aggregation_type = "max"
    elif _NEEDS_MIN.search(query):
        aggregation_type = "min"
    elif group_by_industry or group_by_geography:
        aggregation_type = "group_by"

    group_by_field: GroupByField | None = None
    if group_by_industry:
        group_by_field = "industry"
    elif group_by_geography:
        group_by_field = "geography"
    elif _GROUP_BY_CUSTOMER.search(query):
        group_by_field = "customer"
    elif _GROUP_BY_MONTH.search(query):
        group_by_field = "month"

    needs = AggregationNeeds(
        needs_aggregation=aggregation_type is not None,
        aggregation_type=aggregation_type,
        group_by_field=group_by_field,
    )
    if needs.needs_aggregation:
        logger.debug(
            "rag_aggregation_detected",
            aggregation_type=aggregation_type,
            group_by=group_by_field,
        )
    return needs


def pre_classify(query: str) -> CategoryInfo | None:
    """Apply the ordered regex rules; None when no rule matches."""
    for rule in PRE_CLASSIFICATION_RULES:
        if rule.pattern.search(query):
            logger.info("rag_rule_matched", rule=rule.name, category=rule.info.primary)
            return rule.info
    return None


async def identify_category(query: str, llm: LLMService) -> CategoryInfo:
    """Pick the category to search, falling back to the LLM when no rule matches."""
    logger.info("rag_identifying_category", query=query_preview(query))

    ruled = pre_classify(query)
    if ruled is not None:
        return ruled

    try:
        category = await llm.complete(
            [{"role": "user", "content": financial_category_prompt(query)}],
            max_tokens=30,
            temperature=0,
        )
    except Exception as exc:
        # Classification is advisory; retrieval still works with the default category.
        logger.error("rag_category_llm_failed", error=str(exc))
        return DEFAULT_CATEGORY_INFO

    if is_known_category(category):
        logger.info("rag_category_identified", category=category, source="llm")
        return CategoryInfo(category, tuple(get_related_categories(category)), "single", False)

    logger.info("rag_category_unrecognized", answer=category[:50])
    return DEFAULT_CATEGORY_INFO


def score_complexity(query: str) -> int:
    words = len(re.split(r"\s+", query))
    has_multiple_questions = "?" in query and len(query.split("?")) > 2

    complexity = 1
    if words > 20:
        complexity += 1
    if _COMPARISON.search(query):
        complexity += 2
    if has_multiple_questions:
        complexity += 2
    if _TIME_RANGE.search(query):
        complexity += 1
    return complexity


def processing_strategy(complexity: int) -> ProcessingStrategy:
    if complexity > 4:
        return "complex"
    if complexity > 2:
        return "moderate"
    return "simple"


async def classify_query(query: str, llm: LLMService) -> QueryClassification:
    """Score complexity, identify the category and spot file-listing questions."""
    complexity = score_complexity(query)
    category_info = await identify_category(query, llm)

    return QueryClassification(
        category=category_info.primary,
        complexity=complexity,
        can_answer_from_metadata=bool(_METADATA_QUERY.search(query)),
        processing_strategy=processing_strategy(complexity),
    )
