"""Tests for query classification heuristics."""

import pytest
from conftest import FakeLLM

from dataroom_ai.rag.classification import (
    DEFAULT_CATEGORY_INFO,
    PRE_CLASSIFICATION_RULES,
    classify_query,
    detect_aggregation_needs,
    extract_keywords,
    identify_category,
    pre_classify,
    processing_strategy,
    score_complexity,
)


class TestExtractKeywords:
    def test_identifiers_in_pattern_order(self):
        result = extract_keywords("Show CUST-42 invoices INV-1001 and inv-1002")

        assert result.keywords == ["INV-1001", "inv-1002", "CUST-42"]
        assert result.type == "exact_lookup"

    def test_general_query(self):
        result = extract_keywords("What was revenue in March?")

        assert result.keywords == []
        assert result.type == "general"


class TestAggregationNeeds:
    @pytest.mark.parametrize(
        ("query", "expected"),
        [
            ("What is the total revenue?", "sum"),
            ("Average deal size", "average"),
            ("How many vendors do we pay?", "count"),
            ("Which month had the highest burn?", "max"),
            ("Lowest margin product", "min"),
            ("Revenue by industry", "group_by"),
        ],
    )
    def test_aggregation_type(self, query, expected):
        assert detect_aggregation_needs(query).aggregation_type == expected

    def test_group_by_priority(self):
        needs = detect_aggregation_needs("Total revenue by region and industry")

        assert needs.needs_aggregation is True
        assert needs.aggregation_type == "sum"
        assert needs.group_by_field == "industry"

    def test_customer_and_month_grouping(self):
        assert detect_aggregation_needs("sum per customer").group_by_field == "customer"
        assert detect_aggregation_needs("total expenses by month").group_by_field == "month"

    def test_no_aggregation(self):
        needs = detect_aggregation_needs("Who is our auditor?")

        assert needs.needs_aggregation is False
        assert needs.aggregation_type is None
        assert needs.group_by_field is None


class TestPreClassify:
    def test_geography_beats_other_rules(self):
        info = pre_classify("Revenue forecast for EMEA")

        assert info is not None
        assert info.primary == "Revenue By Customer"
        assert info.fallback == ("Customer Contracts",)
        assert info.requires_aggregation is True

    def test_invoice_rule_uses_multi_search(self):
        info = pre_classify("Status of INV-2031")

        assert info is not None
        assert info.primary == "Accounts Receivable"
        assert info.fallback == ("Accounts Payable",)
        assert info.search_strategy == "multi"

    def test_stock_options_and_ytd(self):
        assert pre_classify("Vesting schedule of Jane's grant").primary == "Stock Option Grants"
        assert pre_classify("YTD operating expenses").primary == "YTD Financials"

    def test_projection(self):
        assert pre_classify("What is expected for 2027").primary == "Financial Projections"

    def test_no_rule(self):
        assert pre_classify("Who owns the most shares?") is None

    def test_shared_rule_table_is_immutable(self):
        infos = [rule.info for rule in PRE_CLASSIFICATION_RULES] + [DEFAULT_CATEGORY_INFO]

        assert all(isinstance(info.fallback, tuple) for info in infos)
        with pytest.raises(AttributeError):
            pre_classify("Status of INV-2031").fallback = ()


@pytest.mark.asyncio
class TestIdentifyCategory:
    async def test_rule_match_skips_llm(self):
        llm = FakeLLM()

        info = await identify_category("Revenue per industry", llm)

        assert info.primary == "Revenue By Customer"
        assert llm.prompts == []

    async def test_llm_known_category(self):
        llm = FakeLLM(lambda _prompt: "Cap Table")

        info = await identify_category("Who owns the company?", llm)

        assert info.primary == "Cap Table"
        assert info.search_strategy == "single"
        assert info.requires_aggregation is False
        assert llm.calls[0]["max_tokens"] == 30
        assert llm.calls[0]["temperature"] == 0

    async def test_llm_unknown_category_defaults(self):
        llm = FakeLLM(lambda _prompt: "Weather")

        info = await identify_category("Who owns the company?", llm)

        assert info.primary == "Monthly Financials"
        assert info.fallback == ()

    async def test_llm_failure_defaults(self):
        llm = FakeLLM(error=RuntimeError("model unavailable"))

        info = await identify_category("Who owns the company?", llm)

        assert info.primary == "Monthly Financials"


class TestComplexity:
    def test_simple(self):
        assert score_complexity("Cash balance?") == 1

    def test_comparison_and_time_range(self):
        assert score_complexity("Compare revenue this quarter") == 4

    def test_multiple_questions(self):
        assert score_complexity("What is cash? What is debt?") == 3

    def test_long_query(self):
        query = " ".join(["word"] * 21)
        assert score_complexity(query) == 2

    @pytest.mark.parametrize(
        ("complexity", "strategy"),
        [(1, "simple"), (2, "simple"), (3, "moderate"), (4, "moderate"), (5, "complex")],
    )
    def test_processing_strategy(self, complexity, strategy):
        assert processing_strategy(complexity) == strategy


@pytest.mark.asyncio
async def test_classify_query_metadata_question():
    llm = FakeLLM(lambda _prompt: "Monthly Financials")

    result = await classify_query("What files are in the data room?", llm)

    assert result.can_answer_from_metadata is True
    assert result.category == "Monthly Financials"
    assert result.processing_strategy == "simple"
