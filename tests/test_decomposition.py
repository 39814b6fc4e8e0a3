import pytest
from conftest import FakeLLM

from dataroom_ai.rag.decomposition import decompose_query, parse_sub_queries

QUERY = "Compare revenue and expenses between Q1 and Q2"


def test_parse_sub_queries_strips_markers_and_duplicates():
    text = "1. What was Q1 revenue?\n2) What was Q2 revenue?\n- What was Q1 revenue?\nshort\n"

    assert parse_sub_queries(text) == ["What was Q1 revenue?", "What was Q2 revenue?"]


@pytest.mark.asyncio
async def test_low_complexity_skips_llm():
    llm = FakeLLM()

    assert await decompose_query("Cash balance?", 2, llm) == ["Cash balance?"]
    assert llm.prompts == []


@pytest.mark.asyncio
async def test_moderate_query_is_split():
    llm = FakeLLM(lambda _p: "1. What was revenue in Q1 and Q2?\n2. What were expenses in Q1 and Q2?")

    result = await decompose_query(QUERY, 3, llm)

    assert result == ["What was revenue in Q1 and Q2?", "What were expenses in Q1 and Q2?"]
    assert "Does this query need to be split" in llm.prompts[0]
    assert llm.calls[0]["max_tokens"] == 200


@pytest.mark.asyncio
async def test_complex_query_uses_complex_prompt():
    llm = FakeLLM(lambda _p: "What was revenue in Q1?\nWhat was revenue in Q2?")

    await decompose_query(QUERY, 5, llm)

    assert llm.prompts[0].startswith("Break this complex question")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "llm_output",
    [
        "",
        "Compare revenue and expenses between Q1 and Q2",
        "Question number one?\nQuestion number two?\nQuestion number three?\nQuestion number four?",
    ],
)
async def test_unhelpful_split_returns_original(llm_output):
    llm = FakeLLM(lambda _p: llm_output)

    assert await decompose_query(QUERY, 4, llm) == [QUERY]


@pytest.mark.asyncio
async def test_llm_failure_returns_original():
    llm = FakeLLM(error=RuntimeError("rate limited"))

    assert await decompose_query(QUERY, 5, llm) == [QUERY]
