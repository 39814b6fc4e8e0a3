"""Prompt templates for the financial RAG pipeline."""

from __future__ import annotations

from dataroom_ai.rag.categories import CATEGORY_KEYWORDS

FINANCIAL_ASSISTANT_SYSTEM_PROMPT = """You are a knowledgeable financial assistant with expertise in:
- Financial statements analysis (P&L, Balance Sheet, Cash Flow)
- Accounts payable and receivable
- Cap table and equity structures
- Customer and vendor contracts
- Financial projections and forecasting

When answering questions:
1. Be precise with numbers and dates
2. Reference source files when available
3. If information is incomplete, acknowledge it
4. Suggest relevant follow-up questions when appropriate
5. Format numbers consistently (currency, percentages)
"""


def financial_category_prompt(query: str) -> str:
    """Ask the model which category would answer the query."""
    categories_str = "\n".join(
        f"• {category}: {', '.join(keywords[:3])}"
        for category, keywords in CATEGORY_KEYWORDS.items()
    )

    return f"""You are an expert financial data classifier. Analyze the user's question to determine which financial data category would best answer their query.

Available Categories:
{categories_str}

User Query: "{query}"

Classification Rules:
1. Focus on the INTENT of the question, not just keywords
2. Consider what type of financial data would contain the answer
3. "Cap table" questions → Cap Table category
4. Revenue/profit/expense analysis → Monthly Financials
5. YTD/year-to-date data → YTD Financials
6. Customer payment issues → Accounts Receivable
7. Vendor payment issues → Accounts Payable
8. Future planning → Financial Projections

Return ONLY the exact category name. If uncertain, return "Monthly Financials".

Category:"""


def basic_qa_prompt(context: str, query: str) -> str:
    return f"""You are a helpful financial assistant analyzing financial data. Answer the user's question using ONLY the information provided in the context below.

IMPORTANT INSTRUCTIONS:
1. The context contains actual data from the user's financial files
2. Use the data in the context to provide specific, accurate answers
3. Include relevant numbers, dates, and details from the context
4. ONLY say you don't have the information if the context is completely empty or contains no relevant data for the specific question
5. If you find relevant data in the context, you MUST use it to answer the question

Context:
{context}

Question: {query}

Answer:"""


def exact_lookup_prompt(context: str, query: str, keywords: list[str]) -> str:
    """Prompt for identifier lookups (invoice numbers, customer IDs, ...)."""
    joined = ", ".join(keywords)
    return f"""You are a financial data assistant. The user is looking for SPECIFIC information about: {joined}.

The context below contains data from financial documents. Your task is to find and present the EXACT details requested.

Context:
{context}

Question: {query}

INSTRUCTIONS:
1. Look for the exact identifiers mentioned: {joined}
2. If found, provide ALL available details for those specific records
3. Format the answer clearly with field names and values
4. If NOT found in the context, explicitly state "The requested {joined} was not found in the available data"
5. Do NOT make up or infer information

Answer:"""


def _extreme_label(aggregation_type: str, *, capitalized: bool) -> str:
    if aggregation_type == "max":
        label = "highest"
    elif aggregation_type == "min":
        label = "lowest"
    else:
        label = "result" if capitalized else "top"
    return label.capitalize() if capitalized else label


def aggregation_prompt(
    context: str,
    query: str,
    aggregation_type: str,
    group_by_field: str | None,
) -> str:
    """Prompt for sum/average/count/max/min/group-by questions."""
    calculation = f"{aggregation_type} by {group_by_field}" if group_by_field else aggregation_type

    if group_by_field:
        example = (
            f"By {group_by_field}:\n"
            f"- [{group_by_field} 1]: [value] ([calculation if relevant])\n"
            f"- [{group_by_field} 2]: [value] ([calculation if relevant])\n"
            "\n"
            f"{_extreme_label(aggregation_type, capitalized=True)}: [answer]"
        )
    else:
        example = "[Calculated result with explanation]"

    return f"""You are a financial data analyst. The user is asking for AGGREGATED analysis.

Context (Raw Data):
{context}

Question: {query}

CRITICAL INSTRUCTIONS:
1. This query requires {calculation} calculation
2. Analyze ALL the data provided in the context
3. Group the data by {group_by_field or "the relevant field"}
4. Calculate the {aggregation_type} for each group
5. Present results in a clear table or list format
6. Show your calculations/reasoning
7. Identify the {_extreme_label(aggregation_type, capitalized=False)} result

Example format:
{example}

Answer:"""


def combined_answer_prompt(query: str, context_parts: list[str]) -> str:
    combined_context = "\n\n".join(context_parts)
    return f"""Answer this question using the provided context. Be concise and specific.

Question: {query}

Context:
{combined_context}

Answer:"""


def decomposition_prompt(query: str) -> str:
    return f"""Does this query need to be split into sub-questions to be answered properly?

Query: "{query}"

If YES, split it into 2-3 focused sub-questions. If NO, return just the original query.

Rules:
- Only split if it genuinely improves answering
- Each sub-question should be complete and answerable independently
- Avoid splitting simple single-concept questions

Response format: Return only the questions, one per line."""


def complex_decomposition_prompt(query: str) -> str:
    return f"""Break this complex question into 2-3 focused sub-questions. Only decompose if it will genuinely help answer the question better.

Question: {query}

Return only the sub-questions, one per line. If the question is better answered as-is, return just the original question."""


def file_description_prompt(filename: str, sample_content: str) -> str:
    return f"""Based on the filename and sample content below, write a brief 1-2 sentence description of what this financial document contains.

Filename: {filename}

Sample Content:
{sample_content}

Description:"""


def file_relevance_prompt(
    query: str,
    filename: str,
    category: str,
    description: str | None = None,
) -> str:
    description_line = f"- Description: {description}" if description else ""
    return f"""Rate how relevant this file is to the user's question on a scale of 0-10.

User Question: "{query}"

File Information:
- Filename: {filename}
- Category: {category}
{description_line}

Respond with just a number from 0-10.

Relevance:"""
