"""Financial document categories used to route retrieval."""

from __future__ import annotations

DEFAULT_CATEGORY = "Monthly Financials"

CATEGORY_KEYWORDS: dict[str, list[str]] = {
    "Accounts Payable": [
        "payable",
        "ap",
        "vendor invoice",
        "outstanding payment",
        "vendor payable",
        "payment due",
    ],
    "Accounts Receivable": [
        "receivable",
        "ar",
        "customer invoice",
        "pending receivable",
        "customer payment",
        "invoice outstanding",
    ],
    "Cap Table": [
        "cap table",
        "capitalization",
        "equity",
        "ownership",
        "shares",
        "shareholders",
        "stock ownership",
    ],
    "Customer Contracts": [
        "customer contract",
        "agreement",
        "customer deal",
        "customer agreement",
        "contract terms",
    ],
    "Financial Projections": [
        "projection",
        "forecast",
        "future financial",
        "budget",
        "projection",
        "forecast",
    ],
    "Monthly Financials": [
        "monthly financial",
        "monthly report",
        "month",
        "cogs",
        "revenue",
        "gross profit",
        "p&l",
        "profit and loss",
        "balance sheet",
        "cash flow",
        "financial statement",
        "monthly data",
        "financial performance",
        "income statement",
        "expenses",
        "sales",
        "profit",
        "loss",
    ],
    "Revenue By Customer": [
        "revenue by customer",
        "customer revenue",
        "customer sales",
        "client revenue",
    ],
    "Stock Option Grants": [
        "stock option",
        "grant",
        "employee equity",
        "option grant",
        "equity compensation",
    ],
    "Vendor Contracts": [
        "vendor contract",
        "vendor agreement",
        "supplier contract",
        "vendor terms",
    ],
    "YTD Financials": [
        "ytd",
        "year to date",
        "year-to-date",
        "current year",
        "fiscal year",
    ],
}

FINANCIAL_CATEGORIES: tuple[str, ...] = tuple(CATEGORY_KEYWORDS)

# Where to look next when the primary category comes back thin
RELATED_CATEGORIES: dict[str, list[str]] = {
    "Accounts Payable": ["Accounts Receivable", "Vendor Contracts"],
    "Accounts Receivable": ["Accounts Payable", "Customer Contracts"],
    "Customer Contracts": ["Revenue By Customer", "Accounts Receivable"],
    "Vendor Contracts": ["Accounts Payable"],
    "Financial Projections": ["Monthly Financials", "YTD Financials"],
    "Monthly Financials": ["YTD Financials", "Financial Projections"],
    "YTD Financials": ["Monthly Financials"],
    "Revenue By Customer": ["Customer Contracts", "Monthly Financials"],
}


def is_known_category(category: str) -> bool:
    return category in CATEGORY_KEYWORDS


def get_related_categories(category: str) -> list[str]:
    """Fallback categories for a primary category (empty when none are related)."""
    return list(RELATED_CATEGORIES.get(category, []))
