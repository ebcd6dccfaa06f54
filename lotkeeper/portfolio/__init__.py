# lotkeeper/portfolio/__init__.py

from .investments import DEFAULT_CATEGORIES, ImportResult, InvestmentService
from .valuation import category_totals, holdings_summary, lots_frame

__all__ = [
    "DEFAULT_CATEGORIES",
    "ImportResult",
    "InvestmentService",
    "category_totals",
    "holdings_summary",
    "lots_frame",
]
