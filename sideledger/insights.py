from collections.abc import Sequence
from typing import Protocol

from .models import Transaction


class InsightProvider(Protocol):
    def insights_for(self, transactions: Sequence[Transaction]) -> list[dict]: ...


STATIC_INSIGHTS = (
    {
        "type": "SPENDING_PATTERN",
        "message": "Your food expenses have increased by 20% this month",
        "impact": "HIGH",
        "category": "FOOD",
    },
    {
        "type": "BUDGET_RECOMMENDATION",
        "message": "Consider setting a monthly entertainment budget of $200",
        "impact": "MEDIUM",
        "category": "ENTERTAINMENT",
    },
    {
        "type": "SAVING_OPPORTUNITY",
        "message": "You could save $150 by optimizing your utility usage",
        "impact": "LOW",
        "category": "UTILITIES",
    },
)


class StaticInsightProvider:
    """Stub provider: the same three pre-authored insights for everyone."""

    def insights_for(self, transactions: Sequence[Transaction]) -> list[dict]:
        return [dict(insight) for insight in STATIC_INSIGHTS]
