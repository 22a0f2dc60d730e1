from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.models.transaction import Transaction, TransactionPublic
from app.utils.periods import Period, as_utc


@dataclass
class CategoryTotal:
    """Summed expense amount for a single category."""

    category: str
    amount: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SummaryAggregator:
    """
    Dashboard totals over an arbitrary, already-fetched transaction list.
    Pure: no store access and no clock reads.
    """

    def __init__(self, recent_limit: int = 5) -> None:
        self._recent_limit = recent_limit

    def totals(self, transactions: Iterable[Transaction]) -> Tuple[float, float]:
        income = 0.0
        expense = 0.0
        for txn in transactions:
            if txn.is_income:
                income += txn.amount
            else:
                expense += txn.amount
        return income, expense

    def category_totals(self, transactions: Iterable[Transaction]) -> Dict[str, float]:
        """Expense amount per category. Income never counts towards a category."""
        totals: Dict[str, float] = defaultdict(float)
        for txn in transactions:
            if not txn.is_income:
                totals[txn.category.value] += txn.amount
        return dict(totals)

    def expense_categories(self, transactions: Iterable[Transaction]) -> List[CategoryTotal]:
        return [
            CategoryTotal(category=category, amount=amount)
            for category, amount in self.category_totals(transactions).items()
        ]

    def recent(self, transactions: Iterable[Transaction]) -> List[Transaction]:
        ordered = sorted(transactions, key=lambda txn: as_utc(txn.date), reverse=True)
        return ordered[: self._recent_limit]

    def summarize(
        self,
        transactions: List[Transaction],
        month: Optional[Period] = None,
    ) -> Dict[str, Any]:
        """
        Build the dashboard summary. ``monthlyStats`` covers ``month`` when one
        is given and the whole list otherwise.
        """
        total_income, total_expense = self.totals(transactions)
        if month is None:
            monthly_income, monthly_expense = total_income, total_expense
        else:
            monthly_income, monthly_expense = self.totals(
                txn for txn in transactions if month.contains(txn.date)
            )

        return {
            "totalIncome": total_income,
            "totalExpense": total_expense,
            "balance": total_income - total_expense,
            "recentTransactions": [
                TransactionPublic(**txn.model_dump()).model_dump(mode="json")
                for txn in self.recent(transactions)
            ],
            "monthlyStats": {
                "income": monthly_income,
                "expense": monthly_expense,
            },
            "expenseCategories": [item.to_dict() for item in self.expense_categories(transactions)],
        }
