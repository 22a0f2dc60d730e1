"""
Month-over-month spending insights.

The engine compares the current calendar month against the previous one,
per expense category and overall, and phrases changes that clear a threshold
as short natural-language messages. Messages are picked from ordered rule
tables: the first rule whose predicate accepts the signed percentage wins.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, tzinfo
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from app.models.transaction import Transaction
from app.utils.periods import month_label, month_name, month_window
from app.utils.summary import SummaryAggregator

logger = logging.getLogger(__name__)

# find_transactions(user_id, period=None, txn_type=None)
FetchTransactions = Callable[..., List[Transaction]]


class InsightKind(str, Enum):
    CATEGORY_CHANGE = "category_change"
    OVERALL_TREND = "overall_trend"
    INFO = "info"


@dataclass
class Insight:
    kind: InsightKind
    message: str
    details: str
    category: Optional[str] = None
    percentage_change: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }
        if self.category is not None:
            data["category"] = self.category
        if self.percentage_change is not None:
            data["percentageChange"] = self.percentage_change
        return data


def percentage_change(current: float, previous: float) -> float:
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def format_currency(amount: float) -> str:
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"


def recovered_savings(total: float, pct: float, previous_total: float) -> float:
    """
    Amount saved, recovering last period's total from this period's total and
    the percentage change. At -100% there is nothing to divide by and the
    whole previous total counts as saved.
    """
    divisor = 1 + pct / 100
    if divisor <= 0:
        return previous_total
    return abs(total - total / divisor)


@dataclass(frozen=True)
class MessageContext:
    percentage_change: float
    current_amount: float
    previous_amount: float
    current_month: str
    previous_month: str
    category: str = ""

    @property
    def abs_change(self) -> int:
        return abs(round_half_up(self.percentage_change))


Rule = Tuple[Callable[[float], bool], Callable[[MessageContext], str]]

CATEGORY_CHANGE_RULES: Sequence[Rule] = (
    (
        lambda pct: pct > 50,
        lambda c: (
            f"Your {c.category} spending spiked by {c.abs_change}% in {c.current_month}! "
            f"You spent {format_currency(c.current_amount)} compared to "
            f"{format_currency(c.previous_amount)} in {c.previous_month}."
        ),
    ),
    (
        lambda pct: pct > 20,
        lambda c: (
            f"You spent {c.abs_change}% more on {c.category} this month compared to last month "
            f"({format_currency(c.current_amount)} vs {format_currency(c.previous_amount)})."
        ),
    ),
    (
        lambda pct: pct < -50,
        lambda c: (
            f"Great job! You cut your {c.category} spending by {c.abs_change}% this month, "
            f"saving {format_currency(c.previous_amount - c.current_amount)}."
        ),
    ),
    # Catch-all. Increases of 20% or less also land here and read as "less".
    (
        lambda pct: True,
        lambda c: (
            f"You spent {c.abs_change}% less on {c.category} this month compared to last month "
            f"({format_currency(c.current_amount)} vs {format_currency(c.previous_amount)})."
        ),
    ),
)

OVERALL_TREND_RULES: Sequence[Rule] = (
    (
        lambda pct: pct > 30,
        lambda c: (
            f"Your overall spending increased significantly by {c.abs_change}% this month. "
            f"Total spending: {format_currency(c.current_amount)}."
        ),
    ),
    (
        lambda pct: pct > 0,
        lambda c: f"Your overall spending is {c.abs_change}% higher this month at {format_currency(c.current_amount)}.",
    ),
    (
        lambda pct: pct < -30,
        lambda c: (
            f"Excellent! You reduced your overall spending by {c.abs_change}% this month, saving "
            f"{format_currency(recovered_savings(c.current_amount, c.percentage_change, c.previous_amount))}!"
        ),
    ),
    (
        lambda pct: True,
        lambda c: f"Your overall spending is {c.abs_change}% lower this month at {format_currency(c.current_amount)}.",
    ),
)


def select_message(rules: Sequence[Rule], context: MessageContext) -> str:
    for predicate, template in rules:
        if predicate(context.percentage_change):
            return template(context)
    return "Spending insight available."


class InsightEngine:
    """
    Request-scoped insight generation. Holds only configuration; every call
    fetches its own snapshot from the store.
    """

    def __init__(
        self,
        fetch_transactions: FetchTransactions,
        category_threshold: float = 20.0,
        overall_threshold: float = 10.0,
        aggregator: Optional[SummaryAggregator] = None,
    ) -> None:
        self._fetch = fetch_transactions
        self._category_threshold = category_threshold
        self._overall_threshold = overall_threshold
        self._aggregator = aggregator or SummaryAggregator()

    def generate(self, user_id: str, now: datetime, tz: tzinfo) -> List[Insight]:
        current_period = month_window(now, tz)
        previous_period = month_window(now, tz, offset=-1)
        current_month = month_name(now, tz)
        previous_month = month_name(now, tz, offset=-1)

        current_txns = self._fetch(user_id, period=current_period)
        logger.debug(
            f"Insights for {user_id}: {len(current_txns)} transactions in "
            f"[{current_period.start.isoformat()}, {current_period.end.isoformat()})"
        )
        if not current_txns:
            return [self._empty_month_insight(user_id, now, tz)]

        previous_txns = self._fetch(user_id, period=previous_period)

        current_spending = self._aggregator.category_totals(current_txns)
        previous_spending = self._aggregator.category_totals(previous_txns)

        insights: List[Insight] = []
        for category, current_amount in current_spending.items():
            previous_amount = previous_spending.get(category, 0.0)
            pct = percentage_change(current_amount, previous_amount)
            logger.debug(f"  {category}: {current_amount} vs {previous_amount} ({pct:.1f}%)")
            if abs(pct) < self._category_threshold:
                continue

            context = MessageContext(
                percentage_change=pct,
                current_amount=current_amount,
                previous_amount=previous_amount,
                current_month=current_month,
                previous_month=previous_month,
                category=category,
            )
            insights.append(
                Insight(
                    kind=InsightKind.CATEGORY_CHANGE,
                    message=select_message(CATEGORY_CHANGE_RULES, context),
                    details=f"Current: {format_currency(current_amount)} | Previous: {format_currency(previous_amount)}",
                    category=category,
                    percentage_change=round_half_up(pct),
                )
            )

        current_total = sum(current_spending.values())
        previous_total = sum(previous_spending.values())
        total_pct = percentage_change(current_total, previous_total)
        if abs(total_pct) >= self._overall_threshold:
            context = MessageContext(
                percentage_change=total_pct,
                current_amount=current_total,
                previous_amount=previous_total,
                current_month=current_month,
                previous_month=previous_month,
            )
            insights.append(
                Insight(
                    kind=InsightKind.OVERALL_TREND,
                    message=select_message(OVERALL_TREND_RULES, context),
                    details=(
                        f"Total spending: {format_currency(current_total)} | "
                        f"Previous: {format_currency(previous_total)}"
                    ),
                    percentage_change=round_half_up(total_pct),
                )
            )

        if not insights:
            insights.append(
                Insight(
                    kind=InsightKind.INFO,
                    message=(
                        f"Found {len(current_txns)} transactions in current month "
                        "but no significant changes detected."
                    ),
                    details=(
                        f"Total current month spending: {format_currency(current_total)}. "
                        "Try adding more transactions or transactions from previous month for comparison."
                    ),
                )
            )

        logger.info(f"Generated {len(insights)} insights for user {user_id}")
        return insights

    def category_insights(self, user_id: str, category: str, now: datetime, tz: tzinfo) -> List[Insight]:
        wanted = category.lower()
        return [
            insight
            for insight in self.generate(user_id, now, tz)
            if insight.category and insight.category.lower() == wanted
        ]

    def _empty_month_insight(self, user_id: str, now: datetime, tz: tzinfo) -> Insight:
        all_txns = self._fetch(user_id)
        if not all_txns:
            return Insight(
                kind=InsightKind.INFO,
                message="No transactions found in your account.",
                details="Add some transactions to start seeing spending insights.",
            )

        label = month_label(now, tz)
        return Insight(
            kind=InsightKind.INFO,
            message=f"No transactions found for the current month ({label}).",
            details=(
                f"You have {len(all_txns)} total transactions, but none in {label}. "
                f"Add some {month_name(now, tz)} transactions to see insights."
            ),
        )


def build_response(insights: List[Insight], generated_at: datetime) -> Dict[str, Any]:
    return {
        "insights": [insight.to_dict() for insight in insights],
        "generated_at": generated_at.isoformat(),
        "count": len(insights),
    }

