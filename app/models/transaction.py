from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, Field


class Category(str, Enum):
    FOOD = "food"
    TRANSPORT = "transport"
    UTILITIES = "utilities"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def storage_timestamp(value: datetime) -> str:
    """Fixed-width UTC timestamp, so lexical order on the sort key matches time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class TransactionCreate(BaseModel):
    description: str = Field(min_length=1)
    amount: float = Field(ge=0)
    category: Category
    type: TransactionType


class TransactionUpdate(BaseModel):
    description: Optional[str] = Field(default=None, min_length=1)
    amount: Optional[float] = Field(default=None, ge=0)
    category: Optional[Category] = None
    type: Optional[TransactionType] = None


class Transaction(BaseModel):
    transaction_id: str
    user_id: str
    description: str
    amount: float = Field(ge=0)
    category: Category
    type: TransactionType
    date: datetime

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME


class TransactionInDB(Transaction):
    """Row shape in the transactions table. The sort key leads with the date so range queries work."""

    transaction_id: str = ""
    date: datetime = Field(default_factory=_utcnow)

    def model_post_init(self, __context) -> None:
        if not self.transaction_id:
            self.transaction_id = f"{storage_timestamp(self.date)}_{uuid4().hex[:12]}"

    def to_item(self) -> dict:
        item = self.model_dump(mode="json")
        item["date"] = storage_timestamp(self.date)
        return item


class TransactionPublic(BaseModel):
    transaction_id: str
    description: str
    amount: float
    category: Category
    type: TransactionType
    date: datetime
