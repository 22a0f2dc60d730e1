import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.security import get_current_user_id
from app.db import dynamo
from app.models.transaction import (
    TransactionCreate,
    TransactionInDB,
    TransactionPublic,
    TransactionUpdate,
)
from app.utils.periods import as_utc

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/", response_model=TransactionPublic, status_code=status.HTTP_201_CREATED)
def create_transaction(transaction: TransactionCreate, user_id: str = Depends(get_current_user_id)):
    # The server stamps the date so every row is stored in UTC
    transaction_db = TransactionInDB(user_id=user_id, **transaction.model_dump())
    success = dynamo.put_transaction(transaction_db.to_item())
    if not success:
        raise HTTPException(status_code=500, detail="Failed to save transaction")
    return TransactionPublic(**transaction_db.model_dump())


@router.get("/", response_model=List[TransactionPublic])
def list_transactions(
    search: Optional[str] = Query(None, description="Case-insensitive match on description or category"),
    user_id: str = Depends(get_current_user_id),
):
    transactions = dynamo.find_transactions(user_id)
    if search:
        needle = search.lower()
        transactions = [
            txn
            for txn in transactions
            if needle in txn.description.lower() or needle in txn.category.value
        ]
    transactions.sort(key=lambda txn: as_utc(txn.date), reverse=True)
    return [TransactionPublic(**txn.model_dump()) for txn in transactions]


@router.get("/{transaction_id}", response_model=TransactionPublic)
def get_transaction(transaction_id: str, user_id: str = Depends(get_current_user_id)):
    transaction = dynamo.get_transaction(user_id, transaction_id)
    if not transaction:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return TransactionPublic(**transaction.model_dump())


@router.put("/{transaction_id}", response_model=TransactionPublic)
def update_transaction(
    transaction_id: str,
    transaction_update: TransactionUpdate,
    user_id: str = Depends(get_current_user_id),
):
    # The date stays as created: it leads the sort key, so changing it would mean a new item
    changes = transaction_update.model_dump(mode="json", exclude_none=True)
    if set(changes) != {"description", "amount", "category", "type"}:
        raise HTTPException(status_code=400, detail="All fields are required")

    updated = dynamo.update_transaction(user_id, transaction_id, changes)
    if not updated:
        raise HTTPException(status_code=404, detail="Transaction not found")

    logger.info(f"Transaction {transaction_id} updated for user {user_id}")
    return TransactionPublic(**updated.model_dump())


@router.delete("/{transaction_id}")
def delete_transaction(transaction_id: str, user_id: str = Depends(get_current_user_id)):
    deleted = dynamo.delete_transaction(user_id, transaction_id)
    if not deleted:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return {"message": "Transaction deleted successfully"}
