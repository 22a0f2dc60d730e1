import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.models.transaction import Transaction, TransactionType, storage_timestamp
from app.utils.periods import Period

logger = logging.getLogger(__name__)

# Initialize DynamoDB resource
dynamodb = boto3.resource("dynamodb", region_name=settings.DYNAMO_REGION)

# Get table references
users_table = dynamodb.Table(settings.DYNAMO_USERS_TABLE)
transactions_table = dynamodb.Table(settings.DYNAMO_TRANSACTIONS_TABLE)


class StoreUnavailable(Exception):
    """A read against the transactions store failed. No partial results are returned."""


def _error_message(e: Exception) -> str:
    if isinstance(e, ClientError):
        return e.response["Error"]["Message"]
    return str(e)


# Users

def get_user_by_email(email: str):
    """Query the Users table by email (assumes a GSI exists on email)."""
    try:
        response = users_table.query(
            IndexName="email-index",
            KeyConditionExpression=Key("email").eq(email.lower()),
        )
        return _from_dynamo(response["Items"][0]) if response["Items"] else None
    except (ClientError, BotoCoreError) as e:
        logger.error(f"get_user_by_email failed: {_error_message(e)}")
        raise StoreUnavailable(_error_message(e)) from e


def get_user_by_id(user_id: str):
    """Get user by user_id from the Users table."""
    try:
        response = users_table.get_item(Key={"user_id": user_id})
        item = response.get("Item")
        return _from_dynamo(item) if item else None
    except (ClientError, BotoCoreError) as e:
        logger.error(f"get_user_by_id failed: {_error_message(e)}")
        raise StoreUnavailable(_error_message(e)) from e


def list_users() -> List[Dict[str, Any]]:
    """Scan every user record, following pagination."""
    users: List[Dict[str, Any]] = []
    kwargs: Dict[str, Any] = {}
    try:
        while True:
            response = users_table.scan(**kwargs)
            users.extend(_from_dynamo(item) for item in response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return users
            kwargs["ExclusiveStartKey"] = last_key
    except (ClientError, BotoCoreError) as e:
        logger.error(f"list_users failed: {_error_message(e)}")
        raise StoreUnavailable(_error_message(e)) from e


def put_user(user_item: dict):
    """Insert a new user into the Users table."""
    try:
        users_table.put_item(Item=_convert_for_dynamo(_drop_none(user_item)))
        return True
    except ClientError as e:
        logger.error(f"put_user failed: {_error_message(e)}")
        return False


def update_user(user_id: str, updates: dict):
    """Apply partial updates to a user. Returns the updated item or None."""
    try:
        return _update_item(users_table, {"user_id": user_id}, updates, must_exist=True)
    except ClientError as e:
        logger.error(f"update_user failed: {_error_message(e)}")
        return None


def clear_password_reset(user_id: str, password_hash: str):
    """Store the new password hash and drop any pending reset token."""
    try:
        response = users_table.update_item(
            Key={"user_id": user_id},
            UpdateExpression="SET #p = :p REMOVE #t, #e",
            ExpressionAttributeNames={
                "#p": "password_hash",
                "#t": "password_reset_token",
                "#e": "password_reset_expires",
            },
            ExpressionAttributeValues={":p": password_hash},
            ReturnValues="ALL_NEW",
        )
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None
    except ClientError as e:
        logger.error(f"clear_password_reset failed: {_error_message(e)}")
        return None


# Transactions

def find_transactions(
    user_id: str,
    period: Optional[Period] = None,
    txn_type: Optional[TransactionType] = None,
) -> List[Transaction]:
    """
    Fetch a user's transactions, optionally restricted to the half-open UTC
    window [period.start, period.end) and to a single transaction type.

    The sort key is "<fixed-width UTC timestamp>_<suffix>", so BETWEEN start and
    end keeps every row dated at or after start and before end: a row dated
    exactly at end sorts after the bare end timestamp.
    """
    condition = Key("user_id").eq(user_id)
    if period is not None:
        condition = condition & Key("transaction_id").between(
            storage_timestamp(period.start), storage_timestamp(period.end)
        )

    kwargs: Dict[str, Any] = {"KeyConditionExpression": condition}
    if txn_type is not None:
        kwargs["FilterExpression"] = Attr("type").eq(TransactionType(txn_type).value)

    items: List[Dict[str, Any]] = []
    try:
        while True:
            response = transactions_table.query(**kwargs)
            items.extend(response.get("Items", []))
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key
    except (ClientError, BotoCoreError) as e:
        logger.error(f"find_transactions failed for user {user_id}: {_error_message(e)}")
        raise StoreUnavailable(_error_message(e)) from e

    return [Transaction(**_from_dynamo(item)) for item in items]


def put_transaction(transaction_item: dict):
    """Insert or update a transaction for a user."""
    try:
        transactions_table.put_item(Item=_convert_for_dynamo(transaction_item))
        return True
    except ClientError as e:
        logger.error(f"put_transaction failed: {_error_message(e)}")
        return False


def get_transaction(user_id: str, transaction_id: str) -> Optional[Transaction]:
    """Fetch a single transaction item."""
    try:
        response = transactions_table.get_item(Key={"user_id": user_id, "transaction_id": transaction_id})
    except (ClientError, BotoCoreError) as e:
        logger.error(f"get_transaction failed: {_error_message(e)}")
        raise StoreUnavailable(_error_message(e)) from e
    item = response.get("Item")
    return Transaction(**_from_dynamo(item)) if item else None


def update_transaction(user_id: str, transaction_id: str, updates: dict) -> Optional[Transaction]:
    """
    Apply partial updates to a transaction. Returns the updated transaction or
    None when it does not exist for this user.
    """
    try:
        attributes = _update_item(
            transactions_table,
            {"user_id": user_id, "transaction_id": transaction_id},
            updates,
            must_exist=True,
        )
    except ClientError as e:
        if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
            return None
        logger.error(f"update_transaction failed: {_error_message(e)}")
        raise StoreUnavailable(_error_message(e)) from e
    return Transaction(**attributes) if attributes else None


def delete_transaction(user_id: str, transaction_id: str):
    """Delete a specific transaction item."""
    try:
        response = transactions_table.delete_item(
            Key={"user_id": user_id, "transaction_id": transaction_id},
            ReturnValues="ALL_OLD",
        )
        return "Attributes" in response
    except ClientError as e:
        logger.error(f"delete_transaction failed: {_error_message(e)}")
        return False


def _update_item(table, key: dict, updates: dict, must_exist: bool = False):
    if not updates:
        return None

    update_expression_parts = []
    expression_attribute_values = {}
    expression_attribute_names = {}

    for idx, (field, value) in enumerate(updates.items()):
        placeholder = f"#f{idx}"
        value_placeholder = f":v{idx}"
        update_expression_parts.append(f"{placeholder} = {value_placeholder}")
        expression_attribute_names[placeholder] = field
        expression_attribute_values[value_placeholder] = value

    kwargs: Dict[str, Any] = {
        "Key": key,
        "UpdateExpression": "SET " + ", ".join(update_expression_parts),
        "ExpressionAttributeNames": expression_attribute_names,
        "ExpressionAttributeValues": _convert_for_dynamo(expression_attribute_values),
        "ReturnValues": "ALL_NEW",
    }
    if must_exist:
        # update_item would otherwise upsert a half-empty row
        kwargs["ConditionExpression"] = Attr(next(iter(key))).exists()

    response = table.update_item(**kwargs)
    attributes = response.get("Attributes")
    return _from_dynamo(attributes) if attributes else None


def _drop_none(item: dict) -> dict:
    return {k: v for k, v in item.items() if v is not None}


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
