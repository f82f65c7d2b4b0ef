import logging
import threading
from decimal import Decimal
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from app.core.config import Settings
from app.core.errors import ConflictError, NotFoundError, StoreError
from app.models.ledger import LedgerEntryInDB, LedgerKind
from app.models.user import UserInDB

logger = logging.getLogger(__name__)

# The users table holds two record types: users keyed by their id, and one
# email claim per user keyed by EMAIL#<email>. Both are written in a single
# transaction so email uniqueness is enforced by DynamoDB itself.
USER_RECORD = "USER"
EMAIL_CLAIM_RECORD = "EMAIL_CLAIM"
EMAIL_CLAIM_PREFIX = "EMAIL#"

# Ledger LSI: sort key "<KIND>#<iso date>" so one query gives entries of one
# kind ordered by date.
KIND_DATE_INDEX = "kind-date-index"
KIND_DATE_UPPER = "~"  # sorts after every ISO timestamp character

DUPLICATE_EMAIL_MESSAGE = "User With This Email Already Exists"


def connect(settings: Settings):
    """Create the DynamoDB resource described by settings."""
    return boto3.resource(
        "dynamodb",
        region_name=settings.DYNAMO_REGION,
        endpoint_url=settings.DYNAMO_ENDPOINT_URL,
    )


def create_tables(dynamodb, settings: Settings) -> None:
    """Create the users and ledger tables if they are missing (local development and tests)."""
    existing = {table.name for table in dynamodb.tables.all()}

    if settings.DYNAMO_USERS_TABLE not in existing:
        logger.info(f"Creating table {settings.DYNAMO_USERS_TABLE}")
        table = dynamodb.create_table(
            TableName=settings.DYNAMO_USERS_TABLE,
            KeySchema=[{"AttributeName": "user_id", "KeyType": "HASH"}],
            AttributeDefinitions=[{"AttributeName": "user_id", "AttributeType": "S"}],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()

    if settings.DYNAMO_LEDGER_TABLE not in existing:
        logger.info(f"Creating table {settings.DYNAMO_LEDGER_TABLE}")
        table = dynamodb.create_table(
            TableName=settings.DYNAMO_LEDGER_TABLE,
            KeySchema=[
                {"AttributeName": "user_id", "KeyType": "HASH"},
                {"AttributeName": "entry_id", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "user_id", "AttributeType": "S"},
                {"AttributeName": "entry_id", "AttributeType": "S"},
                {"AttributeName": "kind_date", "AttributeType": "S"},
            ],
            LocalSecondaryIndexes=[
                {
                    "IndexName": KIND_DATE_INDEX,
                    "KeySchema": [
                        {"AttributeName": "user_id", "KeyType": "HASH"},
                        {"AttributeName": "kind_date", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                }
            ],
            BillingMode="PAY_PER_REQUEST",
        )
        table.wait_until_exists()


def verify_tables(dynamodb, settings: Settings) -> None:
    """Fail fast when a configured table cannot be reached."""
    for name in (settings.DYNAMO_USERS_TABLE, settings.DYNAMO_LEDGER_TABLE):
        try:
            dynamodb.Table(name).load()
        except ClientError as e:
            raise _store_error(f"verify table {name}", e)


class _ThreadLocalTable:
    """One Table per thread, each on its own session; boto3 resources are not shared across threads."""

    def __init__(self, dynamodb, table_name: str):
        client_meta = dynamodb.meta.client.meta
        self._region = client_meta.region_name
        self._endpoint_url = client_meta.endpoint_url
        self._table_name = table_name
        self._local = threading.local()

    def get(self):
        table = getattr(self._local, "table", None)
        if table is None:
            resource = boto3.session.Session().resource(
                "dynamodb", region_name=self._region, endpoint_url=self._endpoint_url
            )
            table = resource.Table(self._table_name)
            self._local.table = table
        return table


class UserStore:
    """Credential store: user records plus their email claims."""

    def __init__(self, dynamodb, table_name: str):
        self._tables = _ThreadLocalTable(dynamodb, table_name)
        self._client = dynamodb.meta.client
        self.table_name = table_name

    @property
    def _table(self):
        return self._tables.get()

    def get_by_id(self, user_id: str) -> Optional[UserInDB]:
        try:
            response = self._table.get_item(Key={"user_id": user_id})
        except ClientError as e:
            raise _store_error("get_user_by_id", e)
        item = response.get("Item")
        if not item or item.get("record_type") != USER_RECORD:
            return None
        return UserInDB(**item)

    def get_by_email(self, email: str) -> Optional[UserInDB]:
        try:
            response = self._table.get_item(Key={"user_id": _email_key(email)})
        except ClientError as e:
            raise _store_error("get_user_by_email", e)
        claim = response.get("Item")
        if not claim:
            return None
        return self.get_by_id(claim["owner_id"])

    def create(self, user: UserInDB) -> UserInDB:
        """Insert a user and claim its email; ConflictError if the email is taken."""
        items = [
            {
                "Put": {
                    "TableName": self.table_name,
                    "Item": _convert_for_dynamo(_claim_item(user)),
                    "ConditionExpression": "attribute_not_exists(user_id)",
                }
            },
            {
                "Put": {
                    "TableName": self.table_name,
                    "Item": _convert_for_dynamo(_user_item(user)),
                    "ConditionExpression": "attribute_not_exists(user_id)",
                }
            },
        ]
        try:
            self._client.transact_write_items(TransactItems=items)
        except ClientError as e:
            if _failed_conditions(e) is not None:
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
            raise _store_error("create_user", e)
        return user

    def update(self, user: UserInDB, previous_email: str) -> UserInDB:
        """
        Persist a modified user. When the email changed, the old claim is
        released and the new one taken in the same transaction.
        """
        put_user = {
            "Put": {
                "TableName": self.table_name,
                "Item": _convert_for_dynamo(_user_item(user)),
                "ConditionExpression": "attribute_exists(user_id)",
            }
        }
        if user.email == previous_email:
            items = [put_user]
        else:
            items = [
                put_user,
                {
                    "Put": {
                        "TableName": self.table_name,
                        "Item": _convert_for_dynamo(_claim_item(user)),
                        "ConditionExpression": "attribute_not_exists(user_id)",
                    }
                },
                {
                    "Delete": {
                        "TableName": self.table_name,
                        "Key": {"user_id": _email_key(previous_email)},
                        "ConditionExpression": "owner_id = :owner",
                        "ExpressionAttributeValues": {":owner": user.user_id},
                    }
                },
            ]

        try:
            self._client.transact_write_items(TransactItems=items)
        except ClientError as e:
            failed = _failed_conditions(e)
            if failed is None:
                raise _store_error("update_user", e)
            if 0 in failed:
                raise NotFoundError("User Not Found")
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
        return user


class LedgerStore:
    """Income and expense entries, one table, partitioned by owner."""

    def __init__(self, dynamodb, table_name: str):
        self._tables = _ThreadLocalTable(dynamodb, table_name)
        self.table_name = table_name

    @property
    def _table(self):
        return self._tables.get()

    def insert(self, entry: LedgerEntryInDB) -> LedgerEntryInDB:
        item = entry.model_dump()
        item["kind"] = entry.kind.value
        item["kind_date"] = entry.kind_date
        try:
            self._table.put_item(Item=_convert_for_dynamo(item))
        except ClientError as e:
            raise _store_error("insert_entry", e)
        return entry

    def list_by_owner(self, user_id: str, kind: LedgerKind) -> List[LedgerEntryInDB]:
        """All entries of one kind for a user, newest first."""
        condition = Key("user_id").eq(user_id) & Key("kind_date").begins_with(kind.key_prefix)
        return [_to_entry(item) for item in self._query_all(condition)]

    def list_since(self, user_id: str, kind: LedgerKind, date_floor: str) -> List[LedgerEntryInDB]:
        """Entries dated at or after date_floor (ISO timestamp), newest first."""
        condition = Key("user_id").eq(user_id) & Key("kind_date").between(
            f"{kind.key_prefix}{date_floor}", f"{kind.key_prefix}{KIND_DATE_UPPER}"
        )
        return [_to_entry(item) for item in self._query_all(condition)]

    def recent(self, user_id: str, kind: LedgerKind, limit: int = 5) -> List[LedgerEntryInDB]:
        condition = Key("user_id").eq(user_id) & Key("kind_date").begins_with(kind.key_prefix)
        try:
            response = self._table.query(
                IndexName=KIND_DATE_INDEX,
                KeyConditionExpression=condition,
                ScanIndexForward=False,
                Limit=limit,
            )
        except ClientError as e:
            raise _store_error("recent_entries", e)
        return [_to_entry(item) for item in response["Items"]]

    def sum_where(self, user_id: str, kind: LedgerKind, date_floor: Optional[str] = None) -> Decimal:
        """Sum of amounts, 0 when nothing matches."""
        if date_floor is None:
            condition = Key("user_id").eq(user_id) & Key("kind_date").begins_with(kind.key_prefix)
        else:
            condition = Key("user_id").eq(user_id) & Key("kind_date").between(
                f"{kind.key_prefix}{date_floor}", f"{kind.key_prefix}{KIND_DATE_UPPER}"
            )
        items = self._query_all(
            condition,
            ProjectionExpression="#amount",
            ExpressionAttributeNames={"#amount": "amount"},
        )
        return sum((Decimal(item["amount"]) for item in items), Decimal("0"))

    def delete_by_id(self, user_id: str, kind: LedgerKind, entry_id: str) -> Optional[LedgerEntryInDB]:
        """
        Delete an entry of the given kind owned by user_id. Returns the deleted
        entry, or None when no such entry exists (nothing is written then).
        """
        try:
            response = self._table.delete_item(
                Key={"user_id": user_id, "entry_id": entry_id},
                ConditionExpression=Attr("kind").eq(kind.value),
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            if e.response["Error"]["Code"] == "ConditionalCheckFailedException":
                return None
            raise _store_error("delete_entry", e)
        attributes = response.get("Attributes")
        return _to_entry(attributes) if attributes else None

    def _query_all(self, condition, **kwargs) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        params = dict(
            IndexName=KIND_DATE_INDEX,
            KeyConditionExpression=condition,
            ScanIndexForward=False,
            **kwargs,
        )
        try:
            while True:
                response = self._table.query(**params)
                items.extend(response["Items"])
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    return items
                params["ExclusiveStartKey"] = last_key
        except ClientError as e:
            raise _store_error("query_entries", e)


def _email_key(email: str) -> str:
    return f"{EMAIL_CLAIM_PREFIX}{email}"


def _user_item(user: UserInDB) -> Dict[str, Any]:
    item = user.model_dump()
    item["record_type"] = USER_RECORD
    return item


def _claim_item(user: UserInDB) -> Dict[str, Any]:
    return {
        "user_id": _email_key(user.email),
        "record_type": EMAIL_CLAIM_RECORD,
        "owner_id": user.user_id,
    }


def _to_entry(item: Dict[str, Any]) -> LedgerEntryInDB:
    return LedgerEntryInDB(**item)


def _failed_conditions(e: ClientError) -> Optional[List[int]]:
    """
    Indexes of transaction items whose condition failed, or None when the
    error is not a condition failure.
    """
    if e.response["Error"]["Code"] != "TransactionCanceledException":
        return None
    reasons = e.response.get("CancellationReasons") or []
    failed = [i for i, reason in enumerate(reasons) if reason.get("Code") == "ConditionalCheckFailed"]
    if reasons and not failed:
        return None
    return failed


def _store_error(operation: str, e: ClientError) -> StoreError:
    message = e.response["Error"]["Message"]
    logger.error(f"{operation} failed: {message}")
    return StoreError(message)


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
