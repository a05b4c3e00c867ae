# post_notifications/infra/table_client.py
import asyncio
import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from azure.core.exceptions import ResourceNotFoundError
from azure.data.tables import UpdateMode
from azure.data.tables.aio import TableClient, TableServiceClient

from post_notifications import config
from post_notifications.errors import NotificationNotFoundError

logger = logging.getLogger(__name__)

# Azure entity-group transactions accept at most 100 operations
TRANSACTION_LIMIT = 100

_KEY_FIELDS = ("id", "userId")


def to_entity(user_id: str, notification_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Document -> Table entity. PartitionKey = recipient, RowKey = notification id.
    None values are left out (Table Storage has no null properties).
    """
    entity: Dict[str, Any] = {"PartitionKey": user_id, "RowKey": notification_id}
    for key, value in fields.items():
        if key in _KEY_FIELDS or value is None:
            continue
        entity[key] = value.value if isinstance(value, Enum) else value
    return entity


def from_entity(entity: Dict[str, Any]) -> Dict[str, Any]:
    doc = {k: v for k, v in entity.items() if k not in ("PartitionKey", "RowKey")}
    doc["id"] = entity["RowKey"]
    doc["userId"] = entity["PartitionKey"]
    doc.setdefault("actorAvatar", None)
    return doc


def build_filter(user_id: str, equals: Dict[str, Any]) -> Tuple[str, Dict[str, Any]]:
    """OData filter scoped to the recipient's partition, values passed as parameters."""
    clauses = ["PartitionKey eq @pk"]
    parameters: Dict[str, Any] = {"pk": user_id}
    for index, (field, value) in enumerate(sorted(equals.items())):
        name = f"p{index}"
        clauses.append(f"{field} eq @{name}")
        parameters[name] = value.value if isinstance(value, Enum) else value
    return " and ".join(clauses), parameters


def chunked(items: List[str], size: int) -> List[List[str]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


class AzureTableNotificationStore:
    """Notification documents in Azure Table Storage, one partition per recipient."""

    def __init__(self, conn_str: Optional[str] = None, table_name: Optional[str] = None):
        self.conn_str = conn_str if conn_str is not None else config.AZURE_STORAGE_CONNECTION_STRING
        self.table_name = table_name or config.TABLE_NAME
        self._service: Optional[TableServiceClient] = None
        self._table: Optional[TableClient] = None
        self._lock = asyncio.Lock()

    async def get_table_client(self) -> TableClient:
        if self._table is not None:
            return self._table
        if not self.conn_str:
            raise RuntimeError("AZURE_STORAGE_CONNECTION_STRING is not configured")
        async with self._lock:
            if self._table is None:
                self._service = TableServiceClient.from_connection_string(conn_str=self.conn_str)
                self._table = await self._service.create_table_if_not_exists(table_name=self.table_name)
                logger.info("Using table %s", self.table_name)
        return self._table

    async def insert(self, user_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        table_client = await self.get_table_client()
        doc = dict(fields)
        doc["isRead"] = False
        doc["timestamp"] = datetime.now(timezone.utc)
        entity = to_entity(user_id, str(uuid.uuid4()), doc)
        await table_client.create_entity(entity=entity)
        return from_entity(entity)

    async def get(self, user_id: str, notification_id: str) -> Optional[Dict[str, Any]]:
        table_client = await self.get_table_client()
        try:
            entity = await table_client.get_entity(partition_key=user_id, row_key=notification_id)
        except ResourceNotFoundError:
            return None
        return from_entity(entity)

    async def query(self, user_id: str, **equals: Any) -> List[Dict[str, Any]]:
        table_client = await self.get_table_client()
        query_filter, parameters = build_filter(user_id, equals)
        entities = table_client.query_entities(query_filter=query_filter, parameters=parameters)
        return [from_entity(entity) async for entity in entities]

    async def update(self, user_id: str, notification_id: str, fields: Dict[str, Any]) -> None:
        table_client = await self.get_table_client()
        entity = to_entity(user_id, notification_id, fields)
        try:
            # MERGE keeps every property we don't send
            await table_client.update_entity(entity=entity, mode=UpdateMode.MERGE)
        except ResourceNotFoundError:
            raise NotificationNotFoundError(user_id, notification_id)

    async def delete(self, user_id: str, notification_id: str) -> None:
        table_client = await self.get_table_client()
        await table_client.delete_entity(partition_key=user_id, row_key=notification_id)

    async def delete_batch(self, user_id: str, notification_ids: Iterable[str]) -> None:
        table_client = await self.get_table_client()
        for chunk in chunked(list(notification_ids), TRANSACTION_LIMIT):
            operations = [
                ("delete", {"PartitionKey": user_id, "RowKey": notification_id})
                for notification_id in chunk
            ]
            await table_client.submit_transaction(operations)

    async def close(self) -> None:
        if self._table is not None:
            await self._table.close()
        if self._service is not None:
            await self._service.close()
        self._table = None
        self._service = None


def build_store():
    """Store selected by NOTIFICATION_STORE."""
    if config.NOTIFICATION_STORE == "memory":
        from post_notifications.infra.memory_store import InMemoryNotificationStore
        return InMemoryNotificationStore()
    return AzureTableNotificationStore()
