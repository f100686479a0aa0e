"""Remote write operations that keep the cached collection in step.

Each operation validates its payload, performs the remote write, and only
after the write succeeded splices the result into the cached collection
with an optimistic mutation (no revalidation). A failed write raises and
leaves the cache untouched.
"""

import logging
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from swr_cache.dto import CreateOrderRequest, UpdateOrderRequest
from swr_cache.errors import ValidationError
from swr_cache.repositories import HttpResourceRepository
from swr_cache.services import SyncService, append_record, mutations, remove_record, replace_record

logger = logging.getLogger(__name__)


class CollectionWriter:
    """Create, update and delete records of a cached collection.

    Example:
        ```python
        writer = CollectionWriter(cache, repository)
        order = await writer.create("ops", {"op_number": "4711"})
        await writer.update("ops", order.id, {"status": "Entregue"})
        await writer.delete("ops", order.id)
        ```
    """

    def __init__(
        self,
        cache: SyncService,
        repository: HttpResourceRepository,
        create_schema: type[BaseModel] = CreateOrderRequest,
        update_schema: type[BaseModel] = UpdateOrderRequest,
    ) -> None:
        """Initialize the writer.

        Args:
            cache: The sync service holding the collection.
            repository: Remote API used for the writes.
            create_schema: Model validating create payloads.
            update_schema: Model validating update payloads.
        """
        self._cache = cache
        self._repository = repository
        self._create_schema = create_schema
        self._update_schema = update_schema

    async def create(self, key: str, payload: dict[str, Any]) -> Any:
        """POST a record and append it to the cached collection.

        Returns:
            The created record

        Raises:
            ValidationError: If payload is invalid (nothing is sent)
            TransportError: If the remote write failed (cache untouched)
        """
        body = self._validate(self._create_schema, payload)
        record = await self._repository.create(key, body)
        self._cache.mutate(key, append_record(self._cache.get(key).data, record))
        logger.info("Created record in %s", key)
        return record

    async def update(self, key: str, record_id: str, changes: dict[str, Any]) -> Any:
        """PUT changes and replace the record in the cached collection.

        The server's echoed record is used when it returns one; otherwise the
        cached record is merged with the changes and a fresh updated_at.

        Returns:
            The record as placed in the cache, or None if it was not cached

        Raises:
            ValidationError: If changes are invalid (nothing is sent)
            TransportError: If the remote write failed (cache untouched)
        """
        body = self._validate(self._update_schema, changes)
        echoed = await self._repository.update(key, record_id, body)
        collection = self._cache.get(key).data
        updated = replace_record(
            collection,
            record_id,
            changes={**body, "updated_at": datetime.now(timezone.utc)},
            record=echoed,
        )
        self._cache.mutate(key, updated)
        logger.info("Updated record %s in %s", record_id, key)
        return next((item for item in updated if mutations.matches_id(item, record_id)), None)

    async def delete(self, key: str, record_id: str) -> None:
        """DELETE a record and remove it from the cached collection.

        Raises:
            TransportError: If the remote write failed (cache untouched)
        """
        await self._repository.delete(key, record_id)
        self._cache.mutate(key, remove_record(self._cache.get(key).data, record_id))
        logger.info("Deleted record %s from %s", record_id, key)

    @staticmethod
    def _validate(schema: type[BaseModel], payload: dict[str, Any]) -> dict[str, Any]:
        try:
            return schema.model_validate(payload).model_dump(mode="json")
        except PydanticValidationError as e:
            raise ValidationError(
                f"Invalid {schema.__name__}",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e
