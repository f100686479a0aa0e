"""HTTP implementation of Fetcher, plus the remote write operations.

Talks to a JSON REST API where every resource key is a collection path:

- GET    /<key>        read the collection (array of records)
- POST   /<key>        create a record
- PUT    /<key>/<id>   update a record
- DELETE /<key>/<id>   delete a record

Payloads are validated against a per-key pydantic schema at this boundary,
so everything above the repository sees typed records instead of raw JSON.
Every failure (transport, non-2xx, undecodable or invalid body) surfaces as
TransportError.
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from swr_cache.config import settings
from swr_cache.dto import DEFAULT_SCHEMAS
from swr_cache.errors import TransportError

logger = logging.getLogger(__name__)


class HttpResourceRepository:
    """httpx-based implementation of the Fetcher protocol.

    This class satisfies the Fetcher protocol through structural typing -
    no explicit inheritance needed.

    Example:
        ```python
        repo = HttpResourceRepository.create(base_url="https://api.example.com")
        orders = await repo.fetch("ops")
        created = await repo.create("ops", {"op_number": "1234", "status": "Entrega pendente"})
        ```
    """

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        token: str | None = None,
        schemas: Mapping[str, type[BaseModel]] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP repository.

        Args:
            base_url: Remote API base URL. Defaults to settings.api_base_url.
            timeout: Request timeout in seconds. Defaults to settings.api_timeout.
            token: Bearer token sent with every request. Defaults to settings.api_token.
            schemas: Resource key -> record model. Unlisted keys pass raw JSON through.
            transport: Custom httpx transport (e.g. httpx.MockTransport in tests).
        """
        self._base_url = base_url or settings.api_base_url
        self._timeout = timeout or settings.api_timeout
        self._token = token if token is not None else settings.api_token
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._collection_adapters: dict[str, TypeAdapter[Any]] = {}
        self._record_adapters: dict[str, TypeAdapter[Any]] = {}
        for key, model in (schemas or {}).items():
            self.register_schema(key, model)

    @classmethod
    def create(
        cls,
        base_url: str | None = None,
        schemas: Mapping[str, type[BaseModel]] | None = None,
    ) -> "HttpResourceRepository":
        """Factory method to create HttpResourceRepository with defaults.

        Args:
            base_url: API base URL. If None, uses settings.
            schemas: Record schemas. If None, uses the built-in schemas (ops).

        Returns:
            Configured HttpResourceRepository
        """
        return cls(
            base_url=base_url,
            schemas=DEFAULT_SCHEMAS if schemas is None else schemas,
        )

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client.

        Returns:
            The httpx.AsyncClient instance
        """
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self._token:
                headers["Authorization"] = f"Bearer {self._token}"
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                headers=headers,
                transport=self._transport,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @property
    def base_url(self) -> str:
        return self._base_url

    def register_schema(self, key: str, model: type[BaseModel]) -> None:
        """Validate payloads for key as a list of model."""
        self._collection_adapters[key] = TypeAdapter(list[model])  # type: ignore[valid-type]
        self._record_adapters[key] = TypeAdapter(model)

    def decode(self, key: str, payload: Any) -> Any:
        """Validate a collection payload against the schema registered for key.

        Args:
            key: The resource key
            payload: Raw JSON value (typically a list of dicts)

        Returns:
            List of records for registered keys, the payload unchanged otherwise

        Raises:
            TransportError: If the payload does not match the schema
        """
        adapter = self._collection_adapters.get(key)
        if adapter is None:
            return payload
        try:
            return adapter.validate_python(payload)
        except PydanticValidationError as e:
            raise TransportError(
                f"Invalid payload for {key}: {e.error_count()} validation error(s)",
                details={"key": key, "errors": e.errors(include_url=False)},
            ) from e

    def decode_record(self, key: str, payload: Any) -> Any:
        """Validate a single record for key (write responses)."""
        adapter = self._record_adapters.get(key)
        if adapter is None:
            return payload
        try:
            return adapter.validate_python(payload)
        except PydanticValidationError as e:
            raise TransportError(
                f"Invalid record for {key}: {e.error_count()} validation error(s)",
                details={"key": key, "errors": e.errors(include_url=False)},
            ) from e

    async def fetch(self, key: str, params: Mapping[str, Any] | None = None) -> Any:
        """Read the collection for key.

        Args:
            key: The resource key (collection path)
            params: Optional query parameters

        Returns:
            The decoded collection

        Raises:
            TransportError: If the request fails or the body is invalid
        """
        response = await self._request("GET", key, params=dict(params or {}))
        return self.decode(key, self._json(response, key))

    async def create(self, key: str, payload: Mapping[str, Any]) -> Any:
        """POST a new record to the collection.

        Returns:
            The created record as returned by the server

        Raises:
            TransportError: If the request fails or the body is invalid
        """
        response = await self._request("POST", key, json=dict(payload))
        return self.decode_record(key, self._json(response, key))

    async def update(self, key: str, record_id: str, payload: Mapping[str, Any]) -> Any | None:
        """PUT changes to one record.

        Returns:
            The updated record if the server echoes one, None otherwise

        Raises:
            TransportError: If the request fails
        """
        response = await self._request("PUT", f"{key}/{record_id}", json=dict(payload))
        if not response.content:
            return None
        body = self._json(response, key)
        if not isinstance(body, Mapping) or "id" not in body:
            return None
        return self.decode_record(key, body)

    async def delete(self, key: str, record_id: str) -> None:
        """DELETE one record.

        Raises:
            TransportError: If the request fails
        """
        await self._request("DELETE", f"{key}/{record_id}")

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.debug("%s %s failed with HTTP %s", method, path, status_code)
            raise TransportError(
                f"{method} {path} returned HTTP {status_code}",
                status_code=status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.debug("%s %s failed: %s", method, path, e)
            raise TransportError(f"{method} {path} failed: {e}") from e
        return response

    @staticmethod
    def _json(response: httpx.Response, key: str) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise TransportError(
                f"Response for {key} is not valid JSON",
                status_code=response.status_code,
            ) from e

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
