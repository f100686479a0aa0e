"""Data Transfer Objects for API contracts and remote records.

These Pydantic models define external contracts: records returned by the
remote API, write payloads, and the inspection API's request/response shapes.

Internal state uses entities from the entities package.
"""

from .records import DEFAULT_SCHEMAS, OrderUser, ProductionOrder
from .requests import (
    DEFAULT_ORDER_STATUS,
    CreateOrderRequest,
    MutateCacheRequest,
    RevalidateRequest,
    UpdateOrderRequest,
)
from .responses import (
    CacheEntryResponse,
    CacheKeysResponse,
    CacheStatsResponse,
    HealthCheckResponse,
)

__all__ = [
    "DEFAULT_SCHEMAS",
    "OrderUser",
    "ProductionOrder",
    "DEFAULT_ORDER_STATUS",
    "CreateOrderRequest",
    "UpdateOrderRequest",
    "MutateCacheRequest",
    "RevalidateRequest",
    "CacheEntryResponse",
    "CacheKeysResponse",
    "CacheStatsResponse",
    "HealthCheckResponse",
]
