"""Request DTOs for write operations and the inspection API."""

from typing import Any

from pydantic import BaseModel, Field

DEFAULT_ORDER_STATUS = "Entrega pendente"


class CreateOrderRequest(BaseModel):
    """Payload for POST /ops."""

    op_number: str = Field(..., description="Order number to open", min_length=1)
    status: str = Field(DEFAULT_ORDER_STATUS, description="Initial status", min_length=1)


class UpdateOrderRequest(BaseModel):
    """Payload for PUT /ops/{id}."""

    status: str = Field(..., description="New status", min_length=1)


class MutateCacheRequest(BaseModel):
    """Request DTO for an optimistic cache overwrite."""

    data: Any = Field(..., description="New collection value, replaces the cached one wholesale")
    revalidate: bool = Field(
        False,
        description="Also trigger an immediate out-of-schedule fetch",
    )


class RevalidateRequest(BaseModel):
    """Request DTO for a manual revalidation."""

    params: dict[str, Any] | None = Field(
        None,
        description="Query parameters for the remote read (defaults to the key's last params)",
    )
