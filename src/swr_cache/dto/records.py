"""Resource record schemas validated at the fetcher boundary."""

from datetime import datetime

from pydantic import BaseModel, Field


class OrderUser(BaseModel):
    """User who owns a production order."""

    name: str

    model_config = {"extra": "allow"}


class ProductionOrder(BaseModel):
    """A production order ("OP") as served by GET /ops."""

    id: str = Field(..., description="Server-assigned identifier")
    status: str = Field(..., description="Delivery status, e.g. 'Entrega pendente'")
    op_number: str | None = Field(None, description="Order number as entered by the user")
    part_number: str | None = None
    description: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    user: OrderUser | None = None

    model_config = {"extra": "allow"}


# Resource key -> record schema used by the default fetcher
DEFAULT_SCHEMAS: dict[str, type[BaseModel]] = {
    "ops": ProductionOrder,
}
