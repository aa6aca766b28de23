"""Kitchen display API schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict

from pos_api.schemas.common import UTCDateTime


class KitchenOrderStatusUpdate(BaseModel):
    status: Literal["PREPARING", "READY"]


class KitchenItemStatusUpdate(BaseModel):
    status: Literal["PENDING", "PREPARING", "READY", "SERVED", "CANCELLED"]


class KitchenItemResponse(BaseModel):
    id: int
    name: str
    quantity: int
    status: str
    notes: str | None = None
    modifiers: str
    preparation_time: int

    model_config = ConfigDict(from_attributes=True)


class KitchenOrderResponse(BaseModel):
    """Order as shown on the kitchen display."""

    id: int
    order_number: str
    status: str
    type: str
    table_number: int | None = None
    server_name: str
    notes: str | None = None
    created_at: UTCDateTime
    order_age: int
    estimated_prep_time: int
    is_overdue: bool
    items: list[KitchenItemResponse]

    model_config = ConfigDict(from_attributes=True)


class KitchenItemStatusResponse(BaseModel):
    id: int
    order_id: int
    status: str

    model_config = ConfigDict(from_attributes=True)


class WaitingOrderResponse(BaseModel):
    id: int
    order_number: str
    created_at: UTCDateTime
    wait_time_minutes: int

    model_config = ConfigDict(from_attributes=True)


class KitchenStatsResponse(BaseModel):
    """Today's kitchen throughput."""

    pending: int
    preparing: int
    ready: int
    completed: int
    average_prep_time_minutes: int
    oldest_pending: WaitingOrderResponse | None = None
    oldest_preparing: WaitingOrderResponse | None = None

    model_config = ConfigDict(from_attributes=True)
