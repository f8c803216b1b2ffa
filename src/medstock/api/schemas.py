"""Pydantic request/response schemas for the inventory API.

These are external contracts (anti-corruption layer), separate from
internal Protean commands.
"""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, model_validator


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class PricingSchema(BaseModel):
    cost_price: float = Field(gt=0)
    selling_price: float = Field(gt=0)
    mrp: float = Field(gt=0)
    discount_percentage: float = Field(default=0.0, ge=0, le=100)
    tax_percentage: float = Field(default=0.0, ge=0, le=100)


class SupplierSchema(BaseModel):
    name: str | None = Field(default=None, max_length=200)
    contact: str | None = Field(default=None, max_length=100)
    invoice_number: str | None = Field(default=None, max_length=100)


class LocationSchema(BaseModel):
    rack: str | None = Field(default=None, max_length=20)
    shelf: str | None = Field(default=None, max_length=20)
    bin: str | None = Field(default=None, max_length=20)


class AlertSettingsSchema(BaseModel):
    low_stock_threshold: int = Field(default=10, ge=0)
    expiry_alert_days: int = Field(default=30, ge=0)


StockUnitName = Literal["tablets", "capsules", "bottles", "tubes", "packs", "strips", "vials", "pieces"]


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class AddLotRequest(BaseModel):
    shop_id: str
    medicine_id: str
    batch_number: str = Field(min_length=1, max_length=50)
    quantity: int = Field(ge=0)
    pricing: PricingSchema
    manufacturing_date: date
    expiry_date: date
    unit: StockUnitName = "pieces"
    supplier: SupplierSchema | None = None
    location: LocationSchema | None = None
    alerts: AlertSettingsSchema | None = None


class MovementRequest(BaseModel):
    movement_type: Literal["in", "out", "adjustment", "return"]
    quantity: int = Field(ge=0)
    reason: str
    reference: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=200)
    expected_revision: int | None = Field(default=None, ge=1)


class UpdateLotRequest(BaseModel):
    cost_price: float | None = Field(default=None, gt=0)
    selling_price: float | None = Field(default=None, gt=0)
    mrp: float | None = Field(default=None, gt=0)
    discount_percentage: float | None = Field(default=None, ge=0, le=100)
    tax_percentage: float | None = Field(default=None, ge=0, le=100)
    supplier: SupplierSchema | None = None
    location: LocationSchema | None = None
    unit: StockUnitName | None = None
    expected_revision: int | None = Field(default=None, ge=1)


class UpdateAlertSettingsRequest(BaseModel):
    low_stock_threshold: int | None = Field(default=None, ge=0)
    expiry_alert_days: int | None = Field(default=None, ge=0, le=365)

    @model_validator(mode="after")
    def at_least_one_setting(self):
        if self.low_stock_threshold is None and self.expiry_alert_days is None:
            raise ValueError("Provide low_stock_threshold or expiry_alert_days")
        return self


class MarkConditionRequest(BaseModel):
    condition: Literal["damaged", "returned"]
    reason: str = Field(min_length=1, max_length=200)


class BulkUpdateItem(BaseModel):
    medicine_id: str
    batch_number: str = Field(min_length=1, max_length=50)
    quantity: int = Field(ge=0)
    cost_price: float | None = Field(default=None, gt=0)
    selling_price: float | None = Field(default=None, gt=0)
    mrp: float | None = Field(default=None, gt=0)


class BulkUpdateRequest(BaseModel):
    shop_id: str
    items: list[BulkUpdateItem] = Field(min_length=1, max_length=50)


class SweepRequest(BaseModel):
    shop_id: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class PricingResponse(PricingSchema):
    discounted_price: float
    final_price: float
    profit_margin: float


class MovementResponse(BaseModel):
    movement_type: str
    quantity: int
    reason: str
    reference: str | None = None
    performed_by: str | None = None
    notes: str | None = None
    timestamp: datetime
    quantity_after: int | None = None
    reserved_after: int | None = None


class LotResponse(BaseModel):
    lot_id: str
    shop_id: str
    medicine_id: str
    batch_number: str
    quantity: int
    reserved_quantity: int
    available_quantity: int
    unit: str
    status: str
    revision: int
    pricing: PricingResponse
    supplier: SupplierSchema | None = None
    location: LocationSchema | None = None
    alerts: AlertSettingsSchema
    manufacturing_date: date
    expiry_date: date
    created_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_stock_update: datetime | None = None
    movements: list[MovementResponse] = []


class LotSummaryResponse(BaseModel):
    lot_id: str
    medicine_id: str
    batch_number: str
    quantity: int
    reserved_quantity: int
    available_quantity: int
    unit: str | None = None
    status: str
    selling_price: float | None = None
    expiry_date: date | None = None
    updated_at: datetime | None = None


class LotListResponse(BaseModel):
    items: list[LotSummaryResponse]
    total: int
    limit: int
    offset: int


class ShopAlertsResponse(BaseModel):
    low_stock: list[LotSummaryResponse]
    expiring: list[LotSummaryResponse]
    expired: list[LotSummaryResponse]
    counts: dict[str, int]


class InventorySummaryResponse(BaseModel):
    total_items: int
    total_quantity: int
    total_value: float
    low_stock_count: int
    expired_count: int


class BulkUpdateResponse(BaseModel):
    successful: list[dict]
    failed: list[dict]


class OrderLineResultResponse(BaseModel):
    medicine_id: str
    batch_number: str
    quantity: int
    outcome: str
    error: dict | str | None = None


class OrderProcessingResponse(BaseModel):
    order_id: str
    event_kind: str
    lines: list[OrderLineResultResponse]


class SweepResponse(BaseModel):
    checked: int
    changed: int
    failed: int


class StatusResponse(BaseModel):
    status: str = "ok"
