"""Boundary validation for order lifecycle payloads.

Accepts both the snake_case names used inside the platform and the camelCase
names of the marketplace order contract (``orderId``, ``medicineId`` ...).
Pydantic errors are converted into Protean ``ValidationError`` so callers deal
with a single error type.
"""

import json

from protean.exceptions import ValidationError
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError


class OrderLineItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    medicine_id: str = Field(..., alias="medicineId", min_length=1)
    batch_number: str = Field(..., alias="batchNumber", min_length=1, max_length=50)
    quantity: int = Field(..., ge=1)


class OrderEventPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId", min_length=1)
    shop_id: str = Field(..., alias="shopId", min_length=1)
    user_id: str | None = Field(None, alias="userId")
    items: list[OrderLineItem] = Field(..., min_length=1)


def _as_protean_error(exc: PydanticValidationError) -> ValidationError:
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "payload"
        messages.setdefault(field, []).append(error["msg"])
    return ValidationError(messages)


def parse_order_payload(data) -> OrderEventPayload:
    """Validate a raw payload (dict or JSON string) into an OrderEventPayload."""
    try:
        if isinstance(data, str | bytes):
            return OrderEventPayload.model_validate_json(data)
        return OrderEventPayload.model_validate(data)
    except PydanticValidationError as exc:
        raise _as_protean_error(exc) from exc


def payload_from_event(event) -> OrderEventPayload:
    """Build a payload from a shared ordering event whose items are a JSON list."""
    try:
        items = json.loads(event.items) if isinstance(event.items, str) else event.items
    except json.JSONDecodeError as exc:
        raise ValidationError({"items": [f"Items are not valid JSON: {exc.msg}"]}) from exc

    return parse_order_payload(
        {
            "order_id": str(event.order_id) if event.order_id else None,
            "shop_id": str(event.shop_id) if event.shop_id else None,
            "user_id": str(event.user_id) if event.user_id else None,
            "items": items,
        }
    )
