"""
Pydantic schemas for request/response validation.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, validator

from tableside_shared.constants import PRODUCT_ID_MAX_LENGTH
from tableside_shared.validation import validate_customer_token, validate_table_status


class CartLineRequest(BaseModel):
    product_id: str = Field(..., min_length=1, max_length=PRODUCT_ID_MAX_LENGTH)
    quantity: int = Field(..., ge=0, le=999)
    unit_price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    display_name: str = Field(..., min_length=1, max_length=200)

    @validator("product_id", "display_name")
    def strip_text(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("must not be blank")
        return v


class SubmitCartRequest(BaseModel):
    customer_token: str
    session_id: str = Field(..., min_length=1, max_length=64)
    items: list[CartLineRequest] = Field(default_factory=list, max_length=200)

    @validator("customer_token")
    def validate_token(cls, v):
        return validate_customer_token(v)


class CustomerActionRequest(BaseModel):
    customer_token: str
    session_id: str = Field(..., min_length=1, max_length=64)

    @validator("customer_token")
    def validate_token(cls, v):
        return validate_customer_token(v)


class PlaceOrderRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=64)


class SetTableStatusRequest(BaseModel):
    status: str

    @validator("status")
    def validate_status(cls, v):
        return validate_table_status(v).value


class StaffOrderActionRequest(BaseModel):
    """Body of the staff PATCH on a table order."""

    action: str = Field(..., pattern=r"^(process|close|remove_item|mark_processed)$")
    item_id: str | None = Field(None, max_length=PRODUCT_ID_MAX_LENGTH)
    customer_token: str | None = None

    @validator("item_id", always=True)
    def require_item_for_line_actions(cls, v, values):
        if values.get("action") in {"remove_item", "mark_processed"} and not v:
            raise ValueError("item_id is required for this action")
        return v


class CreateTableRequest(BaseModel):
    restaurant_id: int
    area_id: int
    label: str = Field(..., min_length=1, max_length=50)
    capacity: int = Field(default=4, ge=1, le=50)
