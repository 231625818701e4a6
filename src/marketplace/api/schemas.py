"""Pydantic request/response schemas for the Marketplace API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. Money is always in minor units.
"""

from datetime import date, datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class OrderItemSchema(BaseModel):
    product_id: str
    seller_id: str | None = None
    title: str | None = None
    quantity: int = Field(ge=1)
    unit_price: int = Field(ge=0)


class TimelineEntrySchema(BaseModel):
    id: str
    status: str
    previous_status: str | None = None
    changed_by: str | None = None
    reason: str | None = None
    notes: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    metadata: dict | None = None
    timestamp: datetime


class TrackingInfoSchema(BaseModel):
    tracking_number: str
    carrier: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None


class SubOrderSummarySchema(BaseModel):
    id: str
    seller_id: str
    status: str
    subtotal: int
    tracking_number: str | None = None
    carrier: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    items: list[OrderItemSchema] = []
    timeline: list[TimelineEntrySchema] = []
    estimated_delivery: date | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class PlaceOrderRequest(BaseModel):
    customer_id: str
    items: list[OrderItemSchema] = Field(min_length=1)
    shipping_address: dict | None = None
    shipping_method: str | None = None
    payment_method: str | None = None
    order_number: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [
                        {
                            "product_id": "prod-001",
                            "seller_id": "seller-001",
                            "title": "Ceramic Mug",
                            "quantity": 2,
                            "unit_price": 1250,
                        }
                    ],
                    "shipping_address": {"street": "1 Main St", "city": "Springfield", "country": "US"},
                    "shipping_method": "standard",
                    "payment_method": "card",
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    # Optional here so a missing status is reported as a domain validation error
    status: str | None = None
    notes: str | None = None
    reason: str | None = None


class AddTrackingRequest(BaseModel):
    tracking_number: str | None = Field(default=None, alias="trackingNumber")
    carrier: str | None = None

    model_config = {"populate_by_name": True}


class RecordPaymentRequest(BaseModel):
    payment_id: str
    payment_method: str | None = None


# ---------------------------------------------------------------------------
# Settlement Request Schemas
# ---------------------------------------------------------------------------
class RunSettlementRequest(BaseModel):
    as_of: datetime | None = None


class SetCommissionRateRequest(BaseModel):
    rate_percent: float = Field(ge=0, le=100)


class MarkEarningPaidRequest(BaseModel):
    payout_id: str


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class OrderIdResponse(BaseModel):
    order_id: str


class OrderDetailResponse(BaseModel):
    id: str
    source: str
    order_number: str | None = None
    parent_order_id: str | None = None
    seller_id: str | None = None
    customer_id: str | None = None
    status: str
    amount: int
    payment_status: str | None = None
    payment_method: str | None = None
    shipping_address: dict = {}
    shipping_method: str | None = None
    tracking_number: str | None = None
    carrier: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    items: list[OrderItemSchema] = []
    timeline: list[TimelineEntrySchema] = []
    tracking_info: TrackingInfoSchema | None = None
    estimated_delivery: date | None = None
    sub_orders: list[SubOrderSummarySchema] = []
    refund_requests: list[dict] = []
    replacement_requests: list[dict] = []


class OrderSummarySchema(BaseModel):
    id: str
    order_number: str | None = None
    customer_id: str
    status: str
    amount: int
    payment_status: str | None = None
    item_count: int
    tracking_number: str | None = None
    carrier: str | None = None
    created_at: datetime | None = None


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrderListResponse(BaseModel):
    orders: list[OrderSummarySchema]
    pagination: PaginationSchema


class TimelineResponse(BaseModel):
    order_id: str
    timeline: list[TimelineEntrySchema]


class SplitResponse(BaseModel):
    order_id: str
    sub_order_ids: list[str]
    earning_ids: list[str]
    skipped_product_ids: list[str]
    failed_seller_ids: list[str]


class SettlementResponse(BaseModel):
    promoted_count: int
    total_amount_promoted: int
    succeeded: bool
    error: str | None = None


class CommissionRateResponse(BaseModel):
    setting_id: str
    rate_percent: float


class EarningSchema(BaseModel):
    id: str
    order_id: str
    sub_order_id: str
    gross_amount: int
    commission_rate: float
    commission_amount: int
    net_amount: int
    status: str
    available_date: date
    payout_id: str | None = None


class SellerEarningsResponse(BaseModel):
    seller_id: str
    pending_amount: int
    available_amount: int
    paid_amount: int
    earnings: list[EarningSchema]
