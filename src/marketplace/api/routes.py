"""FastAPI routes for the Marketplace domain — orders, sub-orders and settlement."""

import json

from fastapi import APIRouter, Depends, Query
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.api.dependencies import current_caller
from marketplace.api.schemas import (
    AddTrackingRequest,
    CommissionRateResponse,
    MarkEarningPaidRequest,
    OrderDetailResponse,
    OrderIdResponse,
    OrderListResponse,
    PlaceOrderRequest,
    RecordPaymentRequest,
    RunSettlementRequest,
    SellerEarningsResponse,
    SetCommissionRateRequest,
    SettlementResponse,
    SplitResponse,
    StatusResponse,
    TimelineResponse,
    UpdateStatusRequest,
)
from marketplace.earning.commission import SetCommissionRate
from marketplace.earning.payout import MarkEarningPaid
from marketplace.earning.settlement import RunSettlementPass
from marketplace.earning.splitting import SplitOrder
from marketplace.exceptions import AccessDenied
from marketplace.order.payment import RecordPayment
from marketplace.order.placement import PlaceOrder
from marketplace.order.status import AddTracking, UpdateOrderStatus
from marketplace.queries.access import Caller, Role, require_role
from marketplace.queries.detail import order_detail, timeline
from marketplace.queries.earnings import seller_earnings_summary
from marketplace.queries.listing import DEFAULT_LIMIT, MAX_LIMIT, list_orders
from marketplace.queries.lookup import (
    ChildOrder,
    assert_can_manage,
    assert_can_view,
    find_order_or_sub_order,
)
from marketplace.suborder.status import AddSubOrderTracking, UpdateSubOrderStatus


def _require_sub_order(sub_order_id: str) -> None:
    if not isinstance(find_order_or_sub_order(sub_order_id), ChildOrder):
        raise ObjectNotFoundError({"_entity": f"Sub-order {sub_order_id} not found"})


def _detail_response(order_id: str, caller: Caller) -> OrderDetailResponse:
    record = find_order_or_sub_order(order_id)
    assert_can_view(caller, record)
    return OrderDetailResponse(**order_detail(record, caller))


def _update_status(order_id: str, body: UpdateStatusRequest, caller: Caller) -> OrderDetailResponse:
    record = find_order_or_sub_order(order_id)
    assert_can_manage(caller, record)
    if isinstance(record, ChildOrder):
        command = UpdateSubOrderStatus(
            sub_order_id=record.id,
            status=body.status,
            actor_id=caller.user_id,
            notes=body.notes,
        )
    else:
        command = UpdateOrderStatus(
            order_id=record.id,
            status=body.status,
            actor_id=caller.user_id,
            reason=body.reason,
            notes=body.notes,
        )
    current_domain.process(command, asynchronous=False)
    return _detail_response(order_id, caller)


def _add_tracking(order_id: str, body: AddTrackingRequest, caller: Caller) -> OrderDetailResponse:
    record = find_order_or_sub_order(order_id)
    assert_can_manage(caller, record)
    if isinstance(record, ChildOrder):
        command = AddSubOrderTracking(
            sub_order_id=record.id,
            tracking_number=body.tracking_number,
            carrier=body.carrier,
            actor_id=caller.user_id,
        )
    else:
        command = AddTracking(
            order_id=record.id,
            tracking_number=body.tracking_number,
            carrier=body.carrier,
            actor_id=caller.user_id,
        )
    current_domain.process(command, asynchronous=False)
    return _detail_response(order_id, caller)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest, caller: Caller = Depends(current_caller)) -> OrderIdResponse:
    require_role(caller, Role.CUSTOMER, Role.ADMIN)
    if caller.role is Role.CUSTOMER and body.customer_id != caller.user_id:
        raise AccessDenied("Customers can only place orders for themselves")

    command = PlaceOrder(
        customer_id=body.customer_id,
        items=json.dumps([item.model_dump() for item in body.items]),
        shipping_address=json.dumps(body.shipping_address) if body.shipping_address else None,
        shipping_method=body.shipping_method,
        payment_method=body.payment_method,
        order_number=body.order_number,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderIdResponse(order_id=result)


@order_router.get("", response_model=OrderListResponse)
async def get_orders(
    status: str | None = None,
    search: str | None = None,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    caller: Caller = Depends(current_caller),
) -> OrderListResponse:
    return OrderListResponse(**list_orders(caller, status=status, search=search, page=page, limit=limit))


@order_router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: str, caller: Caller = Depends(current_caller)) -> OrderDetailResponse:
    return _detail_response(order_id, caller)


@order_router.get("/{order_id}/timeline", response_model=TimelineResponse)
async def get_order_timeline(order_id: str, caller: Caller = Depends(current_caller)) -> TimelineResponse:
    record = find_order_or_sub_order(order_id)
    assert_can_view(caller, record)
    return TimelineResponse(order_id=record.id, timeline=timeline(record.id))


@order_router.patch("/{order_id}/status", response_model=OrderDetailResponse)
async def update_order_status(
    order_id: str, body: UpdateStatusRequest, caller: Caller = Depends(current_caller)
) -> OrderDetailResponse:
    return _update_status(order_id, body, caller)


@order_router.patch("/{order_id}/tracking", response_model=OrderDetailResponse)
async def add_order_tracking(
    order_id: str, body: AddTrackingRequest, caller: Caller = Depends(current_caller)
) -> OrderDetailResponse:
    return _add_tracking(order_id, body, caller)


@order_router.put("/{order_id}/payment", response_model=StatusResponse)
async def record_payment(
    order_id: str, body: RecordPaymentRequest, caller: Caller = Depends(current_caller)
) -> StatusResponse:
    require_role(caller, Role.ADMIN)
    command = RecordPayment(
        order_id=order_id,
        payment_id=body.payment_id,
        payment_method=body.payment_method,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.post("/{order_id}/split", response_model=SplitResponse)
async def split_order(order_id: str, caller: Caller = Depends(current_caller)) -> SplitResponse:
    require_role(caller, Role.ADMIN)
    result = current_domain.process(SplitOrder(order_id=order_id), asynchronous=False)
    return SplitResponse(
        order_id=result.order_id,
        sub_order_ids=list(result.sub_order_ids),
        earning_ids=list(result.earning_ids),
        skipped_product_ids=list(result.skipped_product_ids),
        failed_seller_ids=list(result.failed_seller_ids),
    )


# ---------------------------------------------------------------------------
# Sub-order Router
# ---------------------------------------------------------------------------
sub_order_router = APIRouter(prefix="/sub-orders", tags=["sub-orders"])


@sub_order_router.patch("/{sub_order_id}/status", response_model=OrderDetailResponse)
async def update_sub_order_status(
    sub_order_id: str, body: UpdateStatusRequest, caller: Caller = Depends(current_caller)
) -> OrderDetailResponse:
    _require_sub_order(sub_order_id)
    return _update_status(sub_order_id, body, caller)


@sub_order_router.patch("/{sub_order_id}/tracking", response_model=OrderDetailResponse)
async def add_sub_order_tracking(
    sub_order_id: str, body: AddTrackingRequest, caller: Caller = Depends(current_caller)
) -> OrderDetailResponse:
    _require_sub_order(sub_order_id)
    return _add_tracking(sub_order_id, body, caller)


# ---------------------------------------------------------------------------
# Settlement Router
# ---------------------------------------------------------------------------
settlement_router = APIRouter(prefix="/settlements", tags=["settlements"])


@settlement_router.post("/run", response_model=SettlementResponse)
async def run_settlement(
    body: RunSettlementRequest | None = None, caller: Caller = Depends(current_caller)
) -> SettlementResponse:
    require_role(caller, Role.ADMIN)
    as_of = body.as_of if body is not None else None
    result = current_domain.process(RunSettlementPass(as_of=as_of), asynchronous=False)
    return SettlementResponse(
        promoted_count=result.promoted_count,
        total_amount_promoted=result.total_amount_promoted,
        succeeded=result.succeeded,
        error=result.error,
    )


@settlement_router.put("/commission-rate", response_model=CommissionRateResponse)
async def set_commission_rate(
    body: SetCommissionRateRequest, caller: Caller = Depends(current_caller)
) -> CommissionRateResponse:
    require_role(caller, Role.ADMIN)
    command = SetCommissionRate(rate_percent=body.rate_percent, set_by=caller.user_id)
    setting_id = current_domain.process(command, asynchronous=False)
    return CommissionRateResponse(setting_id=setting_id, rate_percent=body.rate_percent)


@settlement_router.post("/earnings/{earning_id}/paid", response_model=StatusResponse)
async def mark_earning_paid(
    earning_id: str, body: MarkEarningPaidRequest, caller: Caller = Depends(current_caller)
) -> StatusResponse:
    require_role(caller, Role.ADMIN)
    current_domain.process(MarkEarningPaid(earning_id=earning_id, payout_id=body.payout_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Seller Router
# ---------------------------------------------------------------------------
seller_router = APIRouter(prefix="/sellers", tags=["sellers"])


@seller_router.get("/{seller_id}/earnings", response_model=SellerEarningsResponse)
async def get_seller_earnings(seller_id: str, caller: Caller = Depends(current_caller)) -> SellerEarningsResponse:
    if not caller.is_admin and not (caller.role is Role.SELLER and caller.user_id == seller_id):
        raise AccessDenied("Sellers can only view their own earnings")
    return SellerEarningsResponse(**seller_earnings_summary(seller_id))
