# -------- ORDERS --------
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from orderdesk.database import get_session
from orderdesk.exceptions import (
    ActionInProgressError,
    ActionNotAllowedError,
    AmountValidationError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from orderdesk.models.order import Order
from orderdesk.models.user import User
from orderdesk.schemas.order_schemas import (
    ActionRequest,
    AddressUpdate,
    ExchangeRequest,
    ExchangeResult,
    FilterOptions,
    OrderDetail,
    OrderEventRead,
    OrderRead,
    PastOrdersRequest,
    PastOrderStatus,
    RefundRequest,
    ReturnRequest,
    TimelineEntry,
    VerificationRequest,
)
from orderdesk.services import order_actions, order_service
from orderdesk.services.action_panel import ActionPanel
from orderdesk.services.action_resolver import OrderAction, derive_flags
from orderdesk.services.after_sale import ExchangeForm, RefundForm, ReturnForm
from orderdesk.services.order_event_service import fetch_order_events
from orderdesk.services.risk_service import assess_risk
from orderdesk.services.timeline_service import render_timeline
from orderdesk.utils.token import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_REJECT_REASON = "Verification Failed"


def _get_order_or_404(session: Session, order_id: int, user: User) -> Order:
    try:
        return order_service.fetch_order(session, order_id, user.id)
    except OrderNotFoundError:
        raise HTTPException(404, "Order not found")


def build_order_detail(session: Session, order: Order) -> OrderDetail:
    events = fetch_order_events(session, order.id)
    panel = ActionPanel(order, events)

    return OrderDetail(
        order=OrderRead.model_validate(order),
        flags=panel.flags,
        controls=panel.controls,
        risk=assess_risk(order, events),
        timeline=render_timeline(events),
    )


def _action_handler(action: OrderAction, session: Session, user_id: int):
    A = OrderAction
    handlers = {
        A.APPROVE: order_actions.approve_order,
        A.REJECT: order_actions.reject_order,
        A.SEND_QR_LINK: order_actions.send_qr_payment_link,
        A.SIMULATE_QR_PAID: order_actions.simulate_paid,
        A.SIMULATE_PAYMENT_RECEIVED: order_actions.simulate_paid,
        A.START_DELIVERY: order_actions.mark_shipped,
        A.MARK_COMPLETED: order_actions.mark_completed,
        A.CUSTOMER_CANCEL: order_actions.simulate_cancelled,
        A.CUSTOMER_CONFIRM: order_actions.simulate_confirmed,
    }
    handler = handlers[action]

    def run(order: Order, *args):
        return handler(session, order, user_id, *args)

    return run


@router.get("")
def list_orders(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[List[str]] = Query(None),
    risk_score: Optional[List[str]] = Query(None),
    payment_method: Optional[List[str]] = Query(None),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    data = order_service.fetch_orders_by_user(
        session,
        current_user.id,
        page,
        page_size,
        filters={
            "search_query": search,
            "status": status,
            "risk_score": risk_score,
            "payment_method": payment_method,
        },
    )

    return {
        "total_items": data["total_count"],
        "total_pages": data["total_pages"],
        "current_page": data["page"],
        "results": [OrderRead.model_validate(o) for o in data["orders"]],
    }


@router.get("/filter-options", response_model=FilterOptions)
def filter_options(
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return order_service.fetch_order_filter_options(session, current_user.id)


@router.post("/past-by-phones", response_model=List[PastOrderStatus])
def past_orders_by_phones(
    request: PastOrdersRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    return order_service.fetch_past_orders_by_phones(session, current_user.id, request.phones)


@router.get("/{order_id}", response_model=OrderDetail)
def order_details(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = _get_order_or_404(session, order_id, current_user)
    return build_order_detail(session, order)


@router.get("/{order_id}/events", response_model=List[OrderEventRead])
def order_events(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = _get_order_or_404(session, order_id, current_user)
    return fetch_order_events(session, order.id)


@router.get("/{order_id}/timeline", response_model=List[TimelineEntry])
def order_timeline(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = _get_order_or_404(session, order_id, current_user)
    return render_timeline(fetch_order_events(session, order.id))


@router.post("/{order_id}/actions/{action}", response_model=OrderDetail)
def run_order_action(
    order_id: int,
    action: OrderAction,
    request: Optional[ActionRequest] = None,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = _get_order_or_404(session, order_id, current_user)
    events = fetch_order_events(session, order.id)

    refreshed = {}

    def on_updated(updated: Order):
        fresh = _get_order_or_404(session, updated.id, current_user)
        refreshed["detail"] = build_order_detail(session, fresh)

    panel = ActionPanel(order, events, on_updated=[on_updated])

    args = []
    if action == OrderAction.REJECT:
        args.append((request.reason if request else None) or DEFAULT_REJECT_REASON)
    elif action == OrderAction.CUSTOMER_CANCEL and request and request.reason:
        args.append(request.reason)

    try:
        panel.activate(action, _action_handler(action, session, current_user.id), *args)
    except (ActionNotAllowedError, ActionInProgressError, InvalidTransitionError) as e:
        raise HTTPException(409, str(e))
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Order action {action.value} failed for order {order_id}")
        raise HTTPException(500, "Failed to process order action")

    return refreshed["detail"]


@router.post("/{order_id}/refund", response_model=OrderRead)
def refund_order(
    order_id: int,
    request: RefundRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        amount, note = RefundForm(request.amount, request.note).validate()
    except AmountValidationError as e:
        raise HTTPException(422, str(e))

    try:
        return order_service.process_refund(session, order_id, current_user.id, amount, note)
    except OrderNotFoundError:
        raise HTTPException(404, "Order not found")
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Refund failed for order {order_id}")
        raise HTTPException(500, "Failed to process refund")


@router.post("/{order_id}/return", response_model=OrderRead)
def return_order(
    order_id: int,
    request: ReturnRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    form = ReturnForm(payer=request.payer, customer_amount=request.customer_amount, note=request.note)
    submission = form.submission()

    try:
        return order_service.process_return(
            session,
            current_user.id,
            order_id,
            submission.customer_pays,
            submission.customer_amount,
            submission.shop_amount,
            submission.note,
        )
    except OrderNotFoundError:
        raise HTTPException(404, "Order not found")
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Return failed for order {order_id}")
        raise HTTPException(500, "Failed to process return")


@router.post("/{order_id}/verification", response_model=OrderDetail)
def request_verification(
    order_id: int,
    request: VerificationRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = _get_order_or_404(session, order_id, current_user)

    try:
        order = order_actions.flag_verification(session, order, current_user.id, request.reason)
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Verification request failed for order {order_id}")
        raise HTTPException(500, "Failed to process order action")

    return build_order_detail(session, order)


@router.post("/{order_id}/exchange", response_model=ExchangeResult)
def exchange_order(
    order_id: int,
    request: ExchangeRequest,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    order = _get_order_or_404(session, order_id, current_user)
    flags = derive_flags(order, fetch_order_events(session, order.id))

    form = ExchangeForm(
        payer=request.payer,
        customer_amount=request.customer_amount,
        note=request.note,
        refund_amount=request.refund_amount,
    )
    try:
        refund_amount = form.refund(flags.has_paid, order.amount)
    except AmountValidationError as e:
        raise HTTPException(422, str(e))
    submission = form.submission()

    try:
        original, replacement = order_service.process_exchange(
            session,
            current_user.id,
            order.id,
            submission.customer_pays,
            submission.customer_amount,
            submission.shop_amount,
            submission.note,
            refund_amount=refund_amount,
        )
    except InvalidTransitionError as e:
        raise HTTPException(409, str(e))
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Exchange failed for order {order_id}")
        raise HTTPException(500, "Failed to process exchange")

    return ExchangeResult(
        original=OrderRead.model_validate(original),
        new_order=OrderRead.model_validate(replacement),
    )


@router.patch("/{order_id}/address", response_model=OrderRead)
def update_order_address(
    order_id: int,
    request: AddressUpdate,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    updates = {
        field: (value.strip() if isinstance(value, str) else value)
        for field, value in request.model_dump(exclude_unset=True).items()
    }

    try:
        return order_service.update_order(session, order_id, current_user.id, updates)
    except OrderNotFoundError:
        raise HTTPException(404, "Order not found")
    except SQLAlchemyError:
        session.rollback()
        logger.exception(f"Address update failed for order {order_id}")
        raise HTTPException(500, "Failed to update address")
