"""
Which actions an operator may take on an order.

The rules form an ordered decision list: the first rule whose condition
matches decides the whole control set. Payment state comes from both the
order columns and its audit events (see ``derive_flags``).
"""

import logging
from enum import Enum
from typing import List, Optional, Sequence

from orderdesk.constants.order_events import OrderEventType, canonical_event_type
from orderdesk.constants.order_status import (
    LOW_RISK_MAX_SCORE,
    PRE_PAYMENT_STATUSES,
    OrderStatus,
    PaymentMethod,
)
from orderdesk.models.order import Order
from orderdesk.models.order_event import OrderEvent
from orderdesk.schemas.order_schemas import OrderFlags

logger = logging.getLogger(__name__)


class OrderAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    SEND_QR_LINK = "send_qr_link"
    SIMULATE_QR_PAID = "simulate_qr_paid"
    SIMULATE_PAYMENT_RECEIVED = "simulate_payment_received"
    START_DELIVERY = "start_delivery"
    MARK_COMPLETED = "mark_completed"
    CUSTOMER_CANCEL = "customer_cancel"
    CUSTOMER_CONFIRM = "customer_confirm"


ACTION_LABELS = {
    OrderAction.APPROVE: "Approve",
    OrderAction.REJECT: "Reject",
    OrderAction.SEND_QR_LINK: "Send QR Link",
    OrderAction.SIMULATE_QR_PAID: "Simulate QR Paid",
    OrderAction.SIMULATE_PAYMENT_RECEIVED: "Simulate Payment Received",
    OrderAction.START_DELIVERY: "Start Delivery",
    OrderAction.MARK_COMPLETED: "Mark Completed",
    OrderAction.CUSTOMER_CANCEL: "Customer Cancel",
    OrderAction.CUSTOMER_CONFIRM: "Customer Confirm",
}


def is_cod(order: Order) -> bool:
    method = (order.payment_method or "").strip().upper()
    return method in ("", PaymentMethod.COD.value)


def derive_flags(order: Order, events: Sequence[OrderEvent] = ()) -> OrderFlags:
    cod = is_cod(order)
    paid_status = order.status == OrderStatus.ORDER_PAID.value

    if order.paid_at and order.status in {s.value for s in PRE_PAYMENT_STATUSES}:
        logger.warning(
            f"Order {order.id} has paid_at set but status is {order.status}"
        )
    elif paid_status and not order.paid_at:
        logger.warning(f"Order {order.id} is ORDER_PAID without paid_at")

    qr_event = any(
        canonical_event_type(e.event_type) == OrderEventType.QR_PAYMENT_LINK_SENT
        for e in events
    )

    return OrderFlags(
        is_cod=cod,
        is_prepaid=not cod,
        has_paid=bool(order.paid_at) or paid_status,
        has_qr_sent=bool(order.qr_sent_at) or qr_event,
        is_low_risk_cod=(
            cod
            and order.risk_score is not None
            and order.risk_score <= LOW_RISK_MAX_SCORE
        ),
    )


def _qr_control(flags: OrderFlags) -> List[OrderAction]:
    if flags.has_paid:
        return []
    if not flags.has_qr_sent:
        return [OrderAction.SEND_QR_LINK]
    return [OrderAction.SIMULATE_QR_PAID]


def resolve_actions(
    order: Order,
    events: Sequence[OrderEvent] = (),
    flags: Optional[OrderFlags] = None,
) -> List[OrderAction]:
    if flags is None:
        flags = derive_flags(order, events)
    status = order.status
    S = OrderStatus

    # prepaid, or already paid: only logistics remain
    if flags.is_prepaid or status == S.ORDER_PAID.value:
        if status not in (S.DELIVERING.value, S.COMPLETED.value):
            return [OrderAction.START_DELIVERY]
        if status == S.DELIVERING.value:
            return [OrderAction.MARK_COMPLETED]
        return []

    if status == S.ORDER_APPROVED.value:
        if flags.is_low_risk_cod:
            return _qr_control(flags) + [OrderAction.START_DELIVERY]
        # medium/high risk COD must not ship before payment or confirmation
        return _qr_control(flags)

    if status in (S.PENDING_REVIEW.value, S.VERIFICATION_REQUIRED.value):
        return [OrderAction.REJECT, OrderAction.APPROVE]

    if status == S.ORDER_CONFIRMATION_SENT.value:
        if flags.is_low_risk_cod:
            actions = [] if flags.has_paid else [OrderAction.SIMULATE_QR_PAID]
            return actions + [OrderAction.START_DELIVERY]
        return [OrderAction.CUSTOMER_CANCEL, OrderAction.CUSTOMER_CONFIRM]

    if status == S.CUSTOMER_CONFIRMED.value:
        allow_paid = not flags.has_paid and (not flags.is_low_risk_cod or flags.has_qr_sent)
        actions = [OrderAction.SIMULATE_QR_PAID] if allow_paid else []
        return actions + [OrderAction.START_DELIVERY]

    if status in (S.DELIVERING.value, S.COMPLETED.value):
        actions = []
        if flags.is_cod and not flags.has_paid:
            actions.append(OrderAction.SIMULATE_PAYMENT_RECEIVED)
        if status == S.DELIVERING.value:
            actions.append(OrderAction.MARK_COMPLETED)
        return actions

    return []
