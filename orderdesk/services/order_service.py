# orderdesk/services/order_service.py

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from sqlalchemy import and_, or_
from sqlmodel import Session, select

from orderdesk.config import settings
from orderdesk.constants.order_events import OrderEventType
from orderdesk.constants.order_status import OrderStatus, PaymentMethod, validate_transition
from orderdesk.exceptions import OrderNotFoundError
from orderdesk.models.order import Order
from orderdesk.services.invoice_service import invalidate_invoice_pdf
from orderdesk.services.order_event_service import log_order_event
from orderdesk.utils.chunk import chunk_list
from orderdesk.utils.pagination import paginate

logger = logging.getLogger(__name__)

MONEY_FIELDS = {"amount", "refunded_amount"}

FilterValue = Union[str, Sequence[str], None]


def _selected(value: FilterValue) -> List[str]:
    raw = [value] if isinstance(value, str) else list(value or [])
    return [v for v in raw if v and v != "all"]


def apply_order_filters(
    query,
    search_query: Optional[str] = None,
    status: FilterValue = None,
    risk_score: FilterValue = None,
    payment_method: FilterValue = None,
):
    term = (search_query or "").strip()
    if term:
        like = f"%{term}%"
        query = query.where(
            Order.order_code.ilike(like)
            | Order.customer_name.ilike(like)
            | Order.phone.ilike(like)
        )

    statuses = _selected(status)
    if statuses:
        query = query.where(Order.status.in_(statuses))

    methods = _selected(payment_method)
    if methods:
        others = [m for m in methods if m != PaymentMethod.COD.value]
        conditions = []
        if PaymentMethod.COD.value in methods:
            # legacy rows stored null for COD
            conditions += [
                Order.payment_method == PaymentMethod.COD.value,
                Order.payment_method.is_(None),
            ]
        if others:
            conditions.append(Order.payment_method.in_(others))
        query = query.where(or_(*conditions))

    risks = _selected(risk_score)
    if risks:
        conditions = []
        if "low" in risks:
            conditions.append(Order.risk_score <= 30)
        if "medium" in risks:
            conditions.append(and_(Order.risk_score > 30, Order.risk_score <= 70))
        if "high" in risks:
            conditions.append(Order.risk_score > 70)
        if conditions:
            query = query.where(or_(*conditions))

    return query


def fetch_orders_by_user(
    session: Session,
    user_id: int,
    page: int = 1,
    page_size: int = 20,
    filters: Optional[Dict[str, Any]] = None,
):
    query = apply_order_filters(
        select(Order).where(Order.user_id == user_id),
        **(filters or {}),
    ).order_by(Order.created_at.desc())

    data = paginate(session=session, query=query, page=page, page_size=page_size)

    return {
        "orders": data["items"],
        "total_count": data["total_count"],
        "total_pages": data["total_pages"],
        "page": data["page"],
        "page_size": data["page_size"],
    }


def fetch_order(session: Session, order_id: int, user_id: int) -> Order:
    order = session.exec(
        select(Order)
        .where(Order.id == order_id)
        .where(Order.user_id == user_id)
    ).first()

    if not order:
        raise OrderNotFoundError(order_id)

    return order


def update_order(
    session: Session,
    order_id: int,
    user_id: int,
    updates: Dict[str, Any],
) -> Order:
    """
    Apply a partial update to an order.

    A status change is checked against the transition table first. Money
    changes drop the cached invoice PDF so it is rebuilt on next download.
    """
    order = fetch_order(session, order_id, user_id)

    new_status = updates.get("status")
    if new_status is not None:
        validate_transition(order.status, new_status)

    for field, value in updates.items():
        setattr(order, field, value)
    order.updated_at = datetime.utcnow()

    session.add(order)
    session.commit()
    session.refresh(order)

    if MONEY_FIELDS & updates.keys():
        invalidate_invoice_pdf(order.id)

    return order


def fetch_past_orders_by_phones(
    session: Session,
    user_id: int,
    phones: Sequence[str],
) -> List[Dict[str, str]]:
    """Statuses of earlier orders for a batch of phones, one query per chunk."""
    if not phones:
        return []

    rows = []
    for chunk in chunk_list(list(phones), settings.phone_chunk_size):
        rows += session.exec(
            select(Order.phone, Order.status)
            .where(Order.user_id == user_id)
            .where(Order.phone.in_(chunk))
        ).all()

    return [{"phone": phone, "status": status} for phone, status in rows]


def fetch_order_filter_options(session: Session, user_id: int) -> Dict[str, List[str]]:
    statuses = session.exec(
        select(Order.status)
        .where(Order.user_id == user_id)
        .where(Order.status.is_not(None))
        .distinct()
    ).all()

    methods = session.exec(
        select(Order.payment_method)
        .where(Order.user_id == user_id)
        .distinct()
    ).all()

    return {
        "status_options": sorted({s for s in statuses if s}),
        "payment_method_options": sorted(
            {(m or "").strip() or PaymentMethod.COD.value for m in methods}
        ),
    }


def process_refund(
    session: Session,
    order_id: int,
    user_id: int,
    amount: int,
    note: str,
) -> Order:
    """Record a refund. The status is left as it is; the invoice is rebuilt on next download."""
    order = fetch_order(session, order_id, user_id)

    log_order_event(
        session,
        order.id,
        OrderEventType.REFUND.value,
        {"refund_amount": amount, "note": note},
        source="orders_service",
    )

    logger.info(f"Refund of {amount} recorded for order {order.id}")
    return update_order(
        session,
        order.id,
        user_id,
        {"refunded_amount": (order.refunded_amount or 0) + amount},
    )


def process_return(
    session: Session,
    user_id: int,
    order_id: int,
    customer_pays: bool,
    customer_amount: int,
    shop_amount: int,
    note: str,
) -> Order:
    order = fetch_order(session, order_id, user_id)
    validate_transition(order.status, OrderStatus.RETURNED.value)

    log_order_event(
        session,
        order.id,
        OrderEventType.RETURN.value,
        {
            "customer_pays": customer_pays,
            "customer_paid": customer_amount,
            "seller_paid": shop_amount,
            "carrier_cost": settings.return_carrier_cost,
            "note": note,
        },
        source="orders_service",
    )

    logger.info(f"Return recorded for order {order.id}")
    return update_order(
        session,
        order.id,
        user_id,
        {
            "customer_shipping_paid": (order.customer_shipping_paid or 0) + customer_amount,
            "seller_shipping_paid": (order.seller_shipping_paid or 0) + shop_amount,
            "status": OrderStatus.RETURNED.value,
        },
    )


CLONED_FIELDS = (
    "customer_name",
    "phone",
    "product",
    "amount",
    "payment_method",
    "risk_score",
    "risk_level",
    "address_detail",
    "ward",
    "district",
    "province",
)


def clone_order_for_exchange(session: Session, order: Order) -> Order:
    """Replacement order for an exchange. It starts over at review, unpaid."""
    replacement = Order(
        user_id=order.user_id,
        order_code=f"{order.order_code}-EX",
        **{field: getattr(order, field) for field in CLONED_FIELDS},
    )
    session.add(replacement)
    session.commit()
    session.refresh(replacement)
    return replacement


def process_exchange(
    session: Session,
    user_id: int,
    order_id: int,
    customer_pays: bool,
    customer_amount: int,
    shop_amount: int,
    note: str,
    refund_amount: Optional[int] = None,
) -> Tuple[Order, Order]:
    """
    Exchange an order: optional refund first, then a replacement order,
    the exchange event, and finally the original moves to EXCHANGED.

    Returns ``(original, replacement)``.
    """
    order = fetch_order(session, order_id, user_id)
    validate_transition(order.status, OrderStatus.EXCHANGED.value)

    if refund_amount:
        order = process_refund(
            session, order.id, user_id, refund_amount, f"Refund for exchange: {note}".strip()
        )

    replacement = clone_order_for_exchange(session, order)

    log_order_event(
        session,
        order.id,
        OrderEventType.EXCHANGE.value,
        {
            "customer_pays": customer_pays,
            "customer_paid": customer_amount,
            "seller_paid": shop_amount,
            # return leg plus the replacement's outbound leg
            "carrier_cost": settings.return_carrier_cost * 2,
            "new_order_id": replacement.id,
            "new_order_code": replacement.order_code,
            "note": note,
        },
        source="orders_service",
    )

    logger.info(f"Order {order.id} exchanged for new order {replacement.id}")
    original = update_order(
        session,
        order.id,
        user_id,
        {
            "customer_shipping_paid": (order.customer_shipping_paid or 0) + customer_amount,
            "seller_shipping_paid": (order.seller_shipping_paid or 0) + shop_amount,
            "status": OrderStatus.EXCHANGED.value,
        },
    )
    return original, replacement
