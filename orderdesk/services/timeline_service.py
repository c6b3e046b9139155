"""
Order timeline: turns the raw audit log of an order into display entries.

Events are deduplicated on (type, second), sorted oldest first and mapped
through a single display table keyed by canonical event type. Legacy and
upper-case event names resolve through ``canonical_event_type``.
"""

from typing import Callable, Dict, List, NamedTuple, Sequence

from orderdesk.constants.order_events import OrderEventType, canonical_event_type
from orderdesk.models.order_event import OrderEvent
from orderdesk.schemas.order_schemas import TimelineEntry
from orderdesk.utils.formatting import format_money, format_timestamp


class EventDisplay(NamedTuple):
    title: str
    icon: str
    color: str
    subtitle: Callable[[dict], str] = lambda payload: ""


def _reason(payload: dict) -> str:
    return payload.get("reason") or ""


def _risk(payload: dict) -> str:
    level = payload.get("level")
    score = payload.get("score")
    if level and score is not None:
        return f"{level} ({score})"
    return ""


def _refund(payload: dict) -> str:
    parts = []
    if payload.get("refund_amount") is not None:
        parts.append(format_money(payload["refund_amount"]))
    if payload.get("note"):
        parts.append(payload["note"])
    return " · ".join(parts)


def _return(payload: dict) -> str:
    parts = []
    if payload.get("customer_paid"):
        parts.append(f"customer paid {format_money(payload['customer_paid'])}")
    if payload.get("note"):
        parts.append(payload["note"])
    return " · ".join(parts)


def _exchange(payload: dict) -> str:
    parts = []
    if payload.get("new_order_code"):
        parts.append(f"new order {payload['new_order_code']}")
    shipping = _return(payload)
    if shipping:
        parts.append(shipping)
    return " · ".join(parts)


E = OrderEventType

EVENT_DISPLAY: Dict[OrderEventType, EventDisplay] = {
    E.ORDER_APPROVED: EventDisplay("Order approved", "check_circle", "green"),
    E.CONFIRMATION_SENT: EventDisplay("Order confirmation sent via Zalo", "check_circle", "blue"),
    E.CUSTOMER_CONFIRMED: EventDisplay("Customer confirmed order", "check_circle", "green"),
    E.QR_PAYMENT_LINK_SENT: EventDisplay("QR payment link sent", "check_circle", "purple"),
    E.CUSTOMER_PAID: EventDisplay("Customer paid", "check_circle", "emerald"),
    E.CUSTOMER_CANCELLED: EventDisplay("Customer cancelled order", "x_circle", "red", _reason),
    E.CUSTOMER_UNREACHABLE: EventDisplay("Customer unreachable", "x_circle", "orange", _reason),
    E.ORDER_MARKED_DELIVERING: EventDisplay("Order marked as delivering", "truck", "blue"),
    E.ORDER_SHIPPED: EventDisplay(
        "Order shipped (Delivering)", "truck", "blue",
        lambda p: format_timestamp(p.get("shipped_at")),
    ),
    E.ORDER_COMPLETED: EventDisplay(
        "Order completed", "check_circle", "green",
        lambda p: format_timestamp(p.get("completed_at")),
    ),
    E.VERIFICATION_REQUIRED: EventDisplay("Verification required", "alert_triangle", "yellow", _reason),
    E.ORDER_REJECTED: EventDisplay("Order rejected", "x_circle", "red", _reason),
    E.RISK_EVALUATED: EventDisplay("Risk evaluated", "shield_alert", "purple", _risk),
    E.REFUND: EventDisplay("Refund processed", "rotate_ccw", "orange", _refund),
    E.RETURN: EventDisplay("Order returned", "rotate_ccw", "orange", _return),
    E.EXCHANGE: EventDisplay("Order exchanged", "repeat", "orange", _exchange),
}

NO_EVENTS = TimelineEntry(
    title="No events recorded",
    icon="clock",
    color="gray",
    placeholder=True,
)


def _fallback_title(raw_type: str) -> str:
    pretty = raw_type.strip().lower().replace("_", " ")
    if not pretty:
        return "Unknown event"
    return pretty[0].upper() + pretty[1:]


def _dedup_key(event: OrderEvent):
    created = event.created_at.replace(microsecond=0) if event.created_at else None
    return (event.event_type or "").strip(), created


def dedupe_events(events: Sequence[OrderEvent]) -> List[OrderEvent]:
    seen = set()
    unique = []
    for event in events:
        key = _dedup_key(event)
        if key in seen:
            continue
        seen.add(key)
        unique.append(event)
    return unique


def describe_event(event: OrderEvent) -> TimelineEntry:
    payload = event.payload or {}
    display = EVENT_DISPLAY.get(canonical_event_type(event.event_type))

    if display is None:
        return TimelineEntry(
            event_id=event.id,
            event_type=event.event_type,
            title=_fallback_title(event.event_type or ""),
            icon="clock",
            color="gray",
            created_at=event.created_at,
        )

    return TimelineEntry(
        event_id=event.id,
        event_type=event.event_type,
        title=display.title,
        subtitle=display.subtitle(payload),
        icon=display.icon,
        color=display.color,
        created_at=event.created_at,
    )


def render_timeline(events: Sequence[OrderEvent]) -> List[TimelineEntry]:
    if not events:
        return [NO_EVENTS.model_copy()]

    unique = dedupe_events(events)
    # events without a timestamp sort first
    ordered = sorted(unique, key=lambda e: (e.created_at is not None, e.created_at or 0))
    return [describe_event(e) for e in ordered]
