# orderdesk/services/order_event_service.py

import logging
from datetime import datetime
from typing import List, Optional
from uuid import uuid4
from sqlmodel import Session, select
from orderdesk.models.order_event import OrderEvent

logger = logging.getLogger(__name__)


def fetch_order_events(session: Session, order_id: int) -> List[OrderEvent]:
    return list(
        session.exec(
            select(OrderEvent)
            .where(OrderEvent.order_id == order_id)
            .order_by(OrderEvent.created_at.asc())
        ).all()
    )


def log_order_event(
    session: Session,
    order_id: int,
    event_type: str,
    payload: Optional[dict] = None,
    source: str = "system",
    commit: bool = True,
) -> OrderEvent:
    """
    Append-only event log for the order timeline.

    Empty values are dropped from the payload and the source tag is
    stored alongside them.
    """
    cleaned = {
        k: v for k, v in (payload or {}).items()
        if v is not None and v != ""
    }
    cleaned["source"] = source

    event = OrderEvent(
        id=str(uuid4()),
        order_id=order_id,
        event_type=event_type,
        payload=cleaned,
        created_by=source,
        created_at=datetime.utcnow(),
    )

    session.add(event)
    if commit:
        session.commit()
        session.refresh(event)

    logger.info(f"Logged {event_type} for order {order_id}")
    return event
