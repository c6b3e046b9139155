from datetime import datetime
from typing import Optional, Sequence

from orderdesk.constants.order_events import OrderEventType, canonical_event_type
from orderdesk.constants.order_status import LOW_RISK_MAX_SCORE, MEDIUM_RISK_MAX_SCORE
from orderdesk.models.order import Order
from orderdesk.models.order_event import OrderEvent
from orderdesk.schemas.order_schemas import RiskAssessment, RiskReason


def risk_level_for(score: Optional[int]) -> str:
    if score is None:
        return "none"
    if score <= LOW_RISK_MAX_SCORE:
        return "low"
    if score <= MEDIUM_RISK_MAX_SCORE:
        return "medium"
    return "high"


def _latest_risk_event(events: Sequence[OrderEvent]) -> Optional[OrderEvent]:
    risk_events = [
        e for e in events
        if canonical_event_type(e.event_type) == OrderEventType.RISK_EVALUATED
    ]
    if not risk_events:
        return None
    # max() keeps the first of equal timestamps, so reverse to prefer the later row;
    # undated events rank oldest
    return max(
        reversed(risk_events),
        key=lambda e: (e.created_at is not None, e.created_at or datetime.min),
    )


def _normalize_reason(raw) -> Optional[RiskReason]:
    if isinstance(raw, str):
        return RiskReason(description=raw)
    if isinstance(raw, dict) and raw.get("desc"):
        return RiskReason(description=str(raw["desc"]), score=raw.get("score"))
    return None


def assess_risk(order: Order, events: Sequence[OrderEvent]) -> RiskAssessment:
    """Risk shown for an order: the latest RISK_EVALUATED payload, falling
    back to the order's own risk columns."""
    latest = _latest_risk_event(events)
    payload = (latest.payload or {}) if latest else {}

    score = payload.get("score")
    if isinstance(score, (int, float)):
        score = int(score)
    else:
        score = order.risk_score
    level = payload.get("level") or order.risk_level

    raw_reasons = payload.get("reasons")
    reasons = []
    if isinstance(raw_reasons, list):
        reasons = [r for r in map(_normalize_reason, raw_reasons) if r is not None]

    if not level:
        level = risk_level_for(score)

    return RiskAssessment(score=score, level=level, reasons=reasons)
