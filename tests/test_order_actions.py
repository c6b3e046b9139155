from datetime import timedelta

import pytest

from orderdesk.constants.invoice_status import InvoiceStatus
from orderdesk.constants.order_status import OrderStatus
from orderdesk.exceptions import InvalidTransitionError
from orderdesk.services import order_actions
from orderdesk.services.invoice_service import fetch_invoice_for_order
from orderdesk.services.order_event_service import fetch_order_events

S = OrderStatus


def event_types(session, order):
    return [e.event_type for e in fetch_order_events(session, order.id)]


def test_approve_goes_through_approved(session, make_order, user):
    order = order_actions.approve_order(session, make_order(), user.id)
    assert order.status == S.ORDER_CONFIRMATION_SENT.value
    assert order.approved_at is not None
    assert order.confirmation_sent_at is not None
    assert event_types(session, order) == ["order_approved", "confirmation_sent"]
    assert fetch_order_events(session, order.id)[0].created_by == "manual_action"


def test_send_qr_link_keeps_status(session, make_order, user):
    order = make_order(status=S.ORDER_APPROVED.value, risk_score=10)
    order = order_actions.send_qr_payment_link(session, order, user.id)

    assert order.status == S.ORDER_APPROVED.value
    assert order.qr_expired_at - order.qr_sent_at == timedelta(hours=24)
    payload = fetch_order_events(session, order.id)[0].payload
    assert payload["qr_expired_at"] == order.qr_expired_at.isoformat()


def test_simulate_paid_keeps_logistics_status(session, make_order, user):
    delivering = order_actions.simulate_paid(session, make_order(status=S.DELIVERING.value), user.id)
    assert delivering.status == S.DELIVERING.value
    assert delivering.paid_at is not None

    confirmed = order_actions.simulate_paid(
        session, make_order(order_code="X-2", status=S.CUSTOMER_CONFIRMED.value), user.id
    )
    assert confirmed.status == S.ORDER_PAID.value


def test_simulate_cancelled_records_reason(session, make_order, user):
    order = make_order(status=S.ORDER_CONFIRMATION_SENT.value)
    order = order_actions.simulate_cancelled(session, order, user.id)
    assert order.cancel_reason == "Simulated: Customer changed mind"
    assert fetch_order_events(session, order.id)[0].payload["reason"] == order.cancel_reason


def test_ship_and_complete(session, make_order, user):
    order = make_order(status=S.CUSTOMER_CONFIRMED.value)
    order = order_actions.mark_shipped(session, order, user.id)
    order = order_actions.mark_completed(session, order, user.id)

    assert order.status == S.COMPLETED.value
    assert event_types(session, order) == ["order_shipped", "order_completed"]


def test_flag_verification(session, make_order, user):
    order = order_actions.flag_verification(session, make_order(), user.id, "ID mismatch")
    assert order.status == S.VERIFICATION_REQUIRED.value
    assert order.verification_reason == "ID mismatch"
    assert event_types(session, order) == ["verification_required"]


def test_guarded_transition_leaves_no_event(session, make_order, user):
    order = make_order(status=S.ORDER_REJECTED.value)
    with pytest.raises(InvalidTransitionError):
        order_actions.mark_shipped(session, order, user.id)
    assert event_types(session, order) == []


def test_verification_endpoint(client, make_order, auth_headers):
    order = make_order()
    res = client.post(f"/orders/{order.id}/verification", json={"reason": "Call back"}, headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["order"]["status"] == S.VERIFICATION_REQUIRED.value
    assert res.json()["timeline"][0]["subtitle"] == "Call back"

    res = client.post(f"/orders/{order.id}/verification", json={"reason": ""}, headers=auth_headers)
    assert res.status_code == 422


def test_customer_confirm_creates_pending_invoice(session, make_order, user):
    order = make_order(order_code="ORD-55", status=S.ORDER_CONFIRMATION_SENT.value)
    order = order_actions.simulate_confirmed(session, order, user.id)

    invoice = fetch_invoice_for_order(session, order)
    assert invoice.status == InvoiceStatus.PENDING.value
    assert invoice.invoice_code == "INV-ORD-55"


def test_payment_marks_pending_invoice_paid(session, make_order, user):
    order = make_order(status=S.ORDER_CONFIRMATION_SENT.value)
    order = order_actions.simulate_confirmed(session, order, user.id)
    pending_id = fetch_invoice_for_order(session, order).id

    order = order_actions.simulate_paid(session, order, user.id)

    invoice = fetch_invoice_for_order(session, order)
    assert invoice.id == pending_id
    assert invoice.status == InvoiceStatus.PAID.value
    assert order.status == S.ORDER_PAID.value


def test_payment_steps_run_invoice_then_order_then_event(session, make_order, user, monkeypatch):
    steps = []

    def record(name, fn):
        def wrapper(*args, **kwargs):
            steps.append(name)
            return fn(*args, **kwargs)
        return wrapper

    monkeypatch.setattr(order_actions, "mark_invoice_paid", record("invoice", order_actions.mark_invoice_paid))
    monkeypatch.setattr(order_actions, "update_order", record("order", order_actions.update_order))
    monkeypatch.setattr(order_actions, "log_order_event", record("event", order_actions.log_order_event))

    order_actions.simulate_paid(session, make_order(status=S.CUSTOMER_CONFIRMED.value), user.id)
    assert steps == ["invoice", "order", "event"]


def test_refused_payment_leaves_invoice_untouched(session, make_order, user):
    order = make_order(status=S.ORDER_REJECTED.value)
    with pytest.raises(InvalidTransitionError):
        order_actions.simulate_paid(session, order, user.id)
    assert fetch_invoice_for_order(session, order) is None
