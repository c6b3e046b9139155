from datetime import datetime

from orderdesk.constants.order_status import OrderStatus
from orderdesk.services import action_panel, order_service
from orderdesk.services.invoice_service import ensure_pending_invoice, mark_invoice_paid
from orderdesk.services.action_panel import ActionGuard, GuardRegistry

S = OrderStatus


def test_requires_token(client):
    assert client.get("/orders").status_code == 401
    assert client.get("/orders", headers={"Authorization": "Bearer garbage"}).status_code == 401


def test_disabled_user_is_forbidden(client, session, user, auth_headers):
    user.can_login = False
    session.add(user)
    session.commit()
    assert client.get("/orders", headers=auth_headers).status_code == 403


def test_list_orders(client, make_order, auth_headers):
    make_order(order_code="L-1")
    make_order(order_code="L-2", payment_method="MOMO")

    res = client.get("/orders", params={"payment_method": "MOMO"}, headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["total_items"] == 1
    assert body["results"][0]["order_code"] == "L-2"


def test_order_detail(client, make_order, add_event, auth_headers):
    order = make_order(risk_score=80)
    add_event(order, "risk_evaluated", {"score": 80, "level": "high", "reasons": ["Blacklisted"]})

    res = client.get(f"/orders/{order.id}", headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert [c["action"] for c in body["controls"]] == ["reject", "approve"]
    assert body["risk"]["level"] == "high"
    assert body["risk"]["reasons"][0]["description"] == "Blacklisted"
    assert body["timeline"][0]["title"] == "Risk evaluated"


def test_missing_order_is_404(client, auth_headers):
    assert client.get("/orders/999", headers=auth_headers).status_code == 404
    assert client.post("/orders/999/actions/approve", headers=auth_headers).status_code == 404


def test_empty_timeline_has_placeholder(client, make_order, auth_headers):
    order = make_order()
    res = client.get(f"/orders/{order.id}/timeline", headers=auth_headers)
    assert res.json()[0]["placeholder"] is True


def test_approve_moves_to_confirmation_sent(client, make_order, auth_headers):
    order = make_order()

    res = client.post(f"/orders/{order.id}/actions/approve", headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["order"]["status"] == S.ORDER_CONFIRMATION_SENT.value
    assert body["order"]["approved_at"] is not None
    assert [t["event_type"] for t in body["timeline"]] == ["order_approved", "confirmation_sent"]
    # controls stay disabled while the cool-down runs
    assert all(c["disabled"] for c in body["controls"])


def test_second_action_during_cooldown_conflicts(client, make_order, auth_headers, monkeypatch):
    monkeypatch.setattr(action_panel, "guards", GuardRegistry(lambda: ActionGuard(cooldown=60)))
    order = make_order()
    client.post(f"/orders/{order.id}/actions/approve", headers=auth_headers)

    res = client.post(f"/orders/{order.id}/actions/customer_confirm", headers=auth_headers)
    assert res.status_code == 409

    action_panel.guards.clear()
    res = client.post(f"/orders/{order.id}/actions/customer_confirm", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["order"]["status"] == S.CUSTOMER_CONFIRMED.value


def test_action_not_offered_conflicts(client, make_order, auth_headers):
    order = make_order()
    res = client.post(f"/orders/{order.id}/actions/mark_completed", headers=auth_headers)
    assert res.status_code == 409


def test_unknown_action_is_422(client, make_order, auth_headers):
    order = make_order()
    res = client.post(f"/orders/{order.id}/actions/teleport", headers=auth_headers)
    assert res.status_code == 422


def test_reject_uses_default_reason(client, make_order, auth_headers):
    order = make_order()
    res = client.post(f"/orders/{order.id}/actions/reject", headers=auth_headers)
    assert res.status_code == 200
    assert res.json()["order"]["reject_reason"] == "Verification Failed"
    assert res.json()["timeline"][0]["subtitle"] == "Verification Failed"


def test_prepaid_ships_from_review(client, make_order, auth_headers):
    order = make_order(payment_method="BANK_TRANSFER", paid_at=datetime(2024, 5, 1))
    res = client.post(f"/orders/{order.id}/actions/start_delivery", headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["order"]["status"] == S.DELIVERING.value
    assert [c["action"] for c in body["controls"]] == ["mark_completed"]


def test_refund_with_bad_amount_never_reaches_service(client, make_order, auth_headers, monkeypatch):
    order = make_order(status=S.COMPLETED.value)
    calls = []
    monkeypatch.setattr(order_service, "process_refund", lambda *args: calls.append(args))

    res = client.post(f"/orders/{order.id}/refund", json={"amount": "abc"}, headers=auth_headers)
    assert res.status_code == 422
    assert res.json()["detail"] == "Invalid refund amount"
    assert calls == []


def test_refund(client, make_order, auth_headers):
    order = make_order(status=S.COMPLETED.value)
    res = client.post(
        f"/orders/{order.id}/refund",
        json={"amount": "25.000 ₫", "note": "chipped"},
        headers=auth_headers,
    )
    assert res.status_code == 200
    assert res.json()["refunded_amount"] == 25000
    assert res.json()["status"] == S.COMPLETED.value


def test_return_paid_by_shop(client, make_order, auth_headers):
    order = make_order(status=S.COMPLETED.value)
    res = client.post(
        f"/orders/{order.id}/return",
        json={"payer": "shop", "customer_amount": "40000"},
        headers=auth_headers,
    )
    assert res.status_code == 200
    assert res.json()["status"] == S.RETURNED.value
    assert res.json()["customer_shipping_paid"] == 0


def test_return_from_review_conflicts(client, make_order, auth_headers):
    order = make_order()
    res = client.post(f"/orders/{order.id}/return", json={}, headers=auth_headers)
    assert res.status_code == 409


def test_past_orders_and_filter_options(client, make_order, auth_headers):
    make_order(phone="0987", status=S.COMPLETED.value)
    res = client.post("/orders/past-by-phones", json={"phones": ["0987", "0000"]}, headers=auth_headers)
    assert res.json() == [{"phone": "0987", "status": S.COMPLETED.value}]

    res = client.get("/orders/filter-options", headers=auth_headers)
    assert res.json()["payment_method_options"] == ["COD"]


def test_invoice_download(client, make_order, auth_headers):
    order = make_order(order_code="INV-9")
    res = client.get(f"/invoices/{order.id}/download", headers=auth_headers)
    assert res.status_code == 200
    assert res.headers["content-type"] == "application/pdf"
    assert res.content.startswith(b"%PDF")


def test_exchange_paid_order_refunds_order_amount(client, make_order, auth_headers):
    order = make_order(status=S.COMPLETED.value, paid_at=datetime(2024, 3, 1, 9, 0))
    res = client.post(f"/orders/{order.id}/exchange", json={"note": "wrong size"}, headers=auth_headers)

    assert res.status_code == 200
    body = res.json()
    assert body["original"]["status"] == S.EXCHANGED.value
    assert body["original"]["refunded_amount"] == 350000
    assert body["original"]["customer_shipping_paid"] == 50000
    assert body["new_order"]["order_code"] == "ORD-1001-EX"
    assert body["new_order"]["status"] == S.PENDING_REVIEW.value

    detail = client.get(f"/orders/{order.id}", headers=auth_headers).json()
    assert [t["event_type"] for t in detail["timeline"]] == ["refund", "exchange"]


def test_exchange_with_bad_refund_amount_is_422(client, make_order, auth_headers):
    order = make_order(status=S.COMPLETED.value, paid_at=datetime(2024, 3, 1, 9, 0))
    res = client.post(f"/orders/{order.id}/exchange", json={"refund_amount": "abc"}, headers=auth_headers)
    assert res.status_code == 422

    detail = client.get(f"/orders/{order.id}", headers=auth_headers).json()
    assert detail["order"]["status"] == S.COMPLETED.value


def test_exchange_from_review_conflicts(client, make_order, auth_headers):
    order = make_order()
    res = client.post(f"/orders/{order.id}/exchange", json={}, headers=auth_headers)
    assert res.status_code == 409


def test_update_address(client, make_order, auth_headers):
    order = make_order(province="Ha Noi")
    res = client.patch(
        f"/orders/{order.id}/address",
        json={"address_detail": " 12 Hang Bac ", "ward": "Hang Bac"},
        headers=auth_headers,
    )
    assert res.status_code == 200
    body = res.json()
    assert body["address_detail"] == "12 Hang Bac"
    assert body["ward"] == "Hang Bac"
    assert body["province"] == "Ha Noi"


def test_update_address_rejects_other_fields(client, make_order, auth_headers):
    order = make_order()
    res = client.patch(
        f"/orders/{order.id}/address",
        json={"status": S.COMPLETED.value},
        headers=auth_headers,
    )
    assert res.status_code == 422


def test_update_address_missing_order(client, auth_headers):
    res = client.patch("/orders/999/address", json={"ward": "x"}, headers=auth_headers)
    assert res.status_code == 404


def test_list_invoices(client, session, make_order, auth_headers):
    first = make_order(order_code="ORD-1")
    second = make_order(order_code="ORD-2")
    ensure_pending_invoice(session, first)
    mark_invoice_paid(session, second)

    res = client.get("/invoices", headers=auth_headers)
    assert res.status_code == 200
    body = res.json()
    assert body["total_items"] == 2
    assert {i["invoice_code"] for i in body["results"]} == {"INV-ORD-1", "INV-ORD-2"}

    res = client.get("/invoices", params={"status": ["Paid"]}, headers=auth_headers)
    assert [i["invoice_code"] for i in res.json()["results"]] == ["INV-ORD-2"]
