from datetime import date

import pytest

from orderdesk.constants.invoice_status import InvoiceStatus
from orderdesk.exceptions import DownloadError
from orderdesk.services import invoice_service
from orderdesk.services.invoice_service import (
    ensure_invoice_pdf,
    ensure_pending_invoice,
    fetch_invoice_for_order,
    fetch_invoices_by_user,
    invalidate_invoice_pdf,
    invoice_path,
    mark_invoice_paid,
)


class FakeResponse:
    def __init__(self, status_code, content=b""):
        self.status_code = status_code
        self.content = content
        self.ok = status_code < 400


def test_invoice_pdf_is_generated_once_and_cached(session, make_order):
    order = make_order(amount=125000)
    assert not invoice_path(order.id).exists()

    path = ensure_invoice_pdf(order)
    assert path.read_bytes().startswith(b"%PDF")
    mtime = path.stat().st_mtime_ns

    assert ensure_invoice_pdf(order) == path
    assert path.stat().st_mtime_ns == mtime


def test_invalidate_removes_cached_pdf(session, make_order):
    order = make_order()
    ensure_invoice_pdf(order)
    invalidate_invoice_pdf(order.id)
    assert not invoice_path(order.id).exists()
    # a second call on a missing file is a no-op
    invalidate_invoice_pdf(order.id)


def test_pending_then_paid(session, make_order):
    order = make_order(order_code="ORD-42", amount=99000)

    pending = ensure_pending_invoice(session, order)
    assert pending.status == InvoiceStatus.PENDING.value
    assert pending.invoice_code == "INV-ORD-42"
    assert pending.amount == 99000
    assert pending.date == date.today()
    assert pending.paid_at is None

    paid = mark_invoice_paid(session, order)
    assert paid.id == pending.id
    assert paid.status == InvoiceStatus.PAID.value
    assert paid.paid_at is not None


def test_ensure_pending_leaves_existing_invoice_alone(session, make_order):
    order = make_order()
    paid = mark_invoice_paid(session, order)

    again = ensure_pending_invoice(session, order)
    assert again.id == paid.id
    assert again.status == InvoiceStatus.PAID.value


def test_mark_paid_creates_invoice_when_missing(session, make_order):
    order = make_order(order_code="ORD-7")
    assert fetch_invoice_for_order(session, order) is None

    invoice = mark_invoice_paid(session, order)
    assert invoice.status == InvoiceStatus.PAID.value
    assert invoice.invoice_code == "INV-ORD-7"


def test_mark_paid_drops_cached_pdf(session, make_order):
    order = make_order()
    ensure_invoice_pdf(order)
    mark_invoice_paid(session, order)
    assert not invoice_path(order.id).exists()


def test_fetch_invoices_by_user_filters(session, make_order, user):
    a = make_order(order_code="A-1")
    b = make_order(order_code="B-2")
    ensure_pending_invoice(session, a)
    mark_invoice_paid(session, b)

    data = fetch_invoices_by_user(session, user.id)
    assert data["total_count"] == 2

    paid = fetch_invoices_by_user(session, user.id, status=[InvoiceStatus.PAID.value])
    assert [i.invoice_code for i in paid["invoices"]] == ["INV-B-2"]

    found = fetch_invoices_by_user(session, user.id, search_query="a-1")
    assert [i.invoice_code for i in found["invoices"]] == ["INV-A-1"]

    assert fetch_invoices_by_user(session, user.id + 1)["total_count"] == 0


def test_download_file_writes_content(tmp_path, monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return FakeResponse(200, b"hello")

    monkeypatch.setattr(invoice_service.requests, "get", fake_get)

    dest = invoice_service.download_file("https://files.example.com/a.txt", "a.txt", tmp_path)
    assert dest.read_bytes() == b"hello"
    assert calls == [("https://files.example.com/a.txt", 30)]


def test_download_file_raises_on_http_error(tmp_path, monkeypatch):
    monkeypatch.setattr(invoice_service.requests, "get", lambda url, timeout: FakeResponse(404))

    with pytest.raises(DownloadError, match="HTTP 404"):
        invoice_service.download_file("https://files.example.com/missing", "x.pdf", tmp_path)
    assert not (tmp_path / "x.pdf").exists()
