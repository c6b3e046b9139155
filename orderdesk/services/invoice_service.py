import io
import logging
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional, Sequence, Union

import requests
from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas
from sqlmodel import Session, select

from orderdesk.config import settings
from orderdesk.constants.invoice_status import InvoiceStatus
from orderdesk.exceptions import DownloadError
from orderdesk.models.invoice import Invoice
from orderdesk.models.order import Order
from orderdesk.utils.formatting import format_money, format_timestamp
from orderdesk.utils.pagination import paginate

logger = logging.getLogger(__name__)


# -------- INVOICE RECORDS --------

def invoice_code_for(order: Order) -> str:
    return f"INV-{order.order_code}"


def fetch_invoice_for_order(session: Session, order: Order) -> Optional[Invoice]:
    return session.exec(
        select(Invoice)
        .where(Invoice.user_id == order.user_id)
        .where(Invoice.order_id == order.id)
    ).first()


def ensure_pending_invoice(session: Session, order: Order) -> Invoice:
    """
    Make sure the order has an invoice, creating a Pending one if not.

    An existing invoice is returned untouched whatever its status, so a
    Paid or Cancelled invoice is never reopened.
    """
    invoice = fetch_invoice_for_order(session, order)
    if invoice:
        return invoice

    invoice = Invoice(
        user_id=order.user_id,
        order_id=order.id,
        invoice_code=invoice_code_for(order),
        amount=order.amount or 0,
        status=InvoiceStatus.PENDING.value,
        date=date.today(),
    )
    session.add(invoice)
    session.commit()
    session.refresh(invoice)

    logger.info(f"Created pending invoice {invoice.invoice_code} for order {order.id}")
    return invoice


def mark_invoice_paid(session: Session, order: Order) -> Invoice:
    """Mark the order's invoice Paid, creating a Paid invoice if there is none."""
    invoice = fetch_invoice_for_order(session, order)
    if invoice is None:
        invoice = Invoice(
            user_id=order.user_id,
            order_id=order.id,
            invoice_code=invoice_code_for(order),
            amount=order.amount or 0,
        )

    invoice.status = InvoiceStatus.PAID.value
    invoice.date = date.today()
    invoice.paid_at = datetime.utcnow()

    session.add(invoice)
    session.commit()
    session.refresh(invoice)

    invalidate_invoice_pdf(order.id)
    logger.info(f"Invoice {invoice.invoice_code} marked paid for order {order.id}")
    return invoice


def fetch_invoices_by_user(
    session: Session,
    user_id: int,
    page: int = 1,
    page_size: int = 20,
    search_query: Optional[str] = None,
    status: Union[str, Sequence[str], None] = None,
    invoice_date: Optional[date] = None,
):
    query = select(Invoice).where(Invoice.user_id == user_id)

    term = (search_query or "").strip()
    if term:
        query = query.where(Invoice.invoice_code.ilike(f"%{term}%"))

    raw = [status] if isinstance(status, str) else list(status or [])
    statuses: List[str] = [s for s in raw if s and s != "all"]
    if statuses:
        query = query.where(Invoice.status.in_(statuses))

    if invoice_date:
        query = query.where(Invoice.date == invoice_date)

    data = paginate(
        session=session,
        query=query.order_by(Invoice.created_at.desc()),
        page=page,
        page_size=page_size,
    )
    data["invoices"] = data.pop("items")
    return data


# -------- INVOICE PDF --------

def invoice_path(order_id: int) -> Path:
    return Path(settings.invoice_dir) / f"invoice_{order_id}.pdf"


def generate_invoice_pdf(order: Order, invoice: Optional[Invoice] = None) -> bytes:
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)

    code = invoice.invoice_code if invoice else invoice_code_for(order)

    y = 780
    lines = [
        f"Invoice {code}",
        f"Order #{order.order_code}",
        f"Date: {format_timestamp(order.created_at)}",
        f"Customer: {order.customer_name}",
        f"Phone: {order.phone}",
        f"Product: {order.product or 'N/A'}",
        f"Payment method: {order.payment_method or 'COD'}",
        f"Total: {format_money(order.amount)}",
    ]
    if invoice:
        lines.append(f"Status: {invoice.status}")
    if order.refunded_amount:
        lines.append(f"Refunded: {format_money(order.refunded_amount)}")
    if order.paid_at:
        lines.append(f"Paid at: {format_timestamp(order.paid_at)}")

    for line in lines:
        c.drawString(72, y, line)
        y -= 22

    c.save()
    return buffer.getvalue()


def ensure_invoice_pdf(order: Order, invoice: Optional[Invoice] = None) -> Path:
    """Return the stored invoice PDF, generating it if the file is missing."""
    path = invoice_path(order.id)

    if path.exists():
        return path

    logger.info(f"Generating invoice PDF for order {order.id}")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(generate_invoice_pdf(order, invoice))
    return path


def invalidate_invoice_pdf(order_id: int) -> None:
    path = invoice_path(order_id)
    if path.exists():
        path.unlink()
        logger.info(f"Invalidated invoice PDF for order {order_id}")


def download_file(url: str, filename: str, dest_dir: Path, timeout: float = 30) -> Path:
    response = requests.get(url, timeout=timeout)

    if not response.ok:
        logger.warning(f"Download of {url} failed with {response.status_code}")
        raise DownloadError(f"Failed to fetch file: HTTP {response.status_code}")

    dest = Path(dest_dir) / filename
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_bytes(response.content)
    return dest
