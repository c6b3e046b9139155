from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from sqlmodel import Session

from orderdesk.database import get_session
from orderdesk.exceptions import OrderNotFoundError
from orderdesk.models.user import User
from orderdesk.schemas.order_schemas import InvoiceRead
from orderdesk.services import order_service
from orderdesk.services.invoice_service import (
    ensure_invoice_pdf,
    fetch_invoice_for_order,
    fetch_invoices_by_user,
)
from orderdesk.utils.token import get_current_user


router = APIRouter()


@router.get("")
def list_invoices(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[List[str]] = Query(None),
    invoice_date: Optional[date] = Query(None, alias="date"),
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    data = fetch_invoices_by_user(
        session,
        current_user.id,
        page,
        page_size,
        search_query=search,
        status=status,
        invoice_date=invoice_date,
    )

    return {
        "total_items": data["total_count"],
        "total_pages": data["total_pages"],
        "current_page": data["page"],
        "results": [InvoiceRead.model_validate(i) for i in data["invoices"]],
    }


@router.get("/{order_id}/download")
def download_invoice(
    order_id: int,
    session: Session = Depends(get_session),
    current_user: User = Depends(get_current_user),
):
    try:
        order = order_service.fetch_order(session, order_id, current_user.id)
    except OrderNotFoundError:
        raise HTTPException(404, "Order not found")

    file_path = ensure_invoice_pdf(order, fetch_invoice_for_order(session, order))

    return FileResponse(
        file_path,
        filename=f"invoice_{order.order_code}.pdf",
        media_type="application/pdf"
    )
