from datetime import date as date_type, datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from orderdesk.constants.invoice_status import InvoiceStatus


class Invoice(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)

    user_id: int = Field(foreign_key="user.id", index=True)
    order_id: int = Field(foreign_key="order.id", index=True)

    invoice_code: str = Field(index=True)  # INV-<order_code>
    amount: float = 0
    status: str = Field(default=InvoiceStatus.PENDING.value, index=True)

    date: date_type = Field(default_factory=date_type.today)
    paid_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
