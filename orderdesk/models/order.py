from sqlmodel import SQLModel, Field
from typing import Optional
from datetime import datetime

from orderdesk.constants.order_status import OrderStatus


class Order(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)

    order_code: str = Field(index=True)
    customer_name: str
    phone: str = Field(index=True)
    product: Optional[str] = None
    amount: float = 0

    # null is a legacy COD row
    payment_method: Optional[str] = Field(default=None, index=True)
    status: str = Field(default=OrderStatus.PENDING_REVIEW.value, index=True)

    risk_score: Optional[int] = None
    risk_level: Optional[str] = None

    approved_at: Optional[datetime] = None
    confirmation_sent_at: Optional[datetime] = None
    customer_confirmed_at: Optional[datetime] = None
    qr_sent_at: Optional[datetime] = None
    qr_expired_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    cancel_reason: Optional[str] = None
    reject_reason: Optional[str] = None
    verification_reason: Optional[str] = None

    refunded_amount: float = Field(default=0)
    customer_shipping_paid: float = Field(default=0)
    seller_shipping_paid: float = Field(default=0)

    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
