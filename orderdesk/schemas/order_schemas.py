from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_code: str
    customer_name: str
    phone: str
    product: Optional[str] = None
    amount: float
    payment_method: Optional[str] = None
    status: str
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
    refunded_amount: float = 0
    customer_shipping_paid: float = 0
    seller_shipping_paid: float = 0
    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
    created_at: datetime


class OrderEventRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_id: int
    event_type: str
    payload: Optional[dict] = None
    created_at: datetime
    created_by: str


class TimelineEntry(BaseModel):
    event_id: Optional[str] = None
    event_type: Optional[str] = None
    title: str
    subtitle: str = ""
    icon: str
    color: str
    created_at: Optional[datetime] = None
    placeholder: bool = False


class RiskReason(BaseModel):
    description: str
    score: Optional[float] = None


class RiskAssessment(BaseModel):
    score: Optional[int] = None
    level: Optional[str] = None
    reasons: List[RiskReason] = []


class OrderFlags(BaseModel):
    is_cod: bool
    is_prepaid: bool
    has_paid: bool
    has_qr_sent: bool
    is_low_risk_cod: bool


class Control(BaseModel):
    action: str
    label: str
    disabled: bool = False


class OrderDetail(BaseModel):
    order: OrderRead
    flags: OrderFlags
    controls: List[Control]
    risk: RiskAssessment
    timeline: List[TimelineEntry]


class ActionRequest(BaseModel):
    reason: Optional[str] = None


class RefundRequest(BaseModel):
    amount: str
    note: str = ""


class ReturnRequest(BaseModel):
    payer: Literal["customer", "shop"] = "customer"
    customer_amount: Optional[str] = None
    note: str = ""


class PastOrdersRequest(BaseModel):
    phones: List[str]


class PastOrderStatus(BaseModel):
    phone: str
    status: str


class FilterOptions(BaseModel):
    status_options: List[str]
    payment_method_options: List[str]


class VerificationRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class InvoiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    invoice_code: str
    amount: float
    status: str
    date: date
    paid_at: Optional[datetime] = None
    created_at: datetime


class ExchangeRequest(BaseModel):
    payer: Literal["customer", "shop"] = "customer"
    customer_amount: Optional[str] = None
    note: str = ""
    # only used when the order is already paid; defaults to the order amount
    refund_amount: Optional[str] = None


class ExchangeResult(BaseModel):
    original: OrderRead
    new_order: OrderRead


class AddressUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    address_detail: Optional[str] = None
    ward: Optional[str] = None
    district: Optional[str] = None
    province: Optional[str] = None
