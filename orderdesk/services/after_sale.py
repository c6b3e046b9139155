"""
Refund, return and exchange forms.

All of them validate locally before anything is sent to the order service.
A failed validation never reaches the database.
"""

import re
from typing import NamedTuple, Optional

from orderdesk.config import settings
from orderdesk.exceptions import AmountValidationError

CUSTOMER = "customer"
SHOP = "shop"

_NON_DIGITS = re.compile(r"[^0-9]")


def parse_amount(raw) -> int:
    """'25.000 ₫' -> 25000. Anything that is not a positive integer is rejected."""
    digits = _NON_DIGITS.sub("", str(raw or ""))
    if not digits or int(digits) <= 0:
        raise AmountValidationError("Invalid refund amount")
    return int(digits)


def _lenient_amount(raw) -> int:
    digits = _NON_DIGITS.sub("", str(raw or ""))
    return int(digits) if digits else 0


class RefundForm:
    def __init__(self, amount: str, note: str = ""):
        self.amount = amount
        self.note = note

    def validate(self):
        return parse_amount(self.amount), self.note.strip()


class ShippingSubmission(NamedTuple):
    customer_pays: bool
    customer_amount: int
    shop_amount: int
    note: str


class _ShippingFeeForm:
    """
    Who pays the carrier for an after-sale shipment, and how much the
    customer is charged.

    Switching the payer resets the customer amount to that payer's default.
    The shop's own share is not tracked per shipment.
    """

    shop_payer_charges_customer = True

    def _default_amount(self, payer: str) -> int:
        raise NotImplementedError

    def __init__(self, payer: str = CUSTOMER, customer_amount: Optional[str] = None, note: str = ""):
        self._check_payer(payer)
        self.payer = payer
        self.note = note
        if customer_amount is None or not self._charges_customer():
            customer_amount = str(self._default_amount(payer))
        self.customer_amount = customer_amount

    @staticmethod
    def _check_payer(payer: str):
        if payer not in (CUSTOMER, SHOP):
            raise ValueError(f"Unknown payer: {payer}")

    def _charges_customer(self) -> bool:
        return self.payer == CUSTOMER or self.shop_payer_charges_customer

    def set_payer(self, payer: str):
        self._check_payer(payer)
        if payer != self.payer:
            self.customer_amount = str(self._default_amount(payer))
        self.payer = payer

    def submission(self) -> ShippingSubmission:
        customer_amount = _lenient_amount(self.customer_amount) if self._charges_customer() else 0
        return ShippingSubmission(
            customer_pays=self.payer == CUSTOMER,
            customer_amount=customer_amount,
            shop_amount=0,
            note=self.note.strip(),
        )


class ReturnForm(_ShippingFeeForm):
    # the shop covers the whole return leg
    shop_payer_charges_customer = False

    def _default_amount(self, payer: str) -> int:
        if payer == SHOP:
            return 0
        return settings.return_default_customer_amount


class ExchangeForm(_ShippingFeeForm):
    """Exchange shipping plus, for paid orders, a refund issued first."""

    def __init__(
        self,
        payer: str = CUSTOMER,
        customer_amount: Optional[str] = None,
        note: str = "",
        refund_amount: Optional[str] = None,
    ):
        super().__init__(payer, customer_amount, note)
        self.refund_amount = refund_amount

    def _default_amount(self, payer: str) -> int:
        if payer == SHOP:
            # the customer still pays the replacement's outbound leg
            return settings.exchange_shop_payer_customer_amount
        return settings.exchange_default_customer_amount

    def refund(self, is_paid: bool, order_amount: float) -> Optional[int]:
        """Amount to refund before the exchange, or None for unpaid orders.

        Defaults to the full order amount.
        """
        if not is_paid:
            return None
        raw = self.refund_amount if self.refund_amount is not None else int(order_amount or 0)
        return parse_amount(raw)
