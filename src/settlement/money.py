"""Money value object shared by the payment aggregates and the plan catalog.

Amounts persist as two-decimal strings ("85.00") so settlement arithmetic
never passes through a float.
"""

import re
from decimal import Decimal

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import String

from settlement.commission import format_amount, parse_amount
from settlement.domain import settlement

_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


@settlement.value_object
class Money:
    """Monetary amount with currency."""

    amount = String(required=True, max_length=20)
    currency = String(max_length=3, default="USD")

    @invariant.post
    def amount_must_be_a_non_negative_decimal(self):
        try:
            value = parse_amount(self.amount)
        except ValueError:
            raise ValidationError({"amount": [f"Invalid amount: {self.amount}"]})
        if value < 0:
            raise ValidationError({"amount": ["Amount cannot be negative"]})

    @invariant.post
    def currency_must_be_a_three_letter_code(self):
        if not self.currency or not _CURRENCY_CODE.match(self.currency):
            raise ValidationError({"currency": ["Currency must be a 3-letter upper-case code"]})

    @classmethod
    def of(cls, amount, currency: str = "USD") -> "Money":
        return cls(amount=format_amount(amount), currency=(currency or "USD").upper())

    @property
    def value(self) -> Decimal:
        return parse_amount(self.amount)
