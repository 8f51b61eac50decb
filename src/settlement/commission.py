"""Money arithmetic for settlements.

All amounts are ``Decimal`` in major currency units. The platform fee is
rounded half-up to cents and the counterparty absorbs the rounding, so the
two parts of a split always add back to the total.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from settlement.config import DEFAULT_PLATFORM_FEE_PERCENTAGE

PLATFORM_FEE_PERCENTAGE = DEFAULT_PLATFORM_FEE_PERCENTAGE

CENT = Decimal("0.01")
_HUNDRED = Decimal("100")


@dataclass(frozen=True)
class CommissionSplit:
    total_amount: Decimal
    fee_percentage: Decimal
    platform_fee: Decimal
    counterparty_amount: Decimal


def parse_amount(value) -> Decimal:
    """Parse a str/int/Decimal amount. Floats go through ``str`` first."""
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"Invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return amount


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def is_whole_cents(amount: Decimal) -> bool:
    return amount == amount.quantize(CENT)


def format_amount(amount) -> str:
    """Two fractional digits, the checkout-metadata wire format."""
    return f"{quantize(parse_amount(amount)):.2f}"


def to_minor_units(amount) -> int:
    return int((quantize(parse_amount(amount)) * _HUNDRED).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(minor: int) -> Decimal:
    return (Decimal(int(minor)) / _HUNDRED).quantize(CENT)


def split(total, fee_percent=PLATFORM_FEE_PERCENTAGE) -> CommissionSplit:
    """Split ``total`` into the platform fee and the counterparty share.

    The total must already be in whole cents; it is never rounded here.
    """
    total = parse_amount(total)
    if not is_whole_cents(total):
        raise ValueError(f"Total amount has more than two decimal places: {total}")
    total = quantize(total)
    fee_percent = parse_amount(fee_percent)
    if total < 0:
        raise ValueError("Total amount must be non-negative")
    if not (0 <= fee_percent <= _HUNDRED):
        raise ValueError("Fee percentage must be between 0 and 100")

    platform_fee = quantize(total * fee_percent / _HUNDRED)
    return CommissionSplit(
        total_amount=total,
        fee_percentage=fee_percent,
        platform_fee=platform_fee,
        counterparty_amount=total - platform_fee,
    )
