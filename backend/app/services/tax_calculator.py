"""Line-item GST calculation.

Pure functions: no database access. The invoice service resolves the item,
seller state and place of supply and passes the plain values in.

Regime rule:
    seller state == place of supply -> intra-state, CGST and SGST at half the rate each
    otherwise                       -> inter-state, IGST at the full rate
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Optional, Tuple

from app.core.exceptions import MissingLocationError, NegativeAmountError, ValidationError

ROUND = Decimal("0.01")
PERCENT_ROUND = Decimal("0.001")  # CGST/SGST halves of a 2-place rate
ZERO = Decimal("0")
HUNDRED = Decimal("100")


class TaxRegime(str, Enum):
    INTRA_STATE = "intra_state"
    INTER_STATE = "inter_state"


@dataclass(frozen=True)
class LineTax:
    amount: Decimal
    cgst_percent: Decimal
    sgst_percent: Decimal
    igst_percent: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tax_total: Decimal
    line_total: Decimal

    @property
    def taxable_base(self) -> Decimal:
        return self.line_total - self.tax_total


def to_decimal(value, field: str = "value") -> Decimal:
    """Convert int/float/str/Decimal input to Decimal via str (no binary float noise)."""
    if value is None:
        raise ValidationError(f"{field} is required")
    try:
        return value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError:
        raise ValidationError(f"{field} is not a number: {value!r}")


def quantize(value: Decimal) -> Decimal:
    return value.quantize(ROUND, rounding=ROUND_HALF_UP)


def to_money(value, field: str = "amount") -> Decimal:
    """Convert a money input to Decimal, rejecting fractions of a paisa."""
    amount = to_decimal(value, field)
    if amount != quantize(amount):
        raise ValidationError(f"{field} has more than two decimal places: {amount}")
    return amount


def quantize_percent(value: Decimal) -> Decimal:
    return value.quantize(PERCENT_ROUND, rounding=ROUND_HALF_UP)


def classify_regime(seller_state_id: Optional[int], place_of_supply_id: Optional[int]) -> TaxRegime:
    if seller_state_id is None:
        raise MissingLocationError("Seller state is not set for the issuing company")
    if place_of_supply_id is None:
        raise MissingLocationError("Place of supply is not set for the customer or invoice")
    if seller_state_id == place_of_supply_id:
        return TaxRegime.INTRA_STATE
    return TaxRegime.INTER_STATE


def split_tax_rate(tax_rate_percent, regime: TaxRegime) -> Tuple[Decimal, Decimal, Decimal]:
    """Return (cgst %, sgst %, igst %) for a GST rate under ``regime``."""
    rate = to_decimal(tax_rate_percent, "tax_rate_percent")
    if rate < 0:
        raise ValidationError(f"Tax rate cannot be negative: {rate}")
    if regime == TaxRegime.INTRA_STATE:
        half = rate / 2
        return half, half, ZERO
    return ZERO, ZERO, rate


def compute_line_tax(
    sell_price,
    tax_rate_percent,
    quantity,
    discount,
    seller_state_id: Optional[int],
    place_of_supply_id: Optional[int],
    rate=None,
) -> LineTax:
    """Compute amount, GST split and line total for one invoice line.

    Args:
        sell_price: Catalog price of the item
        tax_rate_percent: Item GST rate in percent (18 for 18%)
        quantity: Units sold, must be positive
        discount: Absolute discount on the line (not a percent)
        seller_state_id: Registered state of the issuing company
        place_of_supply_id: State of the buyer (customer or invoice ship-to)
        rate: Optional unit price overriding ``sell_price``

    Raises:
        MissingLocationError: Either state id is None
        ValidationError: Negative price, quantity, discount or tax rate
        NegativeAmountError: Discount larger than the line amount
    """
    unit_price = to_decimal(rate if rate is not None else sell_price, "rate")
    qty = to_decimal(quantity, "quantity")
    disc = to_decimal(discount if discount is not None else 0, "discount")

    if qty <= 0:
        raise ValidationError(f"Quantity must be positive: {qty}")
    if unit_price < 0:
        raise ValidationError(f"Rate cannot be negative: {unit_price}")
    if disc < 0:
        raise ValidationError(f"Discount cannot be negative: {disc}")

    regime = classify_regime(seller_state_id, place_of_supply_id)
    cgst_percent, sgst_percent, igst_percent = split_tax_rate(tax_rate_percent, regime)

    amount = qty * unit_price
    taxable_base = amount - disc
    if taxable_base < 0:
        raise NegativeAmountError(f"Discount {disc} exceeds line amount {amount}")

    cgst = quantize(taxable_base * cgst_percent / HUNDRED)
    sgst = quantize(taxable_base * sgst_percent / HUNDRED)
    igst = quantize(taxable_base * igst_percent / HUNDRED)
    tax_total = cgst + sgst + igst

    return LineTax(
        amount=quantize(amount),
        cgst_percent=cgst_percent,
        sgst_percent=sgst_percent,
        igst_percent=igst_percent,
        cgst=cgst,
        sgst=sgst,
        igst=igst,
        tax_total=tax_total,
        line_total=quantize(taxable_base + tax_total),
    )
