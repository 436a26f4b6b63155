# =============================================================================
# POLYMARKET LENDING - FIXED POINT MATH
# =============================================================================
#
# NUMERIC ENCODINGS:
# - Prices / probabilities: 18 fractional digits over [0, 1]  (S = 1e18)
# - Loan currency amounts:   6 fractional digits              (USDC style)
# - Collateral token units: 18 fractional digits
# - Ratios:                 basis points over 10,000
#
# All arithmetic is integer arithmetic with floor division.
# No floats are used for any value that reaches the ledger.
#
# =============================================================================

from decimal import Decimal, ROUND_DOWN
from typing import Union


PRICE_DECIMALS: int = 18
LOAN_DECIMALS: int = 6
COLLATERAL_DECIMALS: int = 18

# Price scale S (1.0 in price fixed point)
WAD: int = 10 ** PRICE_DECIMALS
PRICE_SCALE: int = WAD

BPS_DENOMINATOR: int = 10_000

# Largest representable value (used for "infinitely healthy")
MAX_UINT256: int = 2 ** 256 - 1


def mul_div(a: int, b: int, denominator: int) -> int:
    """
    Compute floor(a * b / denominator) without intermediate rounding.

    Raises:
        ValueError: If denominator is zero
    """
    if denominator == 0:
        raise ValueError("mul_div: denominator must be non-zero")
    return (a * b) // denominator


def apply_bps(amount: int, bps: int) -> int:
    """Return amount * bps / 10000 (floor)."""
    return mul_div(amount, bps, BPS_DENOMINATOR)


def rescale(amount: int, from_decimals: int, to_decimals: int) -> int:
    """
    Move an integer amount between fixed-point precisions.

    Scaling down truncates.
    """
    if from_decimals == to_decimals:
        return amount
    if to_decimals > from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


def deviation_bps(value: int, reference: int) -> int:
    """
    Relative deviation of value from reference in basis points.

    deviation = |value - reference| * 10000 / reference

    Raises:
        ValueError: If reference is zero
    """
    if reference == 0:
        raise ValueError("deviation_bps: reference must be non-zero")
    return mul_div(abs(value - reference), BPS_DENOMINATOR, reference)


def collateral_value(amount: int, price: int) -> int:
    """
    Value of collateral token units in loan-currency units.

    amount (18 dp) * price (18 dp) / S  -> value at 18 dp -> rescaled to 6 dp
    """
    value_wad = mul_div(amount, price, PRICE_SCALE)
    return rescale(value_wad, COLLATERAL_DECIMALS, LOAN_DECIMALS)


def to_fixed_point(value: Union[str, int, float, Decimal], decimals: int = PRICE_DECIMALS) -> int:
    """
    Convert a decimal quantity (e.g. an API price string "0.535") to fixed point.

    Truncates toward zero beyond the requested precision.
    Floats are routed through str() to avoid binary artifacts.
    """
    if isinstance(value, float):
        value = str(value)
    scaled = (Decimal(value) * (Decimal(10) ** decimals)).to_integral_value(rounding=ROUND_DOWN)
    return int(scaled)


def from_fixed_point(value: int, decimals: int = PRICE_DECIMALS) -> Decimal:
    """Convert a fixed-point integer back to a Decimal for display."""
    return Decimal(value) / (Decimal(10) ** decimals)
