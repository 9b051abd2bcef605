"""
Price codec for CCA auctions.

Two numeric encodings live here side by side:

- Q96: the auction contract's unsigned fixed-point price (value * 2**96).
- Confidential units: 8-decimal fixed point used by the blind pool, sized so
  scaled values fit the encryption engine's 64-bit integers.

All conversions from decimal strings use exact integer arithmetic; floats are
never involved.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Tuple, Type

from web3 import Web3

from .errors import EncodingRangeExceeded, InvalidInput, InvalidPrice

logger = logging.getLogger(__name__)

Q96 = 2 ** 96
UINT256_MAX = 2 ** 256 - 1

DECODE_DECIMALS = 8

CONFIDENTIAL_DECIMALS = 8
CONFIDENTIAL_SCALE = 10 ** CONFIDENTIAL_DECIMALS
CONFIDENTIAL_MAX = 2 ** 64 - 1

# Decimal strings with more integer digits than uint256 can hold are rejected early
_MAX_INTEGER_DIGITS = 78


def parse_positive_decimal(
    text: str,
    field: str,
    error_cls: Type[InvalidInput] = InvalidInput
) -> Decimal:
    """
    Parse a base-10 decimal string that must be finite and strictly positive.

    Args:
        text: User-supplied decimal string
        field: Field name reported in the error
        error_cls: InvalidInput subclass to raise

    Returns:
        The parsed Decimal (exact, no rounding)
    """
    def fail(message: str):
        if error_cls is InvalidPrice:
            return InvalidPrice(message, field=field)
        return error_cls(field, message)

    if text is None or not str(text).strip():
        raise fail("value is required")

    try:
        value = Decimal(str(text).strip())
    except InvalidOperation:
        raise fail(f"not a number: {text!r}")

    if not value.is_finite():
        raise fail("value must be finite")
    if value <= 0:
        raise fail("value must be greater than zero")
    if value.adjusted() >= _MAX_INTEGER_DIGITS:
        raise fail("value is too large")

    return value


def _as_fraction(value: Decimal) -> Tuple[int, int]:
    """Split a finite Decimal into an exact (numerator, denominator) pair."""
    _, digits, exponent = value.as_tuple()
    numerator = int("".join(str(d) for d in digits) or "0")
    if exponent >= 0:
        return numerator * 10 ** exponent, 1
    return numerator, 10 ** (-exponent)


def encode_price(text: str) -> int:
    """
    Encode a decimal price string (ETH per token) into Q96.

    Returns 0 when the value is positive but too small to represent after
    scaling; callers must treat 0 as "too small", not as a zero price.

    Raises:
        InvalidPrice: if the string is not a finite positive number
    """
    numerator, denominator = _as_fraction(parse_positive_decimal(text, "price", InvalidPrice))
    encoded = numerator * Q96 // denominator
    if encoded > UINT256_MAX:
        raise InvalidPrice("value is too large")
    return encoded


def decode_price(value: int) -> str:
    """
    Decode a Q96 price into a decimal string with up to 8 fractional digits.

    The 8th digit is rounded half-up, so any decimal with at most 8 fractional
    digits survives decode_price(encode_price(x)) unchanged.
    """
    value = int(value)
    if value == 0:
        return "0"

    whole, remainder = divmod(value, Q96)
    scale = 10 ** DECODE_DECIMALS
    fraction = (remainder * scale * 2 + Q96) // (2 * Q96)
    if fraction == scale:
        whole += 1
        fraction = 0

    digits = str(fraction).rjust(DECODE_DECIMALS, "0").rstrip("0")
    if not digits:
        return str(whole)
    return f"{whole}.{digits}"


def snap_up_to_tick(value: int, tick_spacing: int) -> int:
    """Round a Q96 price up to the next multiple of tick_spacing (never down)."""
    value = int(value)
    tick_spacing = int(tick_spacing)
    if tick_spacing <= 0:
        return value
    remainder = value % tick_spacing
    if remainder == 0:
        return value
    return value - remainder + tick_spacing


def to_confidential_units(text: str, field: str, round_up: bool = False) -> int:
    """
    Scale a decimal string into the blind pool's 8-decimal integer domain.

    Args:
        text: Decimal string (price in ETH or amount in ETH)
        field: Field name reported in errors
        round_up: Round extra fractional digits up instead of down

    Raises:
        InvalidInput: if the value is not positive or scales to zero
        EncodingRangeExceeded: if the scaled value exceeds CONFIDENTIAL_MAX
    """
    numerator, denominator = _as_fraction(parse_positive_decimal(text, field))
    scaled_numerator = numerator * CONFIDENTIAL_SCALE
    if round_up:
        scaled = -(-scaled_numerator // denominator)
    else:
        scaled = scaled_numerator // denominator

    if scaled == 0:
        raise InvalidInput(field, f"value is below the minimum of 1e-{CONFIDENTIAL_DECIMALS}")
    if scaled > CONFIDENTIAL_MAX:
        raise EncodingRangeExceeded(field, scaled, CONFIDENTIAL_MAX)
    return scaled


def check_confidential_range(value: int, field: str) -> int:
    """Validate an already-scaled confidential value against the 64-bit width."""
    if value < 0:
        raise InvalidInput(field, "value must not be negative")
    if value > CONFIDENTIAL_MAX:
        raise EncodingRangeExceeded(field, value, CONFIDENTIAL_MAX)
    return value


def parse_ether(text: str, field: str = "amount") -> int:
    """Parse a positive ETH amount into wei, rejecting sub-wei values."""
    value = parse_positive_decimal(text, field)
    try:
        wei = Web3.to_wei(value, "ether")
    except ValueError as e:
        raise InvalidInput(field, str(e))
    if wei == 0:
        raise InvalidInput(field, "value is smaller than 1 wei")
    return wei


def format_ether(wei: int) -> str:
    """Render a wei amount as an ETH decimal string."""
    ether = Web3.from_wei(int(wei), "ether")
    if ether == 0:
        return "0"
    text = format(ether, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text
