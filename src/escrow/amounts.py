"""Exact conversions between decimal currency and integer token units."""
import re
from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

WALLET_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")

# Expiry values above this are milliseconds, not seconds.
_MILLISECONDS_THRESHOLD = 10 ** 12
# Enough digits for any uint256 amount at any token precision.
_UNIT_PRECISION = 160


def to_decimal(value: Union[str, int, Decimal]) -> Decimal:
    """Parse a currency amount without passing through float."""
    if isinstance(value, float):
        raise TypeError("float amounts are not accepted; pass a string or Decimal")
    try:
        amount = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"invalid amount: {value!r}")
    return amount


def to_units(amount: Decimal, decimals: int) -> int:
    """Scale a decimal amount to smallest integer units.

    Raises ValueError when the amount has more precision than the token
    can represent, instead of silently rounding.
    """
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {amount} has more than {decimals} decimal places"
        )
    return int(scaled)


def from_units(units: int, decimals: int) -> Decimal:
    """Convert integer units back to a normalized decimal amount."""
    with localcontext() as ctx:
        ctx.prec = _UNIT_PRECISION
        normalized = Decimal(units).scaleb(-decimals).normalize()
        # normalize() turns 100 into 1E+2
        if normalized == normalized.to_integral_value():
            return normalized.quantize(Decimal(1))
    return normalized


def normalize_timestamp(value: int) -> int:
    """Return unix seconds for a value expressed in seconds or milliseconds."""
    if value > _MILLISECONDS_THRESHOLD:
        return value // 1000
    return value


def is_wallet_address(value: str) -> bool:
    return bool(WALLET_PATTERN.match(value))


def normalize_address(value: str) -> str:
    if not is_wallet_address(value):
        raise ValueError(f"invalid wallet address: {value!r}")
    return value.lower()
