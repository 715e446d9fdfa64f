"""
Token amount formatting for API and CLI output.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class BalanceResult:
    raw: int
    formatted: str
    usd: Optional[str] = None

    def to_dict(self) -> dict:
        # raw is a string so uint256 values survive JSON consumers
        return {"raw": str(self.raw), "formatted": self.formatted, "usd": self.usd}


def _plain(value: Decimal) -> str:
    text = format(value, "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text or "0"


def format_units(raw: int, decimals: int) -> str:
    """
    Render an integer token amount with ``decimals`` places, trimming zeros.

    Examples:
        >>> format_units(1500000000000000000, 18)
        '1.5'
        >>> format_units(0, 18)
        '0'
    """
    if decimals < 0:
        raise ValueError("decimals must be non-negative")
    sign = "-" if raw < 0 else ""
    whole, fraction = divmod(abs(raw), 10 ** decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0") if decimals else ""
    if fraction_text:
        return f"{sign}{whole}.{fraction_text}"
    return f"{sign}{whole}"


def format_balance_with_usd(raw: int, decimals: int, usd_price: Optional[float]) -> BalanceResult:
    """
    Format a raw amount and, when a price is known, its USD value.

    Args:
        raw: Amount in the token's smallest unit
        decimals: Token decimals
        usd_price: USD price of one whole token, or None

    Returns:
        BalanceResult
    """
    formatted = format_units(raw, decimals)
    usd = None
    if usd_price is not None:
        usd = _plain(Decimal(formatted) * Decimal(str(usd_price)))
    return BalanceResult(raw=raw, formatted=formatted, usd=usd)
