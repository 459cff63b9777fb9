from __future__ import annotations

from decimal import Decimal


def format_decimal(value: Decimal) -> str:
    quantized = value.normalize()
    # Avoid scientific notation for integers.
    if quantized == quantized.to_integral():
        return f"{quantized:.0f}"
    return format(quantized, "f")


def format_weight(value: Decimal) -> str:
    return f"{format_decimal(value)} kg"


def format_rupiah(value: Decimal, symbol: str = "Rp") -> str:
    """Indonesian grouping: ``.`` between thousands, ``,`` before decimals."""
    whole, _, fraction = format_decimal(abs(value)).partition(".")
    grouped = f"{int(whole):,}".replace(",", ".")
    body = f"{grouped},{fraction}" if fraction else grouped
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol} {body}"
