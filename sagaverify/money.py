"""
Exact currency amounts.

Money wraps a ``decimal.Decimal`` and never passes through binary floating
point. Amounts travel over the wire as decimal strings and are compared by
their canonical rendering, so ``Money("12.34").multiply(10)`` is
``"123.40"``: the scale of the unit price is kept.
"""

from __future__ import annotations

from decimal import Decimal, Inexact, InvalidOperation, localcontext

from sagaverify.core.exceptions import ParseError


class Money:
    __slots__ = ("_amount",)

    def __init__(self, amount: Decimal | str | int):
        if isinstance(amount, bool) or isinstance(amount, float):
            msg = f"Money cannot be built from {type(amount).__name__}; use a decimal string"
            raise TypeError(msg)
        if isinstance(amount, str):
            amount = _parse_decimal(amount)
        elif isinstance(amount, int):
            amount = Decimal(amount)
        elif not isinstance(amount, Decimal):
            msg = f"Unsupported amount type: {type(amount).__name__}"
            raise TypeError(msg)
        if not amount.is_finite():
            msg = f"Money amount must be finite, got {amount}"
            raise ParseError(msg)
        self._amount = amount

    @classmethod
    def from_decimal_string(cls, s: str) -> Money:
        """Parse a decimal string such as ``"12.34"``; raises ParseError if malformed."""
        if not isinstance(s, str):
            msg = f"Expected a decimal string, got {type(s).__name__}"
            raise ParseError(msg)
        return cls(_parse_decimal(s))

    @property
    def amount(self) -> Decimal:
        return self._amount

    def multiply(self, quantity: int) -> Money:
        """Exact product with an integer quantity; no rounding."""
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            msg = f"Quantity must be an int, got {type(quantity).__name__}"
            raise TypeError(msg)
        # Enough precision for every digit of the product; Inexact would mean rounding
        digits = len(self._amount.as_tuple().digits) + len(str(abs(quantity)))
        with localcontext() as ctx:
            ctx.prec = max(digits, 28)
            ctx.traps[Inexact] = True
            return Money(self._amount * quantity)

    def as_canonical_string(self) -> str:
        # "f" keeps the scale and never switches to exponent notation
        return format(self._amount, "f")

    def to_json(self) -> str:
        return self.as_canonical_string()

    def __mul__(self, quantity: int) -> Money:
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            return NotImplemented
        return self.multiply(quantity)

    __rmul__ = __mul__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Money):
            return NotImplemented
        return self.as_canonical_string() == other.as_canonical_string()

    def __hash__(self) -> int:
        return hash(self.as_canonical_string())

    def __str__(self) -> str:
        return self.as_canonical_string()

    def __repr__(self) -> str:
        return f"Money('{self.as_canonical_string()}')"


def _parse_decimal(s: str) -> Decimal:
    if not s.strip():
        msg = "Empty money amount"
        raise ParseError(msg)
    if s != s.strip() or "_" in s:
        msg = f"Malformed money amount: {s!r}"
        raise ParseError(msg)
    try:
        value = Decimal(s)
    except InvalidOperation:
        msg = f"Malformed money amount: {s!r}"
        raise ParseError(msg) from None
    if not value.is_finite():
        msg = f"Money amount must be finite, got {s!r}"
        raise ParseError(msg)
    return value
