from decimal import ROUND_FLOOR, Decimal, InvalidOperation

MINOR_UNITS_PER_MAJOR = 100


def to_minor_units(amount: Decimal | int | str) -> int:
    """Convert a decimal major-unit amount to minor units: Decimal('950.00') -> 95000.

    Raises ValueError for floats or for amounts finer than one minor unit.
    """
    if isinstance(amount, float) or isinstance(amount, bool):
        raise ValueError(f"Refusing to convert {type(amount).__name__} to minor units: {amount!r}")
    try:
        value = Decimal(amount) * MINOR_UNITS_PER_MAJOR
    except InvalidOperation as exc:
        raise ValueError(f"Not a decimal amount: {amount!r}") from exc
    if not value.is_finite():
        raise ValueError(f"Not a finite amount: {amount!r}")
    if value != value.to_integral_value(rounding=ROUND_FLOOR):
        raise ValueError(f"Amount has more precision than one minor unit: {amount!r}")
    return int(value)


def format_money(minor: int, symbol: str = "$") -> str:
    """Format minor units for display: 123456 -> '$1,234.56'"""
    sign = "-" if minor < 0 else ""
    major, cents = divmod(abs(minor), MINOR_UNITS_PER_MAJOR)
    return f"{sign}{symbol}{major:,}.{cents:02d}"


def parse_money(value: str) -> int | None:
    """Parse user input like '1,234.56' or '950' into minor units. Returns None if invalid."""
    cleaned = value.strip().replace(",", "").lstrip("$")
    if not cleaned:
        return None
    try:
        return to_minor_units(cleaned)
    except ValueError:
        return None
