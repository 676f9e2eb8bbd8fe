def money(value) -> float:
    """Rounds an amount to cents; None and missing sums count as zero."""
    return round(float(value or 0), 2)


def purchase_total(lines) -> float:
    """
    Sum of unit price x quantity over (unit_price, quantity) pairs.
    Rounded once at the end so per-line rounding does not accumulate.
    """
    return money(sum(float(price) * qty for price, qty in lines))


def ratio(numerator, denominator) -> float:
    """numerator / denominator, or 0 when the denominator is zero."""
    if not denominator:
        return 0.0
    return round(float(numerator) / float(denominator), 4)


def format_item(name: str | None, quantity: int) -> str:
    """Purchase line as shown in summaries and history: "3 x Widget"."""
    return f"{quantity} x {name or 'Deleted product'}"
