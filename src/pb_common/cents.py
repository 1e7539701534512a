"""Integer arithmetic utilities for cents-based settlement.

Wagers are entered in whole currency units; every amount derived from them
(pools, payouts, net results, transfers) is int cents. No float, no Decimal.
"""

CENTS_PER_UNIT = 100


def units_to_cents(amount: int) -> int:
    """Convert a whole-unit wager amount to cents: 15 -> 1500."""
    return amount * CENTS_PER_UNIT


def div_round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounded to nearest, halves away from zero for positives.

    Matches round(x * 100) / 100 for non-negative x without float error:
    (2n + d) // 2d
    """
    if denominator <= 0:
        raise ValueError(f"Denominator must be positive, got {denominator}")
    return (2 * numerator + denominator) // (2 * denominator)


def cents_to_display(cents: int) -> str:
    """Convert cents to display string: 6500 -> '$65.00', -1200 -> '-$12.00'."""
    if cents < 0:
        abs_cents = -cents
        return f"-${abs_cents // 100:,}.{abs_cents % 100:02d}"
    return f"${cents // 100:,}.{cents % 100:02d}"
