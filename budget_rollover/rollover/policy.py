"""
Carry-Over Policy

Pure functions deciding how much of an unspent amount rolls forward.

The cap is evaluated against the ORIGINAL budget limit, not the unspent
amount: a fully unspent 100 budget with a 50% cap carries at most 50.
A cap of 0% switches carry-over off for every category, independently of
which categories are opted in.

Amounts are exact Decimals; nothing is rounded here.
"""

from decimal import Decimal
from typing import Optional

from budget_rollover.models.budget import (
    HUNDRED,
    ZERO,
    SkipReason,
    UnspentRecord,
)


def _check_percentage(max_carry_over_percentage: Decimal) -> Decimal:
    percentage = Decimal(str(max_carry_over_percentage))
    if percentage < 0 or percentage > HUNDRED:
        raise ValueError(
            f"Max carry-over percentage must be between 0 and 100, got {percentage}"
        )
    return percentage


def carry_over_cap(budget_limit: Decimal, max_carry_over_percentage: Decimal) -> Decimal:
    """Largest amount a budget may carry over: limit * pct / 100."""
    percentage = _check_percentage(max_carry_over_percentage)
    return budget_limit * percentage / HUNDRED


def skip_reason(
    record: UnspentRecord,
    is_opted_in: bool,
    max_carry_over_percentage: Decimal,
) -> Optional[SkipReason]:
    """Why record carries nothing over, or None if it carries something."""
    percentage = _check_percentage(max_carry_over_percentage)
    if not is_opted_in:
        return SkipReason.NOT_SELECTED
    if not record.eligible_for_carryover:
        return SkipReason.NO_UNSPENT_AMOUNT
    if percentage == 0:
        return SkipReason.CARRY_OVER_DISABLED
    return None


def carry_over_amount(
    record: UnspentRecord,
    is_opted_in: bool,
    max_carry_over_percentage: Decimal,
) -> Decimal:
    """
    Amount of record.unspent_amount rolled into the next period.

    min(unspent, limit * pct / 100). Zero when the category is not opted
    in, not eligible, or the cap is 0%.
    """
    percentage = _check_percentage(max_carry_over_percentage)
    if not is_opted_in or not record.eligible_for_carryover or percentage == 0:
        return ZERO

    return min(record.unspent_amount, carry_over_cap(record.budget_limit, percentage))
