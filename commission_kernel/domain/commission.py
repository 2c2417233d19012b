"""
Commission split arithmetic.

Pure functions, zero I/O.  Amounts are integers in minor currency units;
rates are ``Decimal`` fractions in [0, 1].  Floats never enter the
computation, so ``commission_amount + net_amount == amount`` holds exactly.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from commission_kernel.exceptions import InvalidAmountError, InvalidCommissionRateError

_ZERO = Decimal("0")
_ONE = Decimal("1")


@dataclass(frozen=True)
class CommissionSplit:
    """Commission/net split of one sale amount."""

    amount_total: int
    commission_amount: int
    net_amount: int
    rate: Decimal

    def __post_init__(self) -> None:
        # INVARIANT: the split always balances
        assert self.commission_amount + self.net_amount == self.amount_total


def to_rate(value: Decimal | str | float | int) -> Decimal:
    """
    Coerce a rate to ``Decimal`` and check it lies in [0, 1].

    Floats go through ``str`` so ``0.05`` becomes ``Decimal("0.05")`` and
    not its binary approximation.

    Raises:
        InvalidCommissionRateError: If the value is not a number in [0, 1].
    """
    if isinstance(value, bool):
        raise InvalidCommissionRateError(value)
    try:
        rate = value if isinstance(value, Decimal) else Decimal(str(value))
    except ArithmeticError as exc:
        raise InvalidCommissionRateError(value) from exc
    if not rate.is_finite() or rate < _ZERO or rate > _ONE:
        raise InvalidCommissionRateError(value)
    return rate


def validate_amount(amount: object) -> int:
    """
    Check that ``amount`` is a positive integer of minor units.

    Raises:
        InvalidAmountError: For non-integers (including bool) and amounts <= 0.
    """
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmountError(amount)
    return amount


def compute_split(amount: int, rate: Decimal) -> CommissionSplit:
    """
    Split ``amount`` into commission and net.

    ``commission = round_half_up(amount * rate)``; ``net = amount - commission``.

    Example:
        >>> compute_split(10000, Decimal("0.05"))
        CommissionSplit(amount_total=10000, commission_amount=500, net_amount=9500, ...)
    """
    validate_amount(amount)
    rate = to_rate(rate)
    commission = int(
        (Decimal(amount) * rate).quantize(_ONE, rounding=ROUND_HALF_UP)
    )
    return CommissionSplit(
        amount_total=amount,
        commission_amount=commission,
        net_amount=amount - commission,
        rate=rate,
    )
