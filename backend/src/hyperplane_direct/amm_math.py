"""
Integer swap curves for hyperplane pools.

Output amounts always round down, matching the on-chain program: the new
destination balance is a ceiling division of the invariant, so a quote never
exceeds what the program pays. Amounts and reserves are u64 and
intermediate products must fit in u128; anything outside those ranges is
rejected with CurveError instead of being clamped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Callable, Dict

from .errors import CurveError
from .pool_parser import Fees

U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1

N_COINS = 2
STABLE_ITERATIONS = 32


class TradeDirection(Enum):
    A_TO_B = "a_to_b"
    B_TO_A = "b_to_a"


class CurveKind(IntEnum):
    CONSTANT_PRODUCT = 1
    CONSTANT_PRICE = 2
    OFFSET = 3
    STABLE = 4


@dataclass(frozen=True)
class CurveParams:
    kind: CurveKind
    token_b_price: int = 0
    token_b_offset: int = 0
    amp: int = 0
    token_a_factor: int = 1
    token_b_factor: int = 1


@dataclass(frozen=True)
class SwapResult:
    source_amount_swapped: int
    destination_amount_swapped: int
    trade_fee: int
    owner_fee: int
    host_fee: int

    @property
    def total_fees(self) -> int:
        return self.trade_fee + self.owner_fee


def _check_u64(name: str, value: int):
    if value < 0 or value > U64_MAX:
        raise CurveError(f"{name} out of u64 range: {value}", details={name: value})


def _check_u128(name: str, value: int):
    if value > U128_MAX:
        raise CurveError(f"{name} overflows u128", details={name: value})


def calculate_fee(amount: int, numerator: int, denominator: int) -> int:
    """floor(amount * numerator / denominator); zero when the rate or amount is zero."""
    if numerator == 0 or amount == 0:
        return 0
    if denominator == 0 or numerator > denominator:
        raise CurveError(
            f"Invalid fee fraction {numerator}/{denominator}",
            details={"numerator": numerator, "denominator": denominator},
        )
    return amount * numerator // denominator


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def _checked_ceil_div(numerator: int, denominator: int) -> int:
    """
    Ceiling division as the on-chain stable curve does it: a quotient below one
    becomes 1 when numerator is at least half the denominator, else 0.
    """
    if denominator <= 0:
        raise CurveError("Stable curve division by a non-positive denominator", details={"denominator": denominator})
    if numerator < denominator:
        return 1 if 2 * numerator >= denominator else 0
    return _ceil_div(numerator, denominator)


def _constant_product(amount: int, reserve_in: int, reserve_out: int) -> int:
    invariant = reserve_in * reserve_out
    _check_u128("invariant", invariant)
    new_destination = _ceil_div(invariant, reserve_in + amount)
    return reserve_out - new_destination


def _swap_constant_product(
    curve: CurveParams, amount: int, reserve_in: int, reserve_out: int, direction: TradeDirection
) -> int:
    return _constant_product(amount, reserve_in, reserve_out)


def _swap_constant_price(
    curve: CurveParams, amount: int, reserve_in: int, reserve_out: int, direction: TradeDirection
) -> int:
    # token_b_price is the amount of token A paid for one token B
    price = curve.token_b_price
    if price == 0:
        raise CurveError("Constant price curve has zero token_b_price")
    if direction == TradeDirection.A_TO_B:
        return amount // price
    out = amount * price
    _check_u128("destination amount", out)
    return out


def _swap_offset(
    curve: CurveParams, amount: int, reserve_in: int, reserve_out: int, direction: TradeDirection
) -> int:
    if direction == TradeDirection.A_TO_B:
        return _constant_product(amount, reserve_in, reserve_out + curve.token_b_offset)
    return _constant_product(amount, reserve_in + curve.token_b_offset, reserve_out)


def compute_d(leverage: int, amount_a: int, amount_b: int) -> int:
    """StableSwap invariant D for two balances, by Newton's method."""
    sum_x = amount_a + amount_b
    if sum_x == 0:
        return 0
    amount_a_times_coins = amount_a * N_COINS
    amount_b_times_coins = amount_b * N_COINS
    d = sum_x
    for _ in range(STABLE_ITERATIONS):
        d_product = d * d // amount_a_times_coins
        d_product = d_product * d // amount_b_times_coins
        d_previous = d
        numerator = (leverage * sum_x + d_product * N_COINS) * d
        denominator = (leverage - 1) * d + (N_COINS + 1) * d_product
        d = numerator // denominator
        if d == d_previous:
            break
    _check_u128("stable invariant", d)
    return d


def compute_new_destination_amount(leverage: int, new_source_amount: int, d: int) -> int:
    """
    Solve y**2 + b*y = c for the destination balance after the swap, where
    c = D**3 / (4 * x * A) and b = x + D / A.
    """
    c = d ** (N_COINS + 1) // (new_source_amount * N_COINS * N_COINS * leverage)
    b = new_source_amount + d // leverage
    y = d
    for _ in range(STABLE_ITERATIONS):
        y_previous = y
        numerator = y * y + c
        denominator = 2 * y + b - d
        y = _checked_ceil_div(numerator, denominator)
        if y == y_previous:
            break
    _check_u128("stable destination amount", y)
    return y


def _swap_stable(
    curve: CurveParams, amount: int, reserve_in: int, reserve_out: int, direction: TradeDirection
) -> int:
    if curve.amp == 0:
        raise CurveError("Stable curve has zero amplification")
    if curve.token_a_factor == 0 or curve.token_b_factor == 0:
        raise CurveError("Stable curve has a zero token factor")
    if direction == TradeDirection.A_TO_B:
        factor_in, factor_out = curve.token_a_factor, curve.token_b_factor
    else:
        factor_in, factor_out = curve.token_b_factor, curve.token_a_factor

    leverage = curve.amp * N_COINS
    scaled_in = reserve_in * factor_in
    scaled_out = reserve_out * factor_out
    d = compute_d(leverage, scaled_in, scaled_out)
    new_destination = compute_new_destination_amount(leverage, scaled_in + amount * factor_in, d)
    if new_destination > scaled_out:
        raise CurveError(
            "Stable curve destination balance exceeds reserve",
            details={"new_destination": new_destination, "reserve_out": scaled_out},
        )
    return (scaled_out - new_destination) // factor_out


SwapWithoutFees = Callable[[CurveParams, int, int, int, TradeDirection], int]

_SWAP_WITHOUT_FEES: Dict[CurveKind, SwapWithoutFees] = {
    CurveKind.CONSTANT_PRODUCT: _swap_constant_product,
    CurveKind.CONSTANT_PRICE: _swap_constant_price,
    CurveKind.OFFSET: _swap_offset,
    CurveKind.STABLE: _swap_stable,
}


def swap(
    curve: CurveParams,
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    direction: TradeDirection,
    fees: Fees,
) -> SwapResult:
    """
    Price an exact-in swap. Trade and owner fees come off the input first, the
    remainder goes through the curve.
    """
    _check_u64("amount_in", amount_in)
    _check_u64("reserve_in", reserve_in)
    _check_u64("reserve_out", reserve_out)
    if amount_in == 0:
        raise CurveError("amount_in is zero")
    if reserve_in == 0 or reserve_out == 0:
        raise CurveError(
            "Pool has an empty reserve",
            details={"reserve_in": reserve_in, "reserve_out": reserve_out},
        )

    swap_without_fees = _SWAP_WITHOUT_FEES.get(curve.kind)
    if swap_without_fees is None:
        raise CurveError(f"Unsupported curve kind {curve.kind}")

    trade_fee = calculate_fee(amount_in, fees.trade_fee_numerator, fees.trade_fee_denominator)
    owner_fee = calculate_fee(amount_in, fees.owner_trade_fee_numerator, fees.owner_trade_fee_denominator)
    total_fees = trade_fee + owner_fee
    if total_fees > amount_in:
        raise CurveError(
            "Fees exceed input amount",
            details={"amount_in": amount_in, "fees": total_fees},
        )

    destination_amount = swap_without_fees(curve, amount_in - total_fees, reserve_in, reserve_out, direction)
    if destination_amount > reserve_out:
        raise CurveError(
            "Swap output exceeds destination reserve",
            details={"destination_amount": destination_amount, "reserve_out": reserve_out},
        )

    return SwapResult(
        source_amount_swapped=amount_in,
        destination_amount_swapped=destination_amount,
        trade_fee=trade_fee,
        owner_fee=owner_fee,
        host_fee=calculate_fee(owner_fee, fees.host_fee_numerator, fees.host_fee_denominator),
    )
