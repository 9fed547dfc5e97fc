from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Tuple, Union

from solders.pubkey import Pubkey

from . import amm_math
from .amm_math import TradeDirection
from .errors import InvalidMintError, StateError, UnsupportedModeError
from .pool_parser import PoolConfig
from .reserve_cache import ReserveSnapshot, ReserveSynchronizer, SyncState

logger = logging.getLogger(__name__)


class SwapMode(Enum):
    EXACT_IN = "ExactIn"
    EXACT_OUT = "ExactOut"


@dataclass(frozen=True)
class Quote:
    in_amount: int
    out_amount: int
    fee_amount: int
    fee_mint: Pubkey
    fee_pct: Decimal
    transfer_fee_in: int = 0
    transfer_fee_out: int = 0


def _parse_mode(mode: Union[SwapMode, str]) -> SwapMode:
    if isinstance(mode, SwapMode):
        return mode
    try:
        return SwapMode(mode)
    except ValueError:
        raise UnsupportedModeError(f"Unknown swap mode {mode!r}", details={"mode": str(mode)}) from None


def _fee_rate(numerator: int, denominator: int) -> Decimal:
    return Decimal(numerator) / Decimal(denominator) if denominator else Decimal(0)


class QuoteEngine:
    """
    Prices exact-in swaps against the latest published snapshot:
    source transfer fee, then the curve, then destination transfer fee.
    """

    def __init__(self, pool: PoolConfig, synchronizer: ReserveSynchronizer):
        self.pool = pool
        self.synchronizer = synchronizer

    def trade_direction(self, input_mint: Pubkey) -> Tuple[TradeDirection, Pubkey]:
        """Returns (direction, output mint) for a swap selling input_mint."""
        if input_mint == self.pool.token_a_mint:
            return TradeDirection.A_TO_B, self.pool.token_b_mint
        if input_mint == self.pool.token_b_mint:
            return TradeDirection.B_TO_A, self.pool.token_a_mint
        raise InvalidMintError(
            f"Input mint {input_mint} not in pool {self.pool.pool}",
            details={"mint": str(input_mint), "pool": str(self.pool.pool)},
        )

    def require_synced(self) -> ReserveSnapshot:
        state, snapshot = self.synchronizer.current()
        if state != SyncState.SYNCED or snapshot is None:
            raise StateError(
                f"Pool {self.pool.pool} is {state.value}; call update() with fresh accounts",
                state=state,
            )
        return snapshot

    def quote(self, input_mint: Pubkey, amount: int, mode: Union[SwapMode, str] = SwapMode.EXACT_IN) -> Quote:
        if _parse_mode(mode) != SwapMode.EXACT_IN:
            raise UnsupportedModeError("Only ExactIn quotes are supported", details={"mode": str(mode)})
        direction, output_mint = self.trade_direction(input_mint)
        snapshot = self.require_synced()

        if direction == TradeDirection.A_TO_B:
            reserve_in, reserve_out = snapshot.token_a_amount, snapshot.token_b_amount
        else:
            reserve_in, reserve_out = snapshot.token_b_amount, snapshot.token_a_amount

        transfer_fee_in = 0
        source_fee = snapshot.transfer_fee_for(input_mint, self.pool)
        if source_fee is not None:
            transfer_fee_in = source_fee.calculate_epoch_fee(snapshot.epoch, amount)

        result = amm_math.swap(
            snapshot.curve,
            amount - transfer_fee_in,
            reserve_in,
            reserve_out,
            direction,
            self.pool.fees,
        )

        transfer_fee_out = 0
        destination_fee = snapshot.transfer_fee_for(output_mint, self.pool)
        if destination_fee is not None:
            transfer_fee_out = destination_fee.calculate_epoch_fee(
                snapshot.epoch, result.destination_amount_swapped
            )

        fees = self.pool.fees
        fee_pct = _fee_rate(fees.trade_fee_numerator, fees.trade_fee_denominator) + _fee_rate(
            fees.owner_trade_fee_numerator, fees.owner_trade_fee_denominator
        )
        quote = Quote(
            in_amount=amount,
            out_amount=result.destination_amount_swapped - transfer_fee_out,
            fee_amount=result.total_fees,
            fee_mint=input_mint,
            fee_pct=fee_pct,
            transfer_fee_in=transfer_fee_in,
            transfer_fee_out=transfer_fee_out,
        )
        logger.debug(
            f"[HYPERPLANE] Quote {direction.value} in={amount} out={quote.out_amount} "
            f"fee={quote.fee_amount} transfer_fees=({transfer_fee_in}, {transfer_fee_out})"
        )
        return quote
