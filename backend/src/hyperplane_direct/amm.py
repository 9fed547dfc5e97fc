from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Union

from solders.pubkey import Pubkey

from .config import AdapterConfig
from .ix_builder import InstructionBuilder, SwapInstructionSpec
from .pool_parser import PoolConfig, parse_pool_account
from .quote import Quote, QuoteEngine, SwapMode
from .reserve_cache import ReserveSnapshot, ReserveSynchronizer, SyncState

logger = logging.getLogger(__name__)


class HyperplaneAmm:
    """
    Quoting and swap-instruction adapter for one hyperplane pool.

    Lifecycle: construction decodes the pool (Configured), update() publishes
    snapshots (Synced) or keeps the last one while flagging it (Stale).
    quote() only runs while Synced.
    """

    def __init__(self, pool_address: Pubkey, pool_data: bytes, config: AdapterConfig):
        self.config = config
        self.market_key = pool_address
        self.pool: PoolConfig = parse_pool_account(
            pool_address, bytes(pool_data), config.program_id, config.curve_seed
        )
        self.synchronizer = ReserveSynchronizer(
            self.pool,
            clock_address=config.clock_address,
            transfer_fee_aware=config.transfer_fee_aware,
        )
        self.quote_engine = QuoteEngine(self.pool, self.synchronizer)
        self.instruction_builder = InstructionBuilder(self.pool, config)
        logger.info(
            f"[HYPERPLANE] {config.label} pool {pool_address} configured: "
            f"{self.pool.token_a_mint} / {self.pool.token_b_mint}"
        )

    @classmethod
    def from_keyed_account(cls, key: Pubkey, account, config: Optional[AdapterConfig] = None) -> "HyperplaneAmm":
        data = getattr(account, "data", account)
        return cls(key, data, config or AdapterConfig.from_env())

    @property
    def label(self) -> str:
        return self.config.label

    @property
    def key(self) -> Pubkey:
        return self.market_key

    @property
    def program_id(self) -> Pubkey:
        return self.config.program_id

    @property
    def state(self) -> SyncState:
        return self.synchronizer.state

    @property
    def snapshot(self) -> Optional[ReserveSnapshot]:
        return self.synchronizer.snapshot

    def get_reserve_mints(self) -> List[Pubkey]:
        return [self.pool.token_a_mint, self.pool.token_b_mint]

    def get_accounts_to_track(self) -> List[Pubkey]:
        return self.synchronizer.accounts_to_track()

    def update(self, accounts: Mapping[Pubkey, object]) -> SyncState:
        return self.synchronizer.update(accounts)

    def quote(self, input_mint: Pubkey, amount: int, mode: Union[SwapMode, str] = SwapMode.EXACT_IN) -> Quote:
        return self.quote_engine.quote(input_mint, amount, mode)

    def build_swap_instruction(
        self,
        source_mint: Pubkey,
        destination_mint: Pubkey,
        source_token_account: Pubkey,
        destination_token_account: Pubkey,
        transfer_authority: Pubkey,
        amount_in: int = 0,
        minimum_amount_out: int = 0,
        host_fee_account: Optional[Pubkey] = None,
    ) -> SwapInstructionSpec:
        return self.instruction_builder.build_swap_instruction(
            source_mint,
            destination_mint,
            source_token_account,
            destination_token_account,
            transfer_authority,
            amount_in=amount_in,
            minimum_amount_out=minimum_amount_out,
            host_fee_account=host_fee_account,
        )
