"""
Reserve synchronisation for a hyperplane pool.

update() decodes a batch of freshly fetched accounts, merges it with what was
cached from earlier batches and publishes a new immutable ReserveSnapshot in a
single assignment. Readers take (state, snapshot) from that one attribute and
never see a half-written snapshot.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

from solders.pubkey import Pubkey

from .account_parser import ClockState, parse_clock, parse_token_account
from .amm_math import CurveParams
from .curve_parser import parse_curve_account
from .errors import FeeConfigError, SchemaError
from .pool_parser import PoolConfig
from .transfer_fee import TransferFeeConfig, parse_transfer_fee_config

logger = logging.getLogger(__name__)


class SyncState(Enum):
    CONFIGURED = "configured"
    SYNCED = "synced"
    STALE = "stale"


@dataclass(frozen=True)
class ReserveSnapshot:
    token_a_amount: int
    token_b_amount: int
    curve: CurveParams
    epoch: int
    slot: int = 0
    token_a_transfer_fee: Optional[TransferFeeConfig] = None
    token_b_transfer_fee: Optional[TransferFeeConfig] = None

    def transfer_fee_for(self, mint: Pubkey, pool: PoolConfig) -> Optional[TransferFeeConfig]:
        if mint == pool.token_a_mint:
            return self.token_a_transfer_fee
        if mint == pool.token_b_mint:
            return self.token_b_transfer_fee
        return None


@dataclass
class _Batch:
    vaults: Optional[Tuple[int, int]] = None
    curve: Optional[CurveParams] = None
    clock: Optional[ClockState] = None
    partial_vaults: bool = False


def _raw_bytes(value) -> bytes:
    # fetchers hand over raw bytes or account objects with a .data field
    return bytes(getattr(value, "data", value))


class ReserveSynchronizer:
    def __init__(self, pool: PoolConfig, clock_address: Pubkey, transfer_fee_aware: bool = False):
        self.pool = pool
        self.clock_address = clock_address
        self.transfer_fee_aware = transfer_fee_aware

        self._published: Tuple[SyncState, Optional[ReserveSnapshot]] = (SyncState.CONFIGURED, None)
        self._write_lock = threading.Lock()

        # last good values per source, merged into the next snapshot
        self._vaults: Optional[Tuple[int, int]] = None
        self._curve: Optional[CurveParams] = None
        self._clock: Optional[ClockState] = None
        self._mint_fees: Dict[Pubkey, Optional[TransferFeeConfig]] = {}

    @property
    def state(self) -> SyncState:
        return self._published[0]

    @property
    def snapshot(self) -> Optional[ReserveSnapshot]:
        return self._published[1]

    def current(self) -> Tuple[SyncState, Optional[ReserveSnapshot]]:
        return self._published

    def accounts_to_track(self) -> List[Pubkey]:
        accounts = [
            self.pool.token_a_vault,
            self.pool.token_b_vault,
            self.pool.curve_address,
            self.clock_address,
        ]
        if self.transfer_fee_aware:
            accounts.extend([self.pool.token_a_mint, self.pool.token_b_mint])
        return accounts

    def update(self, accounts: Mapping[Pubkey, object]) -> SyncState:
        with self._write_lock:
            try:
                batch = self._decode_vaults_curve_clock(accounts)
                mint_fees = self._decode_mint_fees(accounts)
            except (SchemaError, FeeConfigError) as e:
                logger.warning(f"[HYPERPLANE] Discarding update for pool {self.pool.pool}: {e}")
                return self._mark_stale("malformed account data")

            if batch.partial_vaults:
                return self._mark_stale("only one vault refreshed")

            if batch.vaults is not None:
                self._vaults = batch.vaults
            if batch.curve is not None:
                self._curve = batch.curve
            if batch.clock is not None:
                self._clock = batch.clock
            self._mint_fees.update(mint_fees)

            missing = [
                name
                for name, value in (("vaults", self._vaults), ("curve", self._curve), ("clock", self._clock))
                if value is None
            ]
            if missing:
                return self._mark_stale(f"missing {', '.join(missing)}")

            snapshot = ReserveSnapshot(
                token_a_amount=self._vaults[0],
                token_b_amount=self._vaults[1],
                curve=self._curve,
                epoch=self._clock.epoch,
                slot=self._clock.slot,
                token_a_transfer_fee=self._mint_fees.get(self.pool.token_a_mint),
                token_b_transfer_fee=self._mint_fees.get(self.pool.token_b_mint),
            )
            previous_state = self.state
            self._published = (SyncState.SYNCED, snapshot)

        if previous_state != SyncState.SYNCED:
            logger.info(f"[HYPERPLANE] Pool {self.pool.pool} synced ({previous_state.value} -> synced)")
        logger.debug(
            f"[HYPERPLANE] Pool {self.pool.pool} snapshot: a={snapshot.token_a_amount} "
            f"b={snapshot.token_b_amount} curve={snapshot.curve.kind.name} epoch={snapshot.epoch}"
        )
        return SyncState.SYNCED

    def _mark_stale(self, reason: str) -> SyncState:
        previous_state, snapshot = self._published
        self._published = (SyncState.STALE, snapshot)
        if previous_state != SyncState.STALE:
            logger.info(f"[HYPERPLANE] Pool {self.pool.pool} stale: {reason}")
        return SyncState.STALE

    def _decode_vaults_curve_clock(self, accounts: Mapping[Pubkey, object]) -> _Batch:
        batch = _Batch()

        vault_a = accounts.get(self.pool.token_a_vault)
        vault_b = accounts.get(self.pool.token_b_vault)
        if vault_a is not None and vault_b is not None:
            balance_a = parse_token_account(_raw_bytes(vault_a))
            balance_b = parse_token_account(_raw_bytes(vault_b))
            for balance, mint, vault in (
                (balance_a, self.pool.token_a_mint, self.pool.token_a_vault),
                (balance_b, self.pool.token_b_mint, self.pool.token_b_vault),
            ):
                if balance.mint != mint:
                    raise SchemaError(
                        f"Vault {vault} holds mint {balance.mint}, expected {mint}",
                        details={"vault": str(vault)},
                    )
            batch.vaults = (balance_a.amount, balance_b.amount)
        elif vault_a is not None or vault_b is not None:
            batch.partial_vaults = True

        curve_data = accounts.get(self.pool.curve_address)
        if curve_data is not None:
            curve, curve_pool = parse_curve_account(_raw_bytes(curve_data))
            if curve_pool != self.pool.pool:
                raise SchemaError(
                    f"Curve account belongs to pool {curve_pool}, expected {self.pool.pool}",
                    details={"curve_pool": str(curve_pool)},
                )
            if int(curve.kind) != self.pool.curve_type:
                raise SchemaError(
                    f"Curve kind {curve.kind.name} does not match pool curve type {self.pool.curve_type}",
                    details={"curve_kind": int(curve.kind), "curve_type": self.pool.curve_type},
                )
            batch.curve = curve

        clock_data = accounts.get(self.clock_address)
        if clock_data is not None:
            batch.clock = parse_clock(_raw_bytes(clock_data))

        return batch

    def _decode_mint_fees(self, accounts: Mapping[Pubkey, object]) -> Dict[Pubkey, Optional[TransferFeeConfig]]:
        if not self.transfer_fee_aware:
            return {}
        fees: Dict[Pubkey, Optional[TransferFeeConfig]] = {}
        for mint in (self.pool.token_a_mint, self.pool.token_b_mint):
            data = accounts.get(mint)
            if data is not None:
                fees[mint] = parse_transfer_fee_config(_raw_bytes(data))
        return fees
