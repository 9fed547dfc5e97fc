from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from construct import Bytes, Const, ConstructError, Int64ul, Struct
from solders.pubkey import Pubkey

from .errors import SchemaError

logger = logging.getLogger(__name__)


def account_discriminator(name: str) -> bytes:
    """Anchor account discriminator: first 8 bytes of sha256("account:<Name>")."""
    return hashlib.sha256(f"account:{name}".encode()).digest()[:8]


SWAP_POOL_DISCRIMINATOR = account_discriminator("SwapPool")

FEES_LAYOUT = Struct(
    "trade_fee_numerator" / Int64ul,
    "trade_fee_denominator" / Int64ul,
    "owner_trade_fee_numerator" / Int64ul,
    "owner_trade_fee_denominator" / Int64ul,
    "owner_withdraw_fee_numerator" / Int64ul,
    "owner_withdraw_fee_denominator" / Int64ul,
    "host_fee_numerator" / Int64ul,
    "host_fee_denominator" / Int64ul,
)

# Hyperplane SwapPool (zero-copy anchor account). Trailing padding is not parsed.
SWAP_POOL_LAYOUT = Struct(
    "discriminator" / Const(SWAP_POOL_DISCRIMINATOR),
    "admin" / Bytes(32),
    "pool_authority" / Bytes(32),
    "pool_authority_bump_seed" / Int64ul,
    "token_a_vault" / Bytes(32),
    "token_b_vault" / Bytes(32),
    "pool_token_mint" / Bytes(32),
    "token_a_mint" / Bytes(32),
    "token_b_mint" / Bytes(32),
    "token_a_program" / Bytes(32),
    "token_b_program" / Bytes(32),
    "pool_token_program" / Bytes(32),
    "token_a_fees_vault" / Bytes(32),
    "token_b_fees_vault" / Bytes(32),
    "fees" / FEES_LAYOUT,
    "curve_type" / Int64ul,
    "swap_curve" / Bytes(32),
    "withdrawals_only" / Int64ul,
)


@dataclass(frozen=True)
class Fees:
    trade_fee_numerator: int = 0
    trade_fee_denominator: int = 0
    owner_trade_fee_numerator: int = 0
    owner_trade_fee_denominator: int = 0
    owner_withdraw_fee_numerator: int = 0
    owner_withdraw_fee_denominator: int = 0
    host_fee_numerator: int = 0
    host_fee_denominator: int = 0


@dataclass(frozen=True)
class PoolConfig:
    pool: Pubkey
    pool_authority: Pubkey
    token_a_mint: Pubkey
    token_b_mint: Pubkey
    token_a_vault: Pubkey
    token_b_vault: Pubkey
    token_a_fees_vault: Pubkey
    token_b_fees_vault: Pubkey
    token_a_program: Pubkey
    token_b_program: Pubkey
    swap_curve: Pubkey
    curve_type: int
    curve_seed: bytes
    curve_address: Pubkey
    fees: Fees
    withdrawals_only: bool = False


def derive_curve_address(pool: Pubkey, program_id: Pubkey, seed: bytes) -> Pubkey:
    address, _ = Pubkey.find_program_address([seed, bytes(pool)], program_id)
    return address


def parse_pool_account(pool: Pubkey, raw: bytes, program_id: Pubkey, curve_seed: bytes) -> PoolConfig:
    """
    Decode a SwapPool account into an immutable PoolConfig.
    Raises SchemaError when the discriminator or length does not match.
    """
    try:
        parsed = SWAP_POOL_LAYOUT.parse(raw)
    except ConstructError as e:
        raise SchemaError(
            f"Account {pool} is not a SwapPool: {e}",
            details={"pool": str(pool), "length": len(raw)},
        ) from e

    fees = parsed.fees
    config = PoolConfig(
        pool=pool,
        pool_authority=Pubkey.from_bytes(parsed.pool_authority),
        token_a_mint=Pubkey.from_bytes(parsed.token_a_mint),
        token_b_mint=Pubkey.from_bytes(parsed.token_b_mint),
        token_a_vault=Pubkey.from_bytes(parsed.token_a_vault),
        token_b_vault=Pubkey.from_bytes(parsed.token_b_vault),
        token_a_fees_vault=Pubkey.from_bytes(parsed.token_a_fees_vault),
        token_b_fees_vault=Pubkey.from_bytes(parsed.token_b_fees_vault),
        token_a_program=Pubkey.from_bytes(parsed.token_a_program),
        token_b_program=Pubkey.from_bytes(parsed.token_b_program),
        swap_curve=Pubkey.from_bytes(parsed.swap_curve),
        curve_type=int(parsed.curve_type),
        curve_seed=curve_seed,
        curve_address=derive_curve_address(pool, program_id, curve_seed),
        fees=Fees(
            trade_fee_numerator=int(fees.trade_fee_numerator),
            trade_fee_denominator=int(fees.trade_fee_denominator),
            owner_trade_fee_numerator=int(fees.owner_trade_fee_numerator),
            owner_trade_fee_denominator=int(fees.owner_trade_fee_denominator),
            owner_withdraw_fee_numerator=int(fees.owner_withdraw_fee_numerator),
            owner_withdraw_fee_denominator=int(fees.owner_withdraw_fee_denominator),
            host_fee_numerator=int(fees.host_fee_numerator),
            host_fee_denominator=int(fees.host_fee_denominator),
        ),
        withdrawals_only=bool(parsed.withdrawals_only),
    )
    if config.swap_curve != config.curve_address:
        logger.warning(
            f"[HYPERPLANE] Pool {pool} stores curve {config.swap_curve}, derived {config.curve_address}"
        )
    return config
