from __future__ import annotations

from dataclasses import dataclass

from construct import Bytes, ConstructError, Int64sl, Int64ul, Struct
from solders.pubkey import Pubkey

from .errors import SchemaError

TOKEN_ACCOUNT_LEN = 165

# SPL token account (partial); the same prefix is used by Token-2022 accounts.
TOKEN_ACCOUNT_LAYOUT = Struct(
    "mint" / Bytes(32),
    "owner" / Bytes(32),
    "amount" / Int64ul,
)

CLOCK_LAYOUT = Struct(
    "slot" / Int64ul,
    "epoch_start_timestamp" / Int64sl,
    "epoch" / Int64ul,
    "leader_schedule_epoch" / Int64ul,
    "unix_timestamp" / Int64sl,
)


@dataclass(frozen=True)
class TokenBalance:
    mint: Pubkey
    owner: Pubkey
    amount: int


@dataclass(frozen=True)
class ClockState:
    slot: int
    epoch: int
    unix_timestamp: int


def parse_token_account(raw: bytes) -> TokenBalance:
    if len(raw) < TOKEN_ACCOUNT_LEN:
        raise SchemaError(
            f"Token account too short: {len(raw)} < {TOKEN_ACCOUNT_LEN}",
            details={"length": len(raw)},
        )
    parsed = TOKEN_ACCOUNT_LAYOUT.parse(raw)
    return TokenBalance(
        mint=Pubkey.from_bytes(parsed.mint),
        owner=Pubkey.from_bytes(parsed.owner),
        amount=int(parsed.amount),
    )


def parse_clock(raw: bytes) -> ClockState:
    try:
        parsed = CLOCK_LAYOUT.parse(raw)
    except ConstructError as e:
        raise SchemaError(f"Malformed clock sysvar: {e}", details={"length": len(raw)}) from e
    return ClockState(slot=int(parsed.slot), epoch=int(parsed.epoch), unix_timestamp=int(parsed.unix_timestamp))
