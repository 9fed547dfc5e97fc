"""
Token-2022 transfer-fee extension: decoding and fee-on-transfer math.

The fee for a transfer is ceil(amount * bps / 10_000), capped at the
configured maximum. The rate in force is the newer one once the current epoch
reaches the newer schedule's epoch, otherwise the older one.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from construct import Bytes, ConstructError, Int16ul, Int64ul, Struct

from .errors import FeeConfigError

MAX_FEE_BASIS_POINTS = 10_000

MINT_BASE_LEN = 82
ACCOUNT_TYPE_OFFSET = 165
ACCOUNT_TYPE_MINT = 1
EXTENSION_TRANSFER_FEE_CONFIG = 1

TLV_HEADER_LAYOUT = Struct(
    "type" / Int16ul,
    "length" / Int16ul,
)

TRANSFER_FEE_LAYOUT = Struct(
    "epoch" / Int64ul,
    "maximum_fee" / Int64ul,
    "transfer_fee_basis_points" / Int16ul,
)

TRANSFER_FEE_CONFIG_LAYOUT = Struct(
    "transfer_fee_config_authority" / Bytes(32),
    "withdraw_withheld_authority" / Bytes(32),
    "withheld_amount" / Int64ul,
    "older_transfer_fee" / TRANSFER_FEE_LAYOUT,
    "newer_transfer_fee" / TRANSFER_FEE_LAYOUT,
)


@dataclass(frozen=True)
class TransferFee:
    epoch: int
    maximum_fee: int
    basis_points: int

    def calculate_fee(self, amount: int) -> int:
        if self.basis_points == 0 or amount == 0:
            return 0
        raw_fee = -(-amount * self.basis_points // MAX_FEE_BASIS_POINTS)
        return min(raw_fee, self.maximum_fee)


@dataclass(frozen=True)
class TransferFeeConfig:
    older_transfer_fee: TransferFee
    newer_transfer_fee: TransferFee

    @property
    def transition_epoch(self) -> int:
        return self.newer_transfer_fee.epoch

    def get_epoch_fee(self, epoch: int) -> TransferFee:
        if epoch >= self.newer_transfer_fee.epoch:
            return self.newer_transfer_fee
        return self.older_transfer_fee

    def calculate_epoch_fee(self, epoch: int, amount: int) -> int:
        fee = self.get_epoch_fee(epoch).calculate_fee(amount)
        if fee > amount:
            raise FeeConfigError(
                f"Transfer fee {fee} exceeds amount {amount}",
                details={"fee": fee, "amount": amount, "epoch": epoch},
            )
        return fee


def _transfer_fee(parsed) -> TransferFee:
    fee = TransferFee(
        epoch=int(parsed.epoch),
        maximum_fee=int(parsed.maximum_fee),
        basis_points=int(parsed.transfer_fee_basis_points),
    )
    if fee.basis_points > MAX_FEE_BASIS_POINTS:
        raise FeeConfigError(
            f"Transfer fee basis points out of range: {fee.basis_points}",
            details={"basis_points": fee.basis_points},
        )
    return fee


def parse_transfer_fee_config(raw: bytes) -> Optional[TransferFeeConfig]:
    """
    Find the transfer-fee extension in raw mint bytes.
    Returns None for a mint without it (plain SPL mints included).
    """
    if len(raw) <= MINT_BASE_LEN:
        return None
    if len(raw) <= ACCOUNT_TYPE_OFFSET:
        raise FeeConfigError("Mint has trailing bytes but no account type", details={"length": len(raw)})
    if raw[ACCOUNT_TYPE_OFFSET] != ACCOUNT_TYPE_MINT:
        raise FeeConfigError(
            f"Unexpected account type {raw[ACCOUNT_TYPE_OFFSET]} in mint",
            details={"account_type": raw[ACCOUNT_TYPE_OFFSET]},
        )

    offset = ACCOUNT_TYPE_OFFSET + 1
    while offset + TLV_HEADER_LAYOUT.sizeof() <= len(raw):
        header = TLV_HEADER_LAYOUT.parse(raw[offset:])
        offset += TLV_HEADER_LAYOUT.sizeof()
        # zero type marks unused space at the end of the account
        if header.type == 0:
            break
        if offset + header.length > len(raw):
            raise FeeConfigError(
                f"Extension {header.type} overruns mint data",
                details={"type": header.type, "length": header.length},
            )
        if header.type == EXTENSION_TRANSFER_FEE_CONFIG:
            if header.length != TRANSFER_FEE_CONFIG_LAYOUT.sizeof():
                raise FeeConfigError(
                    f"Transfer fee extension has length {header.length}",
                    details={"length": header.length},
                )
            try:
                parsed = TRANSFER_FEE_CONFIG_LAYOUT.parse(raw[offset:offset + header.length])
            except ConstructError as e:
                raise FeeConfigError(f"Malformed transfer fee extension: {e}") from e
            return TransferFeeConfig(
                older_transfer_fee=_transfer_fee(parsed.older_transfer_fee),
                newer_transfer_fee=_transfer_fee(parsed.newer_transfer_fee),
            )
        offset += header.length
    return None
