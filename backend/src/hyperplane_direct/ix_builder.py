from __future__ import annotations

import hashlib
import logging
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID

from .config import AdapterConfig
from .errors import InvalidMintError
from .pool_parser import PoolConfig

logger = logging.getLogger(__name__)

SWAP_IX_DISCRIMINATOR = hashlib.sha256(b"global:swap").digest()[:8]

# Pools created before per-side token programs store the zero key here.
ZERO_PUBKEY = Pubkey.default()

SWAP_ACCOUNT_COUNT = 13


@dataclass(frozen=True)
class SwapInstructionSpec:
    program_id: Pubkey
    data: bytes
    accounts: Tuple[AccountMeta, ...]

    def to_instruction(self) -> Instruction:
        return Instruction(program_id=self.program_id, data=self.data, accounts=list(self.accounts))


def encode_swap_data(amount_in: int, minimum_amount_out: int) -> bytes:
    return struct.pack("<8sQQ", SWAP_IX_DISCRIMINATOR, amount_in, minimum_amount_out)


def resolve_token_program(token_program: Pubkey) -> Pubkey:
    if token_program == ZERO_PUBKEY:
        return TOKEN_PROGRAM_ID
    return token_program


class InstructionBuilder:
    def __init__(self, pool: PoolConfig, config: AdapterConfig):
        self.pool = pool
        self.config = config

    def get_vault_mapping(self, source_mint: Pubkey) -> Tuple[Pubkey, Pubkey, Pubkey, Pubkey, Pubkey]:
        """
        Returns (source_vault, source_fees_vault, source_token_program,
        destination_vault, destination_token_program) for a swap selling source_mint.
        """
        pool = self.pool
        if source_mint == pool.token_a_mint:
            return (
                pool.token_a_vault,
                pool.token_a_fees_vault,
                pool.token_a_program,
                pool.token_b_vault,
                pool.token_b_program,
            )
        if source_mint == pool.token_b_mint:
            return (
                pool.token_b_vault,
                pool.token_b_fees_vault,
                pool.token_b_program,
                pool.token_a_vault,
                pool.token_a_program,
            )
        raise InvalidMintError(
            f"Source mint {source_mint} not in pool {pool.pool}",
            details={"mint": str(source_mint), "pool": str(pool.pool)},
        )

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
        (
            source_vault,
            source_fees_vault,
            source_token_program,
            destination_vault,
            destination_token_program,
        ) = self.get_vault_mapping(source_mint)
        expected_destination = self.pool.token_b_mint if source_mint == self.pool.token_a_mint else self.pool.token_a_mint
        if destination_mint != expected_destination:
            raise InvalidMintError(
                f"Destination mint {destination_mint} does not pair with {source_mint} in pool {self.pool.pool}",
                details={"mint": str(destination_mint), "pool": str(self.pool.pool)},
            )

        program_id = self.config.program_id
        accounts = [
            AccountMeta(transfer_authority, is_signer=True, is_writable=self.config.authority_writable),
            AccountMeta(self.pool.pool, is_signer=False, is_writable=True),
        ]
        if self.config.include_curve_account:
            accounts.append(AccountMeta(self.pool.curve_address, is_signer=False, is_writable=False))
        accounts.extend(
            [
                AccountMeta(self.pool.pool_authority, is_signer=False, is_writable=False),
                AccountMeta(source_mint, is_signer=False, is_writable=False),
                AccountMeta(destination_mint, is_signer=False, is_writable=False),
                AccountMeta(source_vault, is_signer=False, is_writable=True),
                AccountMeta(destination_vault, is_signer=False, is_writable=True),
                AccountMeta(source_fees_vault, is_signer=False, is_writable=True),
                AccountMeta(source_token_account, is_signer=False, is_writable=True),
                AccountMeta(destination_token_account, is_signer=False, is_writable=True),
                # the program's own id in this slot means "no host fee account"
                AccountMeta(host_fee_account or program_id, is_signer=False, is_writable=True),
                AccountMeta(resolve_token_program(source_token_program), is_signer=False, is_writable=False),
                AccountMeta(resolve_token_program(destination_token_program), is_signer=False, is_writable=False),
            ]
        )

        logger.debug(f"[HYPERPLANE] Swap ix for pool {self.pool.pool}: {len(accounts)} accounts")
        return SwapInstructionSpec(
            program_id=program_id,
            data=encode_swap_data(amount_in, minimum_amount_out),
            accounts=tuple(accounts),
        )
