import os
from dataclasses import dataclass
from typing import Optional

from solders.pubkey import Pubkey
from solders.sysvar import CLOCK

from .errors import ConfigError

CURVE_SEED = b"curve"
DEFAULT_LABEL = "Rarefish"

_TRUTHY = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in _TRUTHY


@dataclass(frozen=True)
class AdapterConfig:
    program_id: Pubkey
    label: str = DEFAULT_LABEL
    transfer_fee_aware: bool = False
    include_curve_account: bool = False
    authority_writable: bool = False
    curve_seed: bytes = CURVE_SEED
    clock_address: Pubkey = CLOCK

    @classmethod
    def from_env(cls, program_id: Optional[str] = None) -> "AdapterConfig":
        raw_program_id = program_id or os.getenv("HYPERPLANE_PROGRAM_ID", "")
        if not raw_program_id:
            raise ConfigError("HYPERPLANE_PROGRAM_ID is not set")
        try:
            parsed_program_id = Pubkey.from_string(raw_program_id)
        except ValueError as e:
            raise ConfigError(
                f"Invalid program id {raw_program_id!r}: {e}",
                details={"program_id": raw_program_id},
            ) from e
        return cls(
            program_id=parsed_program_id,
            label=os.getenv("HYPERPLANE_LABEL", DEFAULT_LABEL) or DEFAULT_LABEL,
            transfer_fee_aware=_env_flag("HYPERPLANE_TRANSFER_FEE_AWARE"),
            include_curve_account=_env_flag("HYPERPLANE_SWAP_INCLUDE_CURVE"),
            authority_writable=_env_flag("HYPERPLANE_AUTHORITY_WRITABLE"),
        )
