from .amm import HyperplaneAmm
from .amm_math import CurveKind, CurveParams, SwapResult, TradeDirection, swap
from .config import AdapterConfig
from .errors import (
    ConfigError,
    CurveError,
    FeeConfigError,
    HyperplaneError,
    InvalidMintError,
    SchemaError,
    StateError,
    UnsupportedModeError,
)
from .ix_builder import InstructionBuilder, SwapInstructionSpec
from .pool_parser import Fees, PoolConfig, parse_pool_account
from .quote import Quote, QuoteEngine, SwapMode
from .reserve_cache import ReserveSnapshot, ReserveSynchronizer, SyncState
from .transfer_fee import TransferFee, TransferFeeConfig, parse_transfer_fee_config

__all__ = [
    "HyperplaneAmm",
    "AdapterConfig",
    "CurveKind",
    "CurveParams",
    "SwapResult",
    "TradeDirection",
    "swap",
    "Fees",
    "PoolConfig",
    "parse_pool_account",
    "ReserveSnapshot",
    "ReserveSynchronizer",
    "SyncState",
    "Quote",
    "QuoteEngine",
    "SwapMode",
    "InstructionBuilder",
    "SwapInstructionSpec",
    "TransferFee",
    "TransferFeeConfig",
    "parse_transfer_fee_config",
    "HyperplaneError",
    "ConfigError",
    "SchemaError",
    "StateError",
    "CurveError",
    "FeeConfigError",
    "InvalidMintError",
    "UnsupportedModeError",
]
