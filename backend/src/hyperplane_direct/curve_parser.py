from __future__ import annotations

from typing import Dict, Tuple

from construct import Bytes, ConstructError, Int64ul, Struct
from solders.pubkey import Pubkey

from .amm_math import CurveKind, CurveParams
from .errors import SchemaError
from .pool_parser import account_discriminator

CONSTANT_PRODUCT_CURVE_LAYOUT = Struct(
    "pool" / Bytes(32),
)

CONSTANT_PRICE_CURVE_LAYOUT = Struct(
    "token_b_price" / Int64ul,
    "pool" / Bytes(32),
)

OFFSET_CURVE_LAYOUT = Struct(
    "token_b_offset" / Int64ul,
    "pool" / Bytes(32),
)

STABLE_CURVE_LAYOUT = Struct(
    "amp" / Int64ul,
    "token_a_factor" / Int64ul,
    "token_b_factor" / Int64ul,
    "pool" / Bytes(32),
)

# discriminator -> (kind, body layout)
CURVE_LAYOUTS: Dict[bytes, Tuple[CurveKind, Struct]] = {
    account_discriminator("ConstantProductCurve"): (CurveKind.CONSTANT_PRODUCT, CONSTANT_PRODUCT_CURVE_LAYOUT),
    account_discriminator("ConstantPriceCurve"): (CurveKind.CONSTANT_PRICE, CONSTANT_PRICE_CURVE_LAYOUT),
    account_discriminator("OffsetCurve"): (CurveKind.OFFSET, OFFSET_CURVE_LAYOUT),
    account_discriminator("StableCurve"): (CurveKind.STABLE, STABLE_CURVE_LAYOUT),
}

CURVE_DISCRIMINATORS: Dict[CurveKind, bytes] = {kind: disc for disc, (kind, _) in CURVE_LAYOUTS.items()}


def parse_curve_account(raw: bytes) -> Tuple[CurveParams, Pubkey]:
    """
    Decode a curve-parameter account. Returns the parameters and the pool the
    curve belongs to.
    """
    entry = CURVE_LAYOUTS.get(bytes(raw[:8]))
    if entry is None:
        raise SchemaError("Unknown curve account discriminator", details={"discriminator": bytes(raw[:8]).hex()})
    kind, layout = entry
    try:
        parsed = layout.parse(raw[8:])
    except ConstructError as e:
        raise SchemaError(f"Malformed {kind.name} curve account: {e}", details={"length": len(raw)}) from e

    params = CurveParams(
        kind=kind,
        token_b_price=int(parsed.get("token_b_price", 0)),
        token_b_offset=int(parsed.get("token_b_offset", 0)),
        amp=int(parsed.get("amp", 0)),
        token_a_factor=int(parsed.get("token_a_factor", 1)),
        token_b_factor=int(parsed.get("token_b_factor", 1)),
    )
    return params, Pubkey.from_bytes(parsed.pool)


def build_curve_account(params: CurveParams, pool: Pubkey) -> bytes:
    """Serialise curve parameters in the on-chain account layout."""
    layout = next(body for kind, body in CURVE_LAYOUTS.values() if kind == params.kind)
    values = {
        "token_b_price": params.token_b_price,
        "token_b_offset": params.token_b_offset,
        "amp": params.amp,
        "token_a_factor": params.token_a_factor,
        "token_b_factor": params.token_b_factor,
        "pool": bytes(pool),
    }
    return CURVE_DISCRIMINATORS[params.kind] + layout.build(values)
