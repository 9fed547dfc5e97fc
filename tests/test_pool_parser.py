import pytest
from solders.pubkey import Pubkey

from hyperplane_direct.config import CURVE_SEED
from hyperplane_direct.errors import SchemaError
from hyperplane_direct.pool_parser import derive_curve_address, parse_pool_account

from tests.builders import build_pool_account


def test_parse_pool_account_copies_layout_fields(keys):
    fees = {"trade_fee_numerator": 25, "owner_trade_fee_numerator": 5, "host_fee_numerator": 2000}
    pool = parse_pool_account(keys.pool, build_pool_account(keys, fees=fees), keys.program_id, CURVE_SEED)

    assert pool.pool == keys.pool
    assert pool.pool_authority == keys.pool_authority
    assert pool.token_a_mint == keys.token_a_mint
    assert pool.token_b_mint == keys.token_b_mint
    assert pool.token_a_vault == keys.token_a_vault
    assert pool.token_b_vault == keys.token_b_vault
    assert pool.token_a_fees_vault == keys.token_a_fees_vault
    assert pool.token_b_fees_vault == keys.token_b_fees_vault
    assert pool.token_a_program == Pubkey.default()
    assert pool.fees.trade_fee_numerator == 25
    assert pool.fees.trade_fee_denominator == 10_000
    assert pool.fees.owner_trade_fee_numerator == 5
    assert pool.fees.host_fee_numerator == 2000
    assert pool.curve_type == 1
    assert pool.withdrawals_only is False


def test_curve_address_is_program_derived(keys):
    pool = parse_pool_account(keys.pool, build_pool_account(keys), keys.program_id, CURVE_SEED)
    expected, _ = Pubkey.find_program_address([b"curve", bytes(keys.pool)], keys.program_id)
    assert pool.curve_address == expected
    assert pool.curve_address == derive_curve_address(keys.pool, keys.program_id, CURVE_SEED)
    assert pool.curve_seed == b"curve"


def test_pool_config_is_immutable(keys):
    pool = parse_pool_account(keys.pool, build_pool_account(keys), keys.program_id, CURVE_SEED)
    with pytest.raises(AttributeError):
        pool.token_a_mint = keys.token_b_mint


def test_wrong_discriminator_raises_schema_error(keys):
    raw = bytearray(build_pool_account(keys))
    raw[0] ^= 0xFF
    with pytest.raises(SchemaError):
        parse_pool_account(keys.pool, bytes(raw), keys.program_id, CURVE_SEED)


def test_truncated_pool_raises_schema_error(keys):
    raw = build_pool_account(keys)[:100]
    with pytest.raises(SchemaError):
        parse_pool_account(keys.pool, raw, keys.program_id, CURVE_SEED)
