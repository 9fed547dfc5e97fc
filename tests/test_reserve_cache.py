import threading

import pytest
from solders.pubkey import Pubkey

from hyperplane_direct import AdapterConfig
from hyperplane_direct.amm_math import CurveKind
from hyperplane_direct.reserve_cache import SyncState

from tests.builders import build_accounts, build_clock, build_curve, build_mint, build_token_account


def test_new_adapter_is_configured_without_snapshot(make_amm):
    amm = make_amm()
    assert amm.state == SyncState.CONFIGURED
    assert amm.snapshot is None


def test_full_batch_publishes_snapshot(make_amm, keys, config):
    amm = make_amm()
    state = amm.update(build_accounts(keys, config.clock_address, 1_000, 2_000, epoch=77))
    assert state == SyncState.SYNCED
    snapshot = amm.snapshot
    assert (snapshot.token_a_amount, snapshot.token_b_amount) == (1_000, 2_000)
    assert snapshot.curve.kind == CurveKind.CONSTANT_PRODUCT
    assert snapshot.epoch == 77


def test_missing_vault_on_fresh_adapter_is_stale(make_amm, keys, config):
    amm = make_amm()
    accounts = build_accounts(keys, config.clock_address, 1_000, 2_000)
    del accounts[keys.token_b_vault]
    assert amm.update(accounts) == SyncState.STALE
    assert amm.snapshot is None


def test_single_vault_round_keeps_previous_snapshot(make_amm, keys, config):
    amm = make_amm(1_000, 2_000)
    before = amm.snapshot
    accounts = build_accounts(keys, config.clock_address, 5_000, 6_000)
    del accounts[keys.token_a_vault]

    assert amm.update(accounts) == SyncState.STALE
    assert amm.snapshot is before


def test_absent_accounts_reuse_cached_values(make_amm, keys, config):
    amm = make_amm(1_000, 2_000, epoch=10)
    state = amm.update({config.clock_address: build_clock(11)})
    assert state == SyncState.SYNCED
    assert amm.snapshot.epoch == 11
    assert (amm.snapshot.token_a_amount, amm.snapshot.token_b_amount) == (1_000, 2_000)


def test_stale_recovers_on_next_full_batch(make_amm, keys, config):
    amm = make_amm(1_000, 2_000)
    amm.update({keys.token_a_vault: build_token_account(keys.token_a_mint, 1)})
    assert amm.state == SyncState.STALE
    assert amm.update(build_accounts(keys, config.clock_address, 3_000, 4_000)) == SyncState.SYNCED
    assert amm.snapshot.token_a_amount == 3_000


def test_malformed_batch_is_discarded_entirely(make_amm, keys, config):
    amm = make_amm(1_000, 2_000, epoch=10)
    before = amm.snapshot
    accounts = build_accounts(keys, config.clock_address, 9_000, 9_000, epoch=12)
    accounts[keys.curve_address] = b"\x00" * 16

    assert amm.update(accounts) == SyncState.STALE
    assert amm.snapshot is before

    # the valid vault and clock data from the discarded batch never reached the cache
    assert amm.update({keys.curve_address: build_curve(CurveKind.CONSTANT_PRODUCT, keys.pool)}) == SyncState.SYNCED
    assert amm.snapshot.token_a_amount == 1_000
    assert amm.snapshot.epoch == 10


def test_vault_with_wrong_mint_is_rejected(make_amm, keys, config):
    amm = make_amm()
    accounts = build_accounts(keys, config.clock_address, 1_000, 2_000)
    accounts[keys.token_a_vault] = build_token_account(keys.token_b_mint, 1_000)
    assert amm.update(accounts) == SyncState.STALE


def test_curve_of_another_pool_is_rejected(make_amm, keys, config):
    amm = make_amm()
    accounts = build_accounts(keys, config.clock_address, 1_000, 2_000)
    accounts[keys.curve_address] = build_curve(CurveKind.CONSTANT_PRODUCT, Pubkey.new_unique())
    assert amm.update(accounts) == SyncState.STALE


def test_curve_kind_must_match_pool_curve_type(make_amm, keys, config):
    amm = make_amm()
    accounts = build_accounts(
        keys, config.clock_address, 1_000, 2_000, curve_kind=CurveKind.CONSTANT_PRICE, token_b_price=2
    )
    assert amm.update(accounts) == SyncState.STALE


def test_unknown_addresses_are_ignored(make_amm, keys, config):
    amm = make_amm()
    accounts = build_accounts(keys, config.clock_address, 1_000, 2_000)
    accounts[Pubkey.new_unique()] = b"garbage"
    assert amm.update(accounts) == SyncState.SYNCED


def test_accounts_to_track(make_amm, keys, config):
    amm = make_amm()
    assert amm.get_accounts_to_track() == [
        keys.token_a_vault,
        keys.token_b_vault,
        keys.curve_address,
        config.clock_address,
    ]

    fee_aware = make_amm(adapter_config=AdapterConfig(program_id=keys.program_id, transfer_fee_aware=True))
    assert fee_aware.get_accounts_to_track()[-2:] == [keys.token_a_mint, keys.token_b_mint]


class TestTransferFeeSync:
    @pytest.fixture
    def fee_config(self, keys):
        return AdapterConfig(program_id=keys.program_id, transfer_fee_aware=True)

    def test_mint_extension_is_decoded(self, make_amm, keys, fee_config):
        amm = make_amm(adapter_config=fee_config)
        accounts = build_accounts(keys, fee_config.clock_address, 1_000, 2_000)
        accounts[keys.token_a_mint] = build_mint(older_bps=100)
        accounts[keys.token_b_mint] = build_mint()
        assert amm.update(accounts) == SyncState.SYNCED
        assert amm.snapshot.token_a_transfer_fee.older_transfer_fee.basis_points == 100
        assert amm.snapshot.token_b_transfer_fee is None

    def test_absent_mints_do_not_block_sync(self, make_amm, keys, fee_config):
        amm = make_amm(adapter_config=fee_config)
        assert amm.update(build_accounts(keys, fee_config.clock_address, 1_000, 2_000)) == SyncState.SYNCED
        assert amm.snapshot.token_a_transfer_fee is None

    def test_mint_fee_is_carried_over(self, make_amm, keys, fee_config):
        amm = make_amm(adapter_config=fee_config)
        accounts = build_accounts(keys, fee_config.clock_address, 1_000, 2_000)
        accounts[keys.token_b_mint] = build_mint(older_bps=50)
        amm.update(accounts)
        amm.update(build_accounts(keys, fee_config.clock_address, 1_100, 1_900))
        assert amm.snapshot.token_b_transfer_fee.older_transfer_fee.basis_points == 50

    def test_malformed_extension_marks_stale(self, make_amm, keys, fee_config):
        amm = make_amm(adapter_config=fee_config)
        accounts = build_accounts(keys, fee_config.clock_address, 1_000, 2_000)
        accounts[keys.token_a_mint] = build_mint(older_bps=20_000)
        assert amm.update(accounts) == SyncState.STALE

    def test_mints_ignored_when_not_fee_aware(self, make_amm, keys, config):
        amm = make_amm()
        accounts = build_accounts(keys, config.clock_address, 1_000, 2_000)
        accounts[keys.token_a_mint] = build_mint(older_bps=100)
        amm.update(accounts)
        assert amm.snapshot.token_a_transfer_fee is None


def test_readers_only_see_whole_snapshots(make_amm, keys, config):
    amm = make_amm(1_000, 1_000)
    batches = [build_accounts(keys, config.clock_address, n, n) for n in range(1_000, 1_200)]
    torn = []

    def read():
        for _ in range(2_000):
            _, snapshot = amm.synchronizer.current()
            if snapshot.token_a_amount != snapshot.token_b_amount:
                torn.append(snapshot)

    reader = threading.Thread(target=read)
    reader.start()
    for batch in batches:
        amm.update(batch)
    reader.join()
    assert torn == []
