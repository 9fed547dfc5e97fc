"""
Pytest fixtures for the hyperplane adapter tests.
"""

import pytest

from hyperplane_direct import AdapterConfig, HyperplaneAmm
from hyperplane_direct.amm_math import CurveKind

from tests.builders import PoolKeys, build_accounts, build_pool_account


def pytest_configure(config):
    config.addinivalue_line("markers", "property: hypothesis-driven property tests")


@pytest.fixture
def keys():
    return PoolKeys()


@pytest.fixture
def config(keys):
    return AdapterConfig(program_id=keys.program_id)


@pytest.fixture
def make_amm(keys, config):
    """Factory: build an adapter, optionally synced to the given reserves."""

    def _make(
        reserve_a=None,
        reserve_b=None,
        fees=None,
        curve_kind=CurveKind.CONSTANT_PRODUCT,
        adapter_config=None,
        epoch=500,
        **curve_params,
    ):
        cfg = adapter_config or config
        amm = HyperplaneAmm(keys.pool, build_pool_account(keys, curve_kind=curve_kind, fees=fees), cfg)
        if reserve_a is not None:
            amm.update(
                build_accounts(
                    keys,
                    cfg.clock_address,
                    reserve_a,
                    reserve_b,
                    epoch=epoch,
                    curve_kind=curve_kind,
                    **curve_params,
                )
            )
        return amm

    return _make
