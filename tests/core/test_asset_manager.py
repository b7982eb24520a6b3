# [TESTER] v1

from __future__ import annotations

import logging

import pytest

from tidepool import AssetManager
from tidepool.core.errors import (
    AmountOverflow,
    InvalidParameter,
    InvalidThresholds,
    ReentrantCall,
    ShareMismatch,
    Unauthorized,
    UnknownPair,
    VaultInUse,
)
from tidepool.core.log_compression import WAD

from tests.fakes import (
    ALICE,
    BOB,
    GUARDIAN,
    MANAGER,
    OWNER,
    FlashCallee,
    InMemoryVault,
    ManipulatedVault,
    OneShotDistributor,
    deposit,
    make_factory,
    make_tokens,
    withdraw,
)

VAULT0 = "0x" + "5a" * 20
CALLEE = "0x" + "ca" * 20


def _managed(vault_type=InMemoryVault):
    factory = make_factory(platform_fee=0)
    token_a, token_b = make_tokens(factory.chain)
    pair = factory.create_pair(token_a, token_b)
    manager = AssetManager(factory, owner=OWNER, guardian=GUARDIAN, address=MANAGER)
    vault = vault_type(pair.token0, VAULT0, chain=factory.chain)
    manager.set_vault_for_asset(pair.token0, vault, caller=OWNER)
    factory.set_manager(pair, manager, caller=OWNER)
    return factory, pair, manager, vault


def _conserved(manager, vault, pairs) -> bool:
    token = vault.asset.address
    return sum(manager.shares(p, token) for p in pairs) == manager.total_shares(vault)


def test_mint_invests_to_band_midpoint() -> None:
    _, pair, manager, vault = _managed()
    deposit(pair, ALICE, 10**6, 10**6)

    assert (pair.token0_managed, pair.token1_managed) == (500_000, 0)
    assert pair.get_reserves()[:2] == (10**6, 10**6)
    assert pair.token0.balance_of(pair.address) == 500_000
    assert vault.total_assets() == 500_000
    assert manager.shares(pair, pair.token0.address) == 500_000
    assert manager.total_shares(vault) == vault.balance_of(MANAGER) == 500_000


def test_yield_and_loss_reach_reserves() -> None:
    _, pair, manager, vault = _managed()
    deposit(pair, ALICE, 10**6, 10**6)

    vault.accrue(100_000)
    assert manager.get_balance(pair, pair.token0.address) == 599_999
    pair.sync()
    assert pair.get_reserves()[:2] == (1_099_999, 10**6)
    assert pair.token0_managed == 599_999

    vault.lose(200_000)
    pair.sync()
    assert pair.token0_managed == manager.get_balance(pair, pair.token0.address)
    assert pair.get_reserves()[0] == 500_000 + pair.token0_managed


def test_burn_pulls_shortfall_back_from_manager(caplog) -> None:
    _, pair, manager, vault = _managed()
    liquidity = deposit(pair, ALICE, 10**6, 10**6)

    with caplog.at_level(logging.WARNING, logger="tidepool.core.pair"):
        assert withdraw(pair, ALICE, liquidity) == (999_000, 999_000)
    assert "returning 499000" in caplog.text

    # The remaining 1000 was over-managed and rebalanced back to the midpoint.
    assert pair.get_reserves()[:2] == (1000, 1000)
    assert pair.token0_managed == 500
    assert pair.token0.balance_of(pair.address) == 500
    assert _conserved(manager, vault, [pair])


def test_swap_pulls_shortfall_back_from_manager() -> None:
    _, pair, manager, vault = _managed()
    deposit(pair, ALICE, 10**6, 10**6)
    callee = FlashCallee(pair, CALLEE)
    pair.token1.mint(CALLEE, 10**7)

    # Positive exact-out: token0 taken out, more than the pool holds physically.
    pair.swap(600_000, False, CALLEE, b"flash", callee=callee)

    assert pair.token0.balance_of(CALLEE) == 600_000
    assert pair.token0.balance_of(pair.address) == 0
    assert pair.token0_managed == 400_000
    assert pair.get_reserves()[0] == 400_000
    assert _conserved(manager, vault, [pair])


class RebalancingCallee(FlashCallee):
    """Pays the swap back, then asks the manager to rebalance the still-locked pair."""

    def __init__(self, pair, address, manager) -> None:
        super().__init__(pair, address)
        self.manager = manager

    def on_swap(self, initiator, delta0, delta1, data) -> None:
        super().on_swap(initiator, delta0, delta1, data)
        self.manager.after_liquidity_event(self.pair, caller=self.pair.address)


def test_pair_hooks_only_answer_the_pair() -> None:
    _, pair, manager, vault = _managed()
    deposit(pair, ALICE, 10**6, 10**6)

    with pytest.raises(Unauthorized):
        manager.return_asset(pair, pair.token0_managed, 0, caller=ALICE)
    with pytest.raises(Unauthorized):
        manager.after_liquidity_event(pair, caller=OWNER)
    assert pair.token0_managed == 500_000
    assert vault.balance_of(MANAGER) == 500_000


def test_rebalance_rejected_while_pair_is_locked() -> None:
    _, pair, manager, _ = _managed()
    deposit(pair, ALICE, 10**6, 10**6)
    callee = RebalancingCallee(pair, CALLEE, manager)
    pair.token1.mint(CALLEE, 10**7)

    with pytest.raises(ReentrantCall):
        pair.swap(600_000, False, CALLEE, b"flash", callee=callee)
    assert pair.token0_managed == 500_000
    assert pair.get_reserves()[:2] == (10**6, 10**6)
    assert pair.token0.balance_of(CALLEE) == 0


def test_manual_adjustment() -> None:
    _, pair, manager, vault = _managed()
    deposit(pair, ALICE, 10**6, 10**6)

    manager.adjust_management(pair, -100_000, 0, caller=OWNER)
    assert pair.token0_managed == 400_000
    manager.adjust_management(pair, 50_000, 0, caller=OWNER)
    assert pair.token0_managed == 450_000
    assert manager.total_shares(vault) == 450_000

    # token1 has no vault: its delta is ignored.
    manager.adjust_management(pair, 0, 10_000, caller=OWNER)
    assert pair.token1_managed == 0


def test_adjustment_checks() -> None:
    factory, pair, manager, _ = _managed()
    deposit(pair, ALICE, 10**6, 10**6)

    with pytest.raises(Unauthorized):
        manager.adjust_management(pair, 1, 0, caller=GUARDIAN)
    with pytest.raises(AmountOverflow):
        manager.adjust_management(pair, 2**104, 0, caller=OWNER)

    other = make_factory()
    stranger = other.create_pair(*make_tokens(other.chain))
    with pytest.raises(UnknownPair):
        manager.adjust_management(stranger, 1, 0, caller=OWNER)

    unmanaged = factory.create_pair(pair.token0, pair.token1, "STABLE")
    with pytest.raises(UnknownPair):
        manager.adjust_management(unmanaged, 1, 0, caller=OWNER)


def test_manager_cannot_change_while_funds_managed() -> None:
    factory, pair, _, _ = _managed()
    deposit(pair, ALICE, 10**6, 10**6)
    with pytest.raises(InvalidParameter):
        factory.set_manager(pair, None, caller=OWNER)


def test_wind_down_only_divests() -> None:
    _, pair, manager, _ = _managed()
    deposit(pair, ALICE, 10**6, 10**6)
    manager.set_wind_down_mode(True, caller=GUARDIAN)

    manager.adjust_management(pair, 10_000, 0, caller=OWNER)
    assert pair.token0_managed == 500_000
    manager.adjust_management(pair, -10_000, 0, caller=OWNER)
    assert pair.token0_managed == 490_000

    deposit(pair, BOB, 10**6, 10**6)
    assert pair.token0_managed == 490_000


def test_thresholds() -> None:
    _, pair, manager, _ = _managed()
    with pytest.raises(InvalidThresholds):
        manager.set_thresholds(8 * WAD // 10, 2 * WAD // 10, caller=OWNER)
    with pytest.raises(InvalidThresholds):
        manager.set_thresholds(0, WAD + 1, caller=OWNER)
    with pytest.raises(Unauthorized):
        manager.set_thresholds(0, WAD, caller=ALICE)

    manager.set_thresholds(0, WAD, caller=GUARDIAN)
    deposit(pair, ALICE, 10**6, 10**6)
    assert pair.token0_managed == 0


def test_vault_mismatch_reverts_divest() -> None:
    _, pair, manager, vault = _managed(ManipulatedVault)
    deposit(pair, ALICE, 10**6, 10**6)

    with pytest.raises(ShareMismatch):
        manager.adjust_management(pair, -1000, 0, caller=OWNER)
    assert pair.token0_managed == 500_000
    assert manager.shares(pair, pair.token0.address) == 500_000
    assert vault.balance_of(MANAGER) == 500_000


def test_vault_assignment() -> None:
    factory, pair, manager, vault = _managed()
    deposit(pair, ALICE, 10**6, 10**6)

    with pytest.raises(VaultInUse):
        manager.set_vault_for_asset(pair.token0, None, caller=OWNER)
    with pytest.raises(InvalidParameter):
        manager.set_vault_for_asset(pair.token1, vault, caller=OWNER)
    with pytest.raises(Unauthorized):
        manager.set_vault_for_asset(pair.token1, None, caller=GUARDIAN)

    vault1 = InMemoryVault(pair.token1, "0x" + "5b" * 20, chain=factory.chain)
    manager.set_vault_for_asset(pair.token1, vault1, caller=OWNER)
    assert manager.asset_vault(pair.token1.address) is vault1


def test_stray_shares_are_not_attributed() -> None:
    _, pair, manager, vault = _managed()
    deposit(pair, ALICE, 10**6, 10**6)

    pair.token0.mint(BOB, 1000)
    stray = vault.deposit(1000, BOB, caller=BOB)
    vault.transfer_shares(BOB, MANAGER, stray)
    pair.token0.mint(MANAGER, 77)

    assert manager.total_shares(vault) == 500_000
    manager.adjust_management(pair, -1000, 0, caller=OWNER)
    manager.adjust_management(pair, 2000, 0, caller=OWNER)
    assert manager.total_shares(vault) == 501_000
    assert pair.token0.balance_of(MANAGER) == 77

    with pytest.raises(Unauthorized):
        manager.raw_call(vault, "transfer_shares", MANAGER, ALICE, stray, caller=GUARDIAN)
    manager.raw_call(vault, "transfer_shares", MANAGER, OWNER, stray, caller=OWNER)
    manager.raw_call(pair.token0, "transfer", MANAGER, OWNER, 77, caller=OWNER)
    assert vault.balance_of(MANAGER) == manager.total_shares(vault)
    assert pair.token0.balance_of(OWNER) == 77


def test_rewards_are_claimed_once_and_split_by_shares() -> None:
    factory, cp, manager, vault = _managed()
    sp = factory.create_pair(cp.token0, cp.token1, "STABLE")
    factory.set_manager(sp, manager, caller=OWNER)
    deposit(cp, ALICE, 10**6, 10**6)
    deposit(sp, ALICE, 500_000, 500_000)
    token0 = cp.token0.address
    assert (manager.shares(cp, token0), manager.shares(sp, token0)) == (500_000, 250_000)

    distributor = OneShotDistributor([cp.token0], MANAGER)
    claim = (distributor, [MANAGER], [cp.token0], [3001], [[b"proof"]])
    assert manager.claim_rewards(*claim, caller=GUARDIAN) == {token0: 3001}
    assert manager.claim_rewards(*claim, caller=OWNER) == {token0: 0}

    assert manager.distribute_rewards(cp.token0, 3001, [cp, sp], caller=OWNER) == 3001
    assert manager.shares(cp, token0) == 502_000
    assert manager.shares(sp, token0) == 251_001
    assert _conserved(manager, vault, [cp, sp])
    assert vault.balance_of(MANAGER) == manager.total_shares(vault)


def test_reward_distribution_checks() -> None:
    factory, pair, manager, _ = _managed()
    deposit(pair, ALICE, 10**6, 10**6)
    pair.token0.mint(MANAGER, 100)

    with pytest.raises(Unauthorized):
        manager.distribute_rewards(pair.token0, 100, [pair], caller=ALICE)
    with pytest.raises(InvalidParameter):
        manager.distribute_rewards(pair.token0, 100, [], caller=OWNER)
    with pytest.raises(InvalidParameter):
        manager.distribute_rewards(pair.token0, 100, [pair, pair], caller=OWNER)
    with pytest.raises(InvalidParameter):
        manager.distribute_rewards(pair.token1, 100, [pair], caller=OWNER)

    empty = factory.create_pair(pair.token0, pair.token1, "STABLE")
    with pytest.raises(InvalidParameter):
        manager.distribute_rewards(pair.token0, 100, [empty], caller=OWNER)
