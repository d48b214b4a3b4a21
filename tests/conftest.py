"""Shared test fixtures for nftmarket."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from nftmarket.bridge.asset_registry import MarketplaceRegistryAdapter
from nftmarket.bridge.funds import InMemoryFundsGateway
from nftmarket.bridge.memory_registry import InMemoryAssetRegistry
from nftmarket.core.event_log import EventLog
from nftmarket.core.marketplace import MarketplaceLedger
from nftmarket.core.state_store import StateStore
from nftmarket.core.units import parse_ether
from nftmarket.models.listing import OverpaymentPolicy
from nftmarket.models.principal import Principal

MARKETPLACE = "0x" + "4d" * 20
COLLECTION = "0x" + "c0" * 20
PRICE = parse_ether("0.1")


@pytest.fixture
def collection() -> str:
    return COLLECTION


@pytest.fixture
def price() -> int:
    """0.1 ether in wei."""
    return PRICE


@pytest.fixture
def marketplace_address() -> str:
    return MARKETPLACE


@pytest.fixture
def store(tmp_path: Path) -> Iterator[StateStore]:
    """Provide a fresh StateStore backed by a temp SQLite database."""
    s = StateStore(tmp_path / "test_ledger.db")
    yield s
    s.close()


@pytest.fixture
def event_log(store: StateStore) -> EventLog:
    return EventLog(store)


@pytest.fixture
def tokens() -> InMemoryAssetRegistry:
    """Provide an empty in-memory token registry."""
    return InMemoryAssetRegistry()


@pytest.fixture
def registry(tokens: InMemoryAssetRegistry) -> MarketplaceRegistryAdapter:
    return MarketplaceRegistryAdapter(tokens, MARKETPLACE)


@pytest.fixture
def funds() -> InMemoryFundsGateway:
    return InMemoryFundsGateway()


@pytest.fixture
def deployer() -> Principal:
    return Principal(address="0x" + "a1" * 20)


@pytest.fixture
def user() -> Principal:
    return Principal(address="0x" + "b2" * 20)


@pytest.fixture
def stranger() -> Principal:
    return Principal(address="0x" + "e3" * 20)


@pytest.fixture
def make_ledger(
    registry: MarketplaceRegistryAdapter,
    funds: InMemoryFundsGateway,
    store: StateStore,
) -> Callable[..., MarketplaceLedger]:
    """Factory fixture: build a MarketplaceLedger on the shared test store."""

    def _factory(
        policy: OverpaymentPolicy = OverpaymentPolicy.FORFEIT,
    ) -> MarketplaceLedger:
        return MarketplaceLedger(registry, funds, store, overpayment_policy=policy)

    return _factory


@pytest.fixture
def ledger(make_ledger: Callable[..., MarketplaceLedger]) -> MarketplaceLedger:
    return make_ledger()


@pytest.fixture
def token_id(tokens: InMemoryAssetRegistry, deployer: Principal) -> int:
    """Mint token #0 to the deployer and approve the marketplace for it."""
    asset_id = tokens.mint(COLLECTION, deployer.address)
    tokens.approve(deployer.address, COLLECTION, asset_id, MARKETPLACE)
    return asset_id
