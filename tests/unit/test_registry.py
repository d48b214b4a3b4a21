"""Tests for the in-memory token registry and the marketplace adapter."""

from __future__ import annotations

import pytest

from nftmarket.bridge.asset_registry import (
    AssetNotFound,
    AssetRegistry,
    MarketplaceRegistryAdapter,
    TokenRegistry,
    TransferRejected,
)
from nftmarket.bridge.funds import FundsGateway, FundsTransferError, InMemoryFundsGateway
from nftmarket.bridge.memory_registry import InMemoryAssetRegistry
from nftmarket.models.principal import ZERO_ADDRESS

COLLECTION = "0x" + "c0" * 20
OWNER = "0x" + "a1" * 20
OTHER = "0x" + "b2" * 20
MARKET = "0x" + "4d" * 20


class TestInMemoryAssetRegistry:
    def test_mint_sequential_ids(self, tokens: InMemoryAssetRegistry):
        assert tokens.mint(COLLECTION, OWNER) == 0
        assert tokens.mint(COLLECTION, OWNER) == 1
        assert tokens.mint("0x" + "c1" * 20, OWNER) == 0

    def test_owner_of_unknown_token(self, tokens: InMemoryAssetRegistry):
        with pytest.raises(AssetNotFound):
            tokens.owner_of(COLLECTION, 3)

    def test_approve_and_clear(self, tokens: InMemoryAssetRegistry):
        asset_id = tokens.mint(COLLECTION, OWNER)
        tokens.approve(OWNER, COLLECTION, asset_id, MARKET)
        assert tokens.get_approved(COLLECTION, asset_id) == MARKET
        tokens.approve(OWNER, COLLECTION, asset_id, ZERO_ADDRESS)
        assert tokens.get_approved(COLLECTION, asset_id) == ZERO_ADDRESS

    def test_only_owner_or_operator_may_approve(self, tokens: InMemoryAssetRegistry):
        asset_id = tokens.mint(COLLECTION, OWNER)
        with pytest.raises(TransferRejected):
            tokens.approve(OTHER, COLLECTION, asset_id, OTHER)
        tokens.set_approval_for_all(OWNER, COLLECTION, OTHER, True)
        tokens.approve(OTHER, COLLECTION, asset_id, MARKET)
        assert tokens.get_approved(COLLECTION, asset_id) == MARKET

    def test_transfer_requires_authorization(self, tokens: InMemoryAssetRegistry):
        asset_id = tokens.mint(COLLECTION, OWNER)
        with pytest.raises(TransferRejected):
            tokens.transfer_from(COLLECTION, asset_id, OWNER, OTHER, operator=MARKET)

    def test_transfer_by_approved_clears_approval(self, tokens: InMemoryAssetRegistry):
        asset_id = tokens.mint(COLLECTION, OWNER)
        tokens.approve(OWNER, COLLECTION, asset_id, MARKET)
        tokens.transfer_from(COLLECTION, asset_id, OWNER, OTHER, operator=MARKET)
        assert tokens.owner_of(COLLECTION, asset_id) == OTHER
        assert tokens.get_approved(COLLECTION, asset_id) == ZERO_ADDRESS

    def test_transfer_from_wrong_owner(self, tokens: InMemoryAssetRegistry):
        asset_id = tokens.mint(COLLECTION, OWNER)
        with pytest.raises(TransferRejected):
            tokens.transfer_from(COLLECTION, asset_id, OTHER, MARKET, operator=OTHER)

    def test_transfer_to_zero_rejected(self, tokens: InMemoryAssetRegistry):
        asset_id = tokens.mint(COLLECTION, OWNER)
        with pytest.raises(TransferRejected):
            tokens.transfer_from(COLLECTION, asset_id, OWNER, ZERO_ADDRESS, operator=OWNER)

    def test_operator_revocation(self, tokens: InMemoryAssetRegistry):
        tokens.set_approval_for_all(OWNER, COLLECTION, MARKET, True)
        assert tokens.is_approved_for_all(COLLECTION, OWNER, MARKET)
        tokens.set_approval_for_all(OWNER, COLLECTION, MARKET, False)
        assert not tokens.is_approved_for_all(COLLECTION, OWNER, MARKET)

    def test_satisfies_token_registry_protocol(self, tokens: InMemoryAssetRegistry):
        assert isinstance(tokens, TokenRegistry)


class TestMarketplaceRegistryAdapter:
    def test_satisfies_asset_registry_protocol(self, registry: MarketplaceRegistryAdapter):
        assert isinstance(registry, AssetRegistry)

    def test_single_token_approval(
        self, tokens: InMemoryAssetRegistry, registry: MarketplaceRegistryAdapter,
    ):
        asset_id = tokens.mint(COLLECTION, OWNER)
        assert not registry.is_approved_for_marketplace(COLLECTION, asset_id)
        tokens.approve(OWNER, COLLECTION, asset_id, registry.marketplace_address)
        assert registry.is_approved_for_marketplace(COLLECTION, asset_id)

    def test_approval_for_someone_else_is_not_enough(
        self, tokens: InMemoryAssetRegistry, registry: MarketplaceRegistryAdapter,
    ):
        asset_id = tokens.mint(COLLECTION, OWNER)
        tokens.approve(OWNER, COLLECTION, asset_id, OTHER)
        assert not registry.is_approved_for_marketplace(COLLECTION, asset_id)

    def test_transfer_acts_as_marketplace(
        self, tokens: InMemoryAssetRegistry, registry: MarketplaceRegistryAdapter,
    ):
        asset_id = tokens.mint(COLLECTION, OWNER)
        tokens.set_approval_for_all(OWNER, COLLECTION, registry.marketplace_address, True)
        registry.transfer(COLLECTION, asset_id, OWNER, OTHER)
        assert registry.owner_of(COLLECTION, asset_id) == OTHER


class TestInMemoryFundsGateway:
    def test_release_credits_recipient(self, funds: InMemoryFundsGateway):
        funds.fund(OWNER, 10)
        funds.release(OWNER, 5)
        assert funds.balance_of(OWNER) == 15
        assert funds.released_total == 5

    def test_rejects_non_positive(self, funds: InMemoryFundsGateway):
        with pytest.raises(FundsTransferError):
            funds.release(OWNER, 0)

    def test_reject_mode(self):
        funds = InMemoryFundsGateway(reject_releases=True)
        with pytest.raises(FundsTransferError):
            funds.release(OWNER, 5)
        assert funds.balance_of(OWNER) == 0

    def test_satisfies_protocol(self, funds: InMemoryFundsGateway):
        assert isinstance(funds, FundsGateway)
