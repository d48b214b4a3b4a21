"""Adversarial tests: direct edits to the stored event log are detected."""

from __future__ import annotations

import pytest

from nftmarket.core.event_log import EventLogIntegrityError
from nftmarket.core.marketplace import MarketplaceLedger
from nftmarket.models.principal import Principal
from nftmarket.monitor.projection import MarketProjection


def _trade(ledger: MarketplaceLedger, deployer: Principal, user: Principal,
           collection: str, price: int, token_id: int) -> None:
    ledger.list_item(deployer, collection, token_id, price)
    ledger.buy_item(user, collection, token_id, price)
    ledger.withdraw_proceeds(deployer)


class TestEventTampering:
    def test_edited_price_detected(
        self, ledger: MarketplaceLedger, deployer: Principal, user: Principal,
        collection: str, price: int, token_id: int,
    ):
        _trade(ledger, deployer, user, collection, price, token_id)
        with ledger.store.transaction() as conn:
            conn.execute("UPDATE market_events SET price = '1' WHERE sequence = 2")

        with pytest.raises(EventLogIntegrityError, match="Tampered"):
            ledger.event_log.verify_chain()

    def test_deleted_event_detected(
        self, ledger: MarketplaceLedger, deployer: Principal, user: Principal,
        collection: str, price: int, token_id: int,
    ):
        _trade(ledger, deployer, user, collection, price, token_id)
        with ledger.store.transaction() as conn:
            conn.execute("DELETE FROM market_events WHERE sequence = 2")

        with pytest.raises(EventLogIntegrityError):
            ledger.event_log.verify_chain()

    def test_rewritten_history_fails_anchor(
        self, ledger: MarketplaceLedger, deployer: Principal, user: Principal,
        collection: str, price: int, token_id: int,
    ):
        _trade(ledger, deployer, user, collection, price, token_id)
        anchor = ledger.event_log.export_anchor()
        with ledger.store.transaction() as conn:
            conn.execute(
                "UPDATE market_events SET event_hash = 'forged' WHERE sequence = 3"
            )

        with pytest.raises(EventLogIntegrityError):
            ledger.event_log.verify_against_anchor(anchor)

    def test_snapshot_reports_broken_chain(
        self, ledger: MarketplaceLedger, deployer: Principal, user: Principal,
        collection: str, price: int, token_id: int,
    ):
        _trade(ledger, deployer, user, collection, price, token_id)
        with ledger.store.transaction() as conn:
            conn.execute("UPDATE market_events SET actor = ? WHERE sequence = 1",
                         (user.address,))

        snapshot = MarketProjection(ledger.event_log).snapshot()
        assert snapshot.chain_valid is False
        assert snapshot.chain_error
