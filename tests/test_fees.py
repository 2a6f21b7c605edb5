"""Tests for the fee backends and fee failure handling in the registry."""

from unittest.mock import MagicMock, patch

import pytest
from algosdk import account, mnemonic
from algosdk.error import AlgodHTTPError
from algosdk.transaction import SuggestedParams
from algosdk.v2client.algod import AlgodClient

from content_registry import AlgorandFeeTransfer, ContentRegistry, FeeLedger, FeeTransfer, FeeTransferError

from .conftest import AUTHORITY, CREATOR, content_hash, register

UNREACHABLE_ALGOD = "http://127.0.0.1:9"
TESTNET_GENESIS_HASH = "SGO1GKSzyE7IEPItTxCByw9x8FmnrCDexi9/cOUJOiI="


@pytest.fixture
def algod_client():
    client = MagicMock()
    client.suggested_params.return_value = SuggestedParams(
        fee=1000, first=1, last=1000, gh=TESTNET_GENESIS_HASH, flat_fee=True
    )
    client.send_transaction.return_value = "TXID123"
    return client


@pytest.fixture
def payer():
    private_key, address = account.generate_account()
    return private_key, address


@pytest.fixture
def authority_address():
    return account.generate_account()[1]


class TestFeeLedger:
    def test_records_transfers_in_order(self):
        ledger = FeeLedger()

        first = ledger(100, "ST1", "AUTH")
        ledger(50, "ST2", "AUTH")
        ledger(7, "ST1", "OTHER")

        assert first == FeeTransfer(amount=100, sender="ST1", recipient="AUTH")
        assert [t.amount for t in ledger.transfers] == [100, 50, 7]
        assert ledger.total_for("AUTH") == 150
        assert ledger.total_for("NOBODY") == 0

    def test_transfers_returns_a_copy(self):
        ledger = FeeLedger()
        ledger(1, "a", "b")

        ledger.transfers.clear()

        assert len(ledger.transfers) == 1

    def test_clear(self):
        ledger = FeeLedger()
        ledger(1, "a", "b")
        ledger.clear()
        assert ledger.transfers == []


class TestAlgorandFeeTransfer:
    def test_submits_payment(self, algod_client, payer, authority_address):
        private_key, address = payer
        backend = AlgorandFeeTransfer(algod_client, {address: private_key})

        with patch("content_registry.fees.wait_for_confirmation") as wait:
            transfer = backend(100, address, authority_address)

        assert transfer == FeeTransfer(amount=100, sender=address, recipient=authority_address, tx_id="TXID123")
        algod_client.send_transaction.assert_called_once()
        signed = algod_client.send_transaction.call_args[0][0]
        assert signed.transaction.amt == 100
        assert signed.transaction.receiver == authority_address
        wait.assert_called_once_with(algod_client, "TXID123", wait_rounds=8)

    def test_from_mnemonics(self, algod_client, payer):
        private_key, address = payer

        backend = AlgorandFeeTransfer.from_mnemonics(algod_client, [mnemonic.from_private_key(private_key)])

        assert backend.signers == {address: private_key}

    def test_unknown_payer(self, algod_client, authority_address):
        backend = AlgorandFeeTransfer(algod_client, {})

        with pytest.raises(FeeTransferError, match="No signing key"):
            backend(100, "SOMEONE", authority_address)
        algod_client.send_transaction.assert_not_called()

    def test_invalid_authority_address(self, algod_client, payer):
        private_key, address = payer
        backend = AlgorandFeeTransfer(algod_client, {address: private_key})

        with pytest.raises(FeeTransferError, match="not an Algorand address"):
            backend(100, address, "ST2AUTH")

    def test_unreachable_node(self, payer, authority_address):
        private_key, address = payer
        backend = AlgorandFeeTransfer(AlgodClient("", UNREACHABLE_ALGOD), {address: private_key})

        with pytest.raises(FeeTransferError, match="failed"):
            backend(100, address, authority_address)

    def test_algod_failure(self, algod_client, payer, authority_address):
        private_key, address = payer
        algod_client.send_transaction.side_effect = AlgodHTTPError("overspend", code=400)
        backend = AlgorandFeeTransfer(algod_client, {address: private_key})

        with pytest.raises(FeeTransferError, match="overspend"):
            backend(100, address, authority_address)


class TestFeeFailureDuringRegistration:
    def test_registration_not_committed(self, clock):
        def failing_backend(amount, sender, recipient):
            raise FeeTransferError("insufficient funds")

        registry = ContentRegistry(clock=clock, fee_backend=failing_backend)
        registry.set_authority(AUTHORITY)

        with pytest.raises(FeeTransferError):
            register(registry)

        assert registry.get_content_count() == 0
        assert registry.get_content(0) is None
        assert not registry.is_content_registered(content_hash(1))

        # The registry stays usable once the backend recovers
        registry.fee_backend = FeeLedger()
        assert register(registry).value == 0
        assert registry.get_content(0).creator == CREATOR

    def test_unreachable_node_leaves_registry_untouched(self, clock, payer, authority_address):
        private_key, address = payer
        backend = AlgorandFeeTransfer(AlgodClient("", UNREACHABLE_ALGOD), {address: private_key})
        registry = ContentRegistry(clock=clock, fee_backend=backend)
        registry.set_authority(authority_address)

        with pytest.raises(FeeTransferError):
            register(registry, caller=address)

        assert registry.get_content_count() == 0
        assert not registry.is_content_registered(content_hash(1))
