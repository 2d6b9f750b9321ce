"""Tests for signed transactions and the transaction processor."""

import pytest

from identity_registry.audit.events import EventType
from identity_registry.ledger.processor import ReceiptStatus, TransactionProcessor
from identity_registry.ledger.transactions import (
    Operation,
    Transaction,
    TransactionSigner,
    verify_transaction,
)

T0 = 1_700_000_000


class TestSigning:
    """Test transaction signatures."""

    def test_principal_is_derived_from_key(self):
        """Principals look like 20-byte hex accounts and differ per key."""
        a, b = TransactionSigner(), TransactionSigner()

        assert a.principal.startswith("0x")
        assert len(a.principal) == 42
        assert a.principal != b.principal

    def test_signed_transaction_verifies(self):
        """A freshly signed transaction is authentic."""
        signer = TransactionSigner()

        tx = signer.sign(Operation.CREATE_IDENTITY, {"name": "A", "email": "a@x"}, T0, 0)

        assert tx.sender == signer.principal
        assert verify_transaction(tx) is True

    def test_tampered_transaction_fails(self):
        """Changing a signed field invalidates the signature."""
        signer = TransactionSigner()
        tx = signer.sign(Operation.CREATE_IDENTITY, {"name": "A", "email": "a@x"}, T0, 0)

        tampered = tx.model_copy(update={"params": {"name": "B", "email": "a@x"}})

        assert verify_transaction(tampered) is False

    def test_impersonation_fails(self):
        """A valid signature from another key does not authorize the sender."""
        victim, attacker = TransactionSigner(), TransactionSigner()
        tx = attacker.sign(Operation.CREATE_IDENTITY, {"name": "A", "email": "a@x"}, T0, 0)

        forged = tx.model_copy(update={"sender": victim.principal})

        assert verify_transaction(forged) is False

    def test_unsigned_transaction_fails(self):
        """Missing proof is rejected."""
        tx = Transaction(
            sender="0xalice",
            operation=Operation.CREATE_IDENTITY,
            params={"name": "A", "email": "a@x"},
            timestamp=T0,
            nonce=0,
        )

        assert verify_transaction(tx) is False


@pytest.mark.asyncio
class TestTransactionProcessor:
    """Test ordered transaction application."""

    async def test_scenario(self):
        """Signed transactions drive the registry end to end."""
        owner, alice = TransactionSigner(), TransactionSigner()
        processor = TransactionProcessor(owner.principal)

        receipts = [
            await processor.apply(alice.sign(
                Operation.CREATE_IDENTITY,
                {"name": "Alice", "email": "alice@example.com"},
                T0,
                0,
            )),
            await processor.apply(owner.sign(
                Operation.VERIFY_IDENTITY,
                {"subject": alice.principal, "verified": True},
                T0 + 10,
                0,
            )),
            await processor.apply(owner.sign(
                Operation.ADD_CREDENTIAL,
                {
                    "subject": alice.principal,
                    "credential_type": "KYC",
                    "credential_hash": "bafyKYC",
                    "expires_at": T0 + 1000,
                },
                T0 + 20,
                1,
            )),
        ]

        assert all(r.ok for r in receipts)
        identity = await processor.registry.get_identity(alice.principal)
        assert identity.reputation_score == 250
        assert identity.last_updated == T0 + 20
        credential = await processor.registry.get_credential(alice.principal, 0)
        assert credential.issued_at == T0 + 20
        assert receipts[2].events[1].event_type == EventType.CREDENTIAL_ADDED

    async def test_registry_error_becomes_failed_receipt(self):
        """Registry errors fail the transaction and consume the nonce."""
        owner, mallory = TransactionSigner(), TransactionSigner()
        processor = TransactionProcessor(owner.principal)

        receipt = await processor.apply(mallory.sign(
            Operation.ADD_TRUSTED_ISSUER, {"issuer": mallory.principal}, T0, 0
        ))

        assert receipt.status == ReceiptStatus.FAILED
        assert receipt.error_code == "Forbidden"
        assert processor.next_nonce(mallory.principal) == 1
        assert await processor.registry.is_trusted_issuer(mallory.principal) is False

    async def test_bad_signature_rejected(self):
        """Forged transactions never reach the registry."""
        owner, alice = TransactionSigner(), TransactionSigner()
        processor = TransactionProcessor(owner.principal)
        tx = alice.sign(
            Operation.CREATE_IDENTITY, {"name": "Alice", "email": "a@x"}, T0, 0
        )

        receipt = await processor.apply(tx.model_copy(update={"nonce": 0, "timestamp": T0 + 1}))

        assert receipt.status == ReceiptStatus.REJECTED
        assert receipt.error_code == "InvalidSignature"
        assert processor.next_nonce(alice.principal) == 0
        assert await processor.registry.has_identity(alice.principal) is False

    async def test_nonce_enforced(self):
        """Replayed or skipped nonces are rejected."""
        owner, alice = TransactionSigner(), TransactionSigner()
        processor = TransactionProcessor(owner.principal)
        tx = alice.sign(
            Operation.CREATE_IDENTITY, {"name": "Alice", "email": "a@x"}, T0, 0
        )

        assert (await processor.apply(tx)).ok
        replayed = await processor.apply(tx)
        skipped = await processor.apply(alice.sign(
            Operation.UPDATE_PROFILE, {"name": "A", "email": "a@x"}, T0, 5
        ))

        assert replayed.error_code == "InvalidNonce"
        assert skipped.error_code == "InvalidNonce"
        assert (await processor.registry.get_contract_stats()).total_identities == 1

    async def test_stale_timestamp_rejected(self):
        """Timestamps never move backwards."""
        owner, alice = TransactionSigner(), TransactionSigner()
        processor = TransactionProcessor(owner.principal)
        await processor.apply(alice.sign(
            Operation.CREATE_IDENTITY, {"name": "Alice", "email": "a@x"}, T0, 0
        ))

        receipt = await processor.apply(alice.sign(
            Operation.UPDATE_PROFILE, {"name": "A", "email": "a@x"}, T0 - 1, 1
        ))

        assert receipt.error_code == "StaleTimestamp"

    async def test_unknown_params_rejected(self):
        """Parameters must match the operation."""
        owner = TransactionSigner()
        processor = TransactionProcessor(owner.principal)

        receipt = await processor.apply(owner.sign(
            Operation.CREATE_IDENTITY, {"name": "Root", "colour": "blue"}, T0, 0
        ))

        assert receipt.status == ReceiptStatus.REJECTED
        assert receipt.error_code == "InvalidParams"

    async def test_mistyped_params_rejected(self):
        """Wrongly typed parameters are rejected without consuming the nonce."""
        owner, alice = TransactionSigner(), TransactionSigner()
        processor = TransactionProcessor(owner.principal)
        await processor.apply(alice.sign(
            Operation.CREATE_IDENTITY, {"name": "Alice", "email": "a@x"}, T0, 0
        ))
        await processor.apply(owner.sign(Operation.ADD_CREDENTIAL, {
            "subject": alice.principal,
            "credential_type": "KYC",
            "credential_hash": "h1",
        }, T0, 0))

        receipt = await processor.apply(owner.sign(
            Operation.REVOKE_CREDENTIAL, {"subject": alice.principal, "index": "0"}, T0, 1
        ))

        assert receipt.status == ReceiptStatus.REJECTED
        assert receipt.error_code == "InvalidParams"
        assert receipt.details["param"] == "index"
        assert processor.next_nonce(owner.principal) == 1
        assert len(processor.receipts) == 3
        assert (await processor.registry.get_credential(alice.principal, 0)).is_valid is True

        receipt = await processor.apply(alice.sign(
            Operation.UPDATE_PROFILE, {"name": 42, "email": "a@x"}, T0, 1
        ))

        assert receipt.error_code == "InvalidParams"
        assert receipt.details["param"] == "name"

    async def test_unsigned_mode(self):
        """Signature checks can be disabled for trusted feeds."""
        processor = TransactionProcessor("0xowner", require_signatures=False)

        receipt = await processor.apply(Transaction(
            sender="0xalice",
            operation=Operation.CREATE_IDENTITY,
            params={"name": "Alice", "email": "a@x"},
            timestamp=T0,
            nonce=0,
        ))

        assert receipt.ok

    async def test_replay_is_deterministic(self):
        """Replaying the same log reproduces state and event chain."""
        owner, alice = TransactionSigner(), TransactionSigner()
        log = [
            alice.sign(Operation.CREATE_IDENTITY, {"name": "Alice", "email": "a@x"}, T0, 0),
            owner.sign(Operation.ADD_CREDENTIAL, {
                "subject": alice.principal,
                "credential_type": "KYC",
                "credential_hash": "h1",
            }, T0 + 5, 0),
            owner.sign(Operation.REVOKE_CREDENTIAL, {
                "subject": alice.principal,
                "index": 0,
            }, T0 + 6, 1),
            owner.sign(Operation.REMOVE_TRUSTED_ISSUER, {
                "issuer": owner.principal,
            }, T0 + 7, 2),
        ]

        first = await TransactionProcessor.replay(owner.principal, log)
        second = await TransactionProcessor.replay(owner.principal, log)

        assert [r.status for r in first.receipts] == [
            ReceiptStatus.SUCCESS,
            ReceiptStatus.SUCCESS,
            ReceiptStatus.SUCCESS,
            ReceiptStatus.FAILED,
        ]
        assert first.registry.event_log.get_stats() == second.registry.event_log.get_stats()
        identity = await second.registry.get_identity(alice.principal)
        assert identity.reputation_score == 120


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
