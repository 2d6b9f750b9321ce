"""
Example: Identity, Credential and Reputation Lifecycle

Demonstrates:
1. Creating identities and managing trusted issuers
2. Verification and credential issuance with reputation effects
3. Revocation, expiry and the audit trail
4. Driving the registry with signed, ordered transactions
"""

import asyncio

from identity_registry import IdentityRegistry, TransactionProcessor, TransactionSigner
from identity_registry.common.clock import ManualClock
from identity_registry.common.exceptions import RegistryError
from identity_registry.config import load_settings
from identity_registry.ledger.transactions import Operation
from identity_registry.observability.logging import setup_logging


async def registry_example():
    """Drive the registry facade directly."""
    print("=" * 60)
    print("Registry Example")
    print("=" * 60)

    clock = ManualClock(1_700_000_000)
    registry = IdentityRegistry("0xowner", clock=clock)

    print("\n1. Creating identities...")
    await registry.create_identity("0xalice", "Alice", "alice@example.com", "bafyAliceProfile")
    await registry.create_identity("0xacme", "Acme Verifications", "ops@acme.test")
    stats = await registry.get_contract_stats()
    print(f"   Total identities: {stats.total_identities}")

    print("\n2. Trusting an issuer and verifying Alice...")
    await registry.add_trusted_issuer("0xowner", "0xacme")
    await registry.verify_identity("0xacme", "0xalice", True)
    identity = await registry.get_identity("0xalice")
    print(f"   Verified: {identity.is_verified}, score: {identity.reputation_score}")

    print("\n3. Issuing credentials...")
    await registry.add_credential("0xacme", "0xalice", "KYC", "bafyKYC")
    await registry.add_credential(
        "0xacme", "0xalice", "Membership", "bafyMember", expires_at=clock() + 3600
    )
    for index, credential in enumerate(await registry.get_credentials("0xalice")):
        print(f"   [{index}] {credential.credential_type} from {credential.issuer}")
    print(f"   Score: {(await registry.get_identity('0xalice')).reputation_score}")

    print("\n4. Revocation and expiry...")
    await registry.revoke_credential("0xacme", "0xalice", 0)
    clock.advance(3600)
    print(f"   KYC valid: {await registry.is_credential_valid('0xalice', 0)}")
    print(f"   Membership valid: {await registry.is_credential_valid('0xalice', 1)}")
    print(f"   Score: {(await registry.get_identity('0xalice')).reputation_score}")

    print("\n5. Rejected operation...")
    try:
        await registry.remove_trusted_issuer("0xowner", "0xowner")
    except RegistryError as e:
        print(f"   {e}")

    print("\n6. Audit trail...")
    for event in registry.events:
        print(f"   {event.id} {event.event_type} {event.principal} {event.data}")
    valid, broken = await registry.event_log.verify_chain()
    print(f"   Chain valid: {valid}")


async def ledger_example():
    """Drive the registry with signed transactions."""
    print("\n" + "=" * 60)
    print("Ledger Example")
    print("=" * 60)

    owner, alice = TransactionSigner(), TransactionSigner()
    processor = TransactionProcessor(owner.principal)
    now = 1_700_000_000

    transactions = [
        alice.sign(Operation.CREATE_IDENTITY, {"name": "Alice", "email": "alice@example.com"}, now, 0),
        owner.sign(Operation.VERIFY_IDENTITY, {"subject": alice.principal, "verified": True}, now + 12, 0),
        alice.sign(Operation.ADD_CREDENTIAL, {
            "subject": alice.principal,
            "credential_type": "SelfIssued",
            "credential_hash": "bafySelf",
        }, now + 24, 1),
    ]

    for tx in transactions:
        receipt = await processor.apply(tx)
        print(f"   {tx.operation}: {receipt.status} {receipt.error_code or ''}")

    identity = await processor.registry.get_identity(alice.principal)
    print(f"   Alice ({alice.principal}) score: {identity.reputation_score}")


async def main():
    """Run all examples."""
    settings = load_settings()
    setup_logging(settings.logging.model_copy(update={"level": "WARNING"}))

    await registry_example()
    await ledger_example()

    print("\n" + "=" * 60)
    print("All examples completed!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
