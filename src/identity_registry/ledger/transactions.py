"""Signed transactions addressed to the registry."""

from __future__ import annotations

import base64
import hashlib
import json
from enum import StrEnum
from typing import Any

import structlog
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from pydantic import BaseModel, ConfigDict, Field

from identity_registry.common.types import Principal, Timestamp

logger = structlog.get_logger()


class Operation(StrEnum):
    """Registry mutations a transaction can invoke."""

    CREATE_IDENTITY = "create_identity"
    UPDATE_PROFILE = "update_profile"
    VERIFY_IDENTITY = "verify_identity"
    ADD_CREDENTIAL = "add_credential"
    REVOKE_CREDENTIAL = "revoke_credential"
    ADD_TRUSTED_ISSUER = "add_trusted_issuer"
    REMOVE_TRUSTED_ISSUER = "remove_trusted_issuer"


class Transaction(BaseModel):
    """
    One ordered request to the registry.

    ``sender`` is the calling principal. When signed, ``public_key`` and
    ``signature`` bind the request to the key that ``sender`` derives from.
    """

    model_config = ConfigDict(frozen=True)

    sender: Principal
    operation: Operation
    params: dict[str, Any] = Field(default_factory=dict)

    timestamp: Timestamp
    nonce: int = Field(ge=0)

    # Proof
    public_key: str | None = None  # base64 raw Ed25519 key
    signature: str | None = None  # base64

    def to_signing_payload(self) -> str:
        """Get payload for signing/verification."""
        data = {
            "sender": self.sender,
            "operation": str(self.operation),
            "params": self.params,
            "timestamp": self.timestamp,
            "nonce": self.nonce,
        }
        return json.dumps(data, sort_keys=True, separators=(",", ":"))

    @property
    def tx_hash(self) -> str:
        return hashlib.sha256(self.to_signing_payload().encode()).hexdigest()


def principal_from_public_key(public_key: Ed25519PublicKey) -> Principal:
    """Derive an account principal: ``0x`` plus the last 20 bytes of SHA-256(raw key)."""
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return Principal("0x" + hashlib.sha256(raw).digest()[-20:].hex())


class TransactionSigner:
    """Holds an account key and signs transactions on its behalf."""

    def __init__(self, private_key: Ed25519PrivateKey | None = None) -> None:
        self._private_key = private_key or Ed25519PrivateKey.generate()
        self._public_key = self._private_key.public_key()
        self.principal = principal_from_public_key(self._public_key)
        self._logger = logger.bind(signer=self.principal)

    def get_public_key(self) -> str:
        """Raw public key, base64 encoded."""
        raw = self._public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        return base64.b64encode(raw).decode()

    def sign(
        self,
        operation: Operation,
        params: dict[str, Any],
        timestamp: int,
        nonce: int,
    ) -> Transaction:
        """
        Build and sign a transaction from this signer's principal.

        Args:
            operation: Registry mutation to invoke
            params: Operation keyword arguments (excluding the caller)
            timestamp: Block time the transaction is meant for
            nonce: Sender's next nonce

        Returns:
            Signed transaction
        """
        tx = Transaction(
            sender=self.principal,
            operation=operation,
            params=params,
            timestamp=Timestamp(timestamp),
            nonce=nonce,
            public_key=self.get_public_key(),
        )

        signature = self._private_key.sign(tx.to_signing_payload().encode())
        tx = tx.model_copy(update={"signature": base64.b64encode(signature).decode()})

        self._logger.debug("transaction_signed", operation=str(operation), nonce=nonce)
        return tx


def verify_transaction(tx: Transaction) -> bool:
    """
    Verify a transaction's signature and that its key belongs to ``sender``.

    Returns:
        True if the transaction is authentic
    """
    if not tx.public_key or not tx.signature:
        logger.warning("transaction_unsigned", tx_hash=tx.tx_hash)
        return False

    try:
        public_key = Ed25519PublicKey.from_public_bytes(base64.b64decode(tx.public_key))
        signature = base64.b64decode(tx.signature)
    except ValueError as e:
        logger.warning("transaction_key_malformed", tx_hash=tx.tx_hash, error=str(e))
        return False

    if principal_from_public_key(public_key) != tx.sender:
        logger.warning("transaction_sender_mismatch", tx_hash=tx.tx_hash, sender=tx.sender)
        return False

    try:
        public_key.verify(signature, tx.to_signing_payload().encode())
    except InvalidSignature:
        logger.warning("transaction_signature_invalid", tx_hash=tx.tx_hash)
        return False

    return True
