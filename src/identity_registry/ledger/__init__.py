"""Ledger adapter: signed, ordered transactions."""

from identity_registry.ledger.transactions import (
    Operation,
    Transaction,
    TransactionSigner,
    principal_from_public_key,
    verify_transaction,
)
from identity_registry.ledger.processor import (
    Receipt,
    ReceiptStatus,
    TransactionProcessor,
)

__all__ = [
    "Operation",
    "Transaction",
    "TransactionSigner",
    "principal_from_public_key",
    "verify_transaction",
    "Receipt",
    "ReceiptStatus",
    "TransactionProcessor",
]
