"""Applies ordered transactions to a registry."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, get_type_hints

import structlog
from pydantic import TypeAdapter, ValidationError

from identity_registry.audit.events import RegistryEvent
from identity_registry.common.clock import ManualClock
from identity_registry.common.exceptions import RegistryError
from identity_registry.common.types import Principal
from identity_registry.config import RegistrySettings
from identity_registry.ledger.transactions import Operation, Transaction, verify_transaction
from identity_registry.registry.facade import IdentityRegistry
from identity_registry.storage.backend import StateBackend

logger = structlog.get_logger()


def _param_adapters(method: Callable[..., Any]) -> dict[str, TypeAdapter[Any]]:
    """Strict validators for each annotated parameter of a registry operation."""
    hints = get_type_hints(inspect.unwrap(method.__func__))
    hints.pop("return", None)
    return {name: TypeAdapter(hint) for name, hint in hints.items()}


class ReceiptStatus(StrEnum):
    """Outcome of one transaction."""

    SUCCESS = "success"
    # Reached the registry, which raised; no state changed, nonce consumed
    FAILED = "failed"
    # Refused before dispatch (signature, nonce, timestamp, params); nonce not consumed
    REJECTED = "rejected"


@dataclass(frozen=True)
class Receipt:
    """Result of applying a transaction."""

    tx_hash: str
    sender: Principal
    operation: Operation
    status: ReceiptStatus
    events: tuple[RegistryEvent, ...] = ()
    error_code: str | None = None
    error_message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == ReceiptStatus.SUCCESS


class TransactionProcessor:
    """
    Feeds an ordered transaction stream into an ``IdentityRegistry``.

    The processor plays the role of the ledger: it authenticates each
    transaction, enforces per-sender nonces and non-decreasing timestamps,
    sets the registry clock to the transaction's timestamp and dispatches
    to the matching registry operation. Transactions are applied strictly
    one at a time, so replaying the same stream always produces the same
    state and the same event chain.

    Example:
        ```python
        owner = TransactionSigner()
        processor = TransactionProcessor(owner.principal)

        tx = owner.sign(
            Operation.CREATE_IDENTITY,
            {"name": "Root", "email": "root@example.com"},
            timestamp=1_700_000_000,
            nonce=0,
        )
        receipt = await processor.apply(tx)
        assert receipt.ok
        ```
    """

    def __init__(
        self,
        owner: Principal,
        *,
        settings: RegistrySettings | None = None,
        backend: StateBackend | None = None,
        require_signatures: bool | None = None,
    ) -> None:
        self.settings = settings or RegistrySettings()
        self.require_signatures = (
            self.settings.ledger.require_signatures
            if require_signatures is None
            else require_signatures
        )

        self.clock = ManualClock()
        self.registry = IdentityRegistry(
            owner,
            backend=backend,
            settings=self.settings,
            clock=self.clock,
        )
        self._adapters = {
            operation: _param_adapters(getattr(self.registry, str(operation)))
            for operation in Operation
        }

        self._nonces: dict[Principal, int] = {}
        self._last_timestamp = 0
        self._receipts: list[Receipt] = []
        self._lock = asyncio.Lock()

        self._logger = logger.bind(processor=owner)

    @classmethod
    async def replay(
        cls,
        owner: Principal,
        transactions: Iterable[Transaction],
        **kwargs: Any,
    ) -> TransactionProcessor:
        """Build fresh state by applying ``transactions`` in order."""
        processor = cls(owner, **kwargs)
        for tx in transactions:
            await processor.apply(tx)
        return processor

    @property
    def receipts(self) -> tuple[Receipt, ...]:
        return tuple(self._receipts)

    def next_nonce(self, sender: Principal) -> int:
        return self._nonces.get(sender, 0)

    async def apply(self, tx: Transaction) -> Receipt:
        """
        Apply one transaction.

        Returns:
            Receipt describing the outcome; registry errors are reported in
            the receipt, not raised
        """
        async with self._lock:
            receipt = await self._apply(tx)
            self._receipts.append(receipt)

        self._logger.debug(
            "transaction_applied",
            tx_hash=receipt.tx_hash,
            operation=str(tx.operation),
            status=str(receipt.status),
        )
        return receipt

    async def _apply(self, tx: Transaction) -> Receipt:
        if self.require_signatures and not verify_transaction(tx):
            return self._reject(tx, "InvalidSignature", "Transaction signature is invalid")

        expected = self.next_nonce(tx.sender)
        if tx.nonce != expected:
            return self._reject(
                tx,
                "InvalidNonce",
                "Unexpected nonce",
                {"expected": expected, "received": tx.nonce},
            )

        if tx.timestamp < self._last_timestamp:
            return self._reject(
                tx,
                "StaleTimestamp",
                "Timestamp precedes the previous transaction",
                {"last": self._last_timestamp, "received": tx.timestamp},
            )

        method = getattr(self.registry, str(tx.operation))
        try:
            bound = inspect.signature(method).bind(tx.sender, **tx.params)
        except TypeError as e:
            return self._reject(tx, "InvalidParams", str(e))

        adapters = self._adapters[tx.operation]
        for name, value in bound.arguments.items():
            try:
                adapters[name].validate_python(value, strict=True)
            except ValidationError as e:
                return self._reject(
                    tx,
                    "InvalidParams",
                    f"Invalid value for {name!r}",
                    {"param": name, "errors": e.errors(include_url=False)},
                )

        self._nonces[tx.sender] = expected + 1
        self._last_timestamp = tx.timestamp
        self.clock.set(tx.timestamp)

        try:
            events = await method(*bound.args, **bound.kwargs)
        except RegistryError as e:
            return Receipt(
                tx_hash=tx.tx_hash,
                sender=tx.sender,
                operation=tx.operation,
                status=ReceiptStatus.FAILED,
                error_code=e.code,
                error_message=e.message,
                details=e.details,
            )

        return Receipt(
            tx_hash=tx.tx_hash,
            sender=tx.sender,
            operation=tx.operation,
            status=ReceiptStatus.SUCCESS,
            events=tuple(events),
        )

    def _reject(
        self,
        tx: Transaction,
        code: str,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> Receipt:
        self._logger.warning(
            "transaction_rejected",
            tx_hash=tx.tx_hash,
            sender=tx.sender,
            code=code,
        )
        return Receipt(
            tx_hash=tx.tx_hash,
            sender=tx.sender,
            operation=tx.operation,
            status=ReceiptStatus.REJECTED,
            error_code=code,
            error_message=message,
            details=details or {},
        )
