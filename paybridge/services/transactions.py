"""
Transaction Recorder - hand-off point for completed payments.

Persistence is an external collaborator; the default recorder only logs.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from structlog import get_logger

from paybridge.services.payment_provider import PaymentResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransactionRecord:
    """A completed payment, as handed to the recorder."""

    provider: str
    payment_id: str
    status: str
    amount_minor: int
    currency: str
    receipt_number: str | None
    customer_id: str | None
    recorded_at: datetime

    @classmethod
    def from_result(
        cls, provider: str, result: PaymentResult, customer_id: str | None = None
    ) -> "TransactionRecord":
        """Build a record from a normalized payment result."""
        return cls(
            provider=provider,
            payment_id=result.payment_id,
            status=result.status,
            amount_minor=result.amount_minor,
            currency=result.currency,
            receipt_number=result.receipt_number,
            customer_id=customer_id,
            recorded_at=datetime.now(UTC),
        )


class TransactionRecorder(Protocol):
    """Persists completed transactions."""

    async def record(self, transaction: TransactionRecord) -> None: ...


class LoggingTransactionRecorder:
    """Recorder that writes each transaction to the structured log."""

    async def record(self, transaction: TransactionRecord) -> None:
        logger.info(
            "transaction_recorded",
            provider=transaction.provider,
            payment_id=transaction.payment_id,
            status=transaction.status,
            amount_minor=transaction.amount_minor,
            currency=transaction.currency,
            receipt_number=transaction.receipt_number,
            customer_id=transaction.customer_id,
            recorded_at=transaction.recorded_at.isoformat(),
        )
