"""
Deposit Submission Module

Re-validates submitted deposit slips and writes accepted ones to the
deposits collection. The handler never trusts client-side validation; the
rule table is evaluated again here and only an accepted record reaches the
store. Exactly one insert is attempted per submission and failures are not
retried.
"""

from typing import Mapping, Optional
import uuid

from .config import COLLECTION_NAME
from .schemas import DepositRecord
from .storage import AsyncDocumentStore, StorageError
from .validation import DepositValidator, DepositValidationError
from .logging_config import get_logger, log_action, mask_value


class DepositSubmissionHandler:
    """
    Validates and persists deposit slips.

    Identical submissions are stored as separate documents; there is no
    idempotency key or duplicate detection.
    """

    def __init__(self, store: AsyncDocumentStore,
                 validator: Optional[DepositValidator] = None,
                 collection: str = COLLECTION_NAME):
        self.store = store
        self.validator = validator or DepositValidator()
        self.collection = collection
        self.logger = get_logger("deposit_slip.submission")

    async def submit(self, form: Mapping[str, str],
                     correlation_id: Optional[str] = None) -> DepositRecord:
        """
        Validate a submitted form and store it.

        Args:
            form: Submitted field values keyed by field name
            correlation_id: Request identifier used in log records

        Returns:
            The stored deposit record

        Raises:
            DepositValidationError: A rule rejected the submission; nothing was stored
            StorageError: The insert failed
        """
        correlation_id = correlation_id or str(uuid.uuid4())
        result = self.validator.validate(form)

        if not result.accepted:
            log_action(
                self.logger, "info", f"Deposit rejected: {result.reason}",
                action="reject_deposit", resource=f"collection:{self.collection}",
                correlation_id=correlation_id,
                extra={"rule": result.rule.value}
            )
            raise DepositValidationError(result.reason, result.rule)

        record = result.record
        try:
            document_id = await self.store.insert_one(self.collection, record.to_document())
        except StorageError:
            log_action(
                self.logger, "error", "Failed to save deposit",
                action="store_deposit_failed", resource=f"collection:{self.collection}",
                correlation_id=correlation_id,
                extra={"account_number": mask_value(record.accountNumber)},
                exc_info=True
            )
            raise

        log_action(
            self.logger, "info", "Deposit received",
            action="store_deposit", resource=f"deposit:{document_id}",
            correlation_id=correlation_id,
            extra={
                "document_id": document_id,
                "bank_name": record.bankName,
                "account_number": mask_value(record.accountNumber),
                "pan_number": mask_value(record.panNumber),
                "amount": str(record.amount),
            }
        )
        return record
