"""
Transfer Recorder

Validates transfer requests, delegates value movement to the transfer
service, and records each completed transfer in the ledger. Also answers
history queries by participant.

A record exists only for transfers that executed. The reverse is not
guaranteed: if the ledger append fails after the transfer service succeeded,
StoreError is raised and the movement has to be reconciled by an operator.
"""

from typing import List

from .clock import Clock
from .errors import ValidationError, ValidationErrorKind, TransferError, StoreError
from .ledger import LedgerStore, TransferRecord, AMOUNT_MAX
from .transfers import TransferService
from .logging_config import get_logger, log_action


class TransferRecorder:
    """Records transfers between two parties and serves their history"""

    def __init__(self, ledger_store: LedgerStore, transfer_service: TransferService, clock: Clock):
        self.ledger_store = ledger_store
        self.transfer_service = transfer_service
        self.clock = clock
        self.logger = get_logger("payment_ledger.recorder")

    def _validate(self, sender: str, recipient: str, amount: int) -> None:
        for participant in (sender, recipient):
            if not isinstance(participant, str) or not participant:
                raise ValidationError(
                    ValidationErrorKind.INVALID_PARTICIPANT,
                    f"Invalid participant identity: {participant!r}"
                )

        if sender == recipient:
            raise ValidationError(
                ValidationErrorKind.SELF_TRANSFER,
                "Cannot send to yourself"
            )

        if isinstance(amount, bool) or not isinstance(amount, int):
            raise ValidationError(
                ValidationErrorKind.AMOUNT_OUT_OF_RANGE,
                f"Amount must be an integer, got {type(amount).__name__}"
            )

        if amount <= 0:
            raise ValidationError(
                ValidationErrorKind.NON_POSITIVE_AMOUNT,
                "Amount must be positive"
            )

        if amount > AMOUNT_MAX:
            raise ValidationError(
                ValidationErrorKind.AMOUNT_OUT_OF_RANGE,
                "Amount exceeds the signed 128-bit range"
            )

    def record(self, sender: str, recipient: str, amount: int) -> TransferRecord:
        """
        Move value from sender to recipient and record the transfer

        Args:
            sender: Paying party
            recipient: Receiving party
            amount: Strictly positive integer amount

        Returns:
            The committed transfer record

        Raises:
            ValidationError: If the request is rejected; nothing happened
            TransferError: If the transfer service failed; nothing was recorded
            StoreError: If the ledger append failed after value already moved
        """
        try:
            self._validate(sender, recipient, amount)
        except ValidationError as e:
            log_action(
                self.logger, "warning", f"Transfer rejected: {e}",
                participant=sender if isinstance(sender, str) else None,
                action="transfer_rejected", extra={"kind": e.kind.value}
            )
            raise

        try:
            self.transfer_service.transfer(sender, recipient, amount)
        except TransferError as e:
            log_action(
                self.logger, "warning", f"Transfer failed: {e}",
                participant=sender, action="transfer_failed",
                extra={"recipient": recipient, "amount": str(amount)}
            )
            raise

        record = TransferRecord(
            sender=sender,
            recipient=recipient,
            amount=amount,
            recorded_at=self.clock.now()
        )

        try:
            self.ledger_store.append(record)
        except StoreError as e:
            log_action(
                self.logger, "error",
                f"Transfer executed but not recorded, reconciliation required: {e}",
                participant=sender, action="record_lost",
                resource=self.ledger_store.ledger_key, extra=record.to_dict()
            )
            raise

        log_action(
            self.logger, "info", "Transfer recorded",
            participant=sender, action="transfer_recorded",
            resource=self.ledger_store.ledger_key, extra=record.to_dict()
        )
        return record

    def history(self, participant: str) -> List[TransferRecord]:
        """Records where participant is sender or recipient, in insertion order"""
        return [record for record in self.ledger_store.read_all() if record.involves(participant)]

    def all_records(self) -> List[TransferRecord]:
        """The full ledger, unfiltered"""
        return self.ledger_store.read_all()
