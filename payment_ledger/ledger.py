"""
Payment Ledger Store

Append-only ledger of transfer records kept as one ordered sequence under a
single store key. Records are immutable once appended; appends are
read-modify-write under a lock with a version check, so concurrent writers
never lose each other's records.
"""

from dataclasses import dataclass
from typing import Any, Dict, List
import threading

from .storage import PersistentStore
from .errors import StoreError, VersionConflictError
from .logging_config import get_logger, log_action


# Largest amount in the signed 128-bit integer domain
AMOUNT_MAX = 2 ** 127 - 1


@dataclass(frozen=True)
class TransferRecord:
    """
    One completed transfer between two parties

    recorded_at is assigned by the environment clock when the record is
    built, never by the caller.
    """
    sender: str
    recipient: str
    amount: int
    recorded_at: int

    def __post_init__(self):
        if not self.sender or not self.recipient:
            raise ValueError("Transfer record requires both sender and recipient")
        if self.sender == self.recipient:
            raise ValueError("Transfer record cannot have the same sender and recipient")
        if isinstance(self.amount, bool) or not isinstance(self.amount, int):
            raise ValueError("Transfer record amount must be an integer")
        if self.amount <= 0:
            raise ValueError("Transfer record amount must be positive")
        if self.amount > AMOUNT_MAX:
            raise ValueError("Transfer record amount exceeds the 128-bit range")
        if self.recorded_at < 0:
            raise ValueError("Transfer record timestamp cannot be negative")

    def involves(self, participant: str) -> bool:
        """Check if participant is the sender or the recipient"""
        return self.sender == participant or self.recipient == participant

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for storage (amount as string to keep 128-bit precision)"""
        return {
            "sender": self.sender,
            "recipient": self.recipient,
            "amount": str(self.amount),
            "recorded_at": self.recorded_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TransferRecord':
        """Create instance from dictionary"""
        return cls(
            sender=data["sender"],
            recipient=data["recipient"],
            amount=int(data["amount"]),
            recorded_at=int(data["recorded_at"]),
        )


class LedgerStore:
    """
    Durable, ordered accumulation of transfer records

    The ledger is created lazily: reading before the first append yields an
    empty sequence. Every append also refreshes the slot's retention window
    so the host does not expire the ledger.
    """

    def __init__(
        self,
        store: PersistentStore,
        ledger_key: str = "payments",
        retention_threshold: int = 100_000,
        retention_extend_to: int = 100_000,
        max_retries: int = 5
    ):
        self.store = store
        self.ledger_key = ledger_key
        self.retention_threshold = retention_threshold
        self.retention_extend_to = retention_extend_to
        self.max_retries = max_retries
        self.logger = get_logger("payment_ledger.ledger")
        self._lock = threading.Lock()
        # Set once this instance has seen ledger data; after that a missing
        # or unreadable ledger is data loss, not first use.
        self._initialized = False

    def append(self, record: TransferRecord) -> None:
        """
        Append a record at the tail of the ledger

        Raises:
            StoreError: If the store is unreachable, rejects the write, or
                keeps reporting version conflicts past max_retries
        """
        with self._lock:
            for attempt in range(1, self.max_retries + 1):
                current = self.store.get(self.ledger_key)
                if current is None:
                    if self._initialized:
                        raise StoreError(
                            f"Ledger '{self.ledger_key}' disappeared from the store"
                        )
                    entries, version = [], 0
                else:
                    entries, version = list(current.value), current.version

                entries.append(record.to_dict())
                try:
                    self.store.put(self.ledger_key, entries, expected_version=version)
                except VersionConflictError as e:
                    log_action(
                        self.logger, "warning",
                        f"Ledger append conflict, retrying ({attempt}/{self.max_retries})",
                        action="ledger_append_conflict", resource=self.ledger_key,
                        extra={"expected": e.expected, "actual": e.actual}
                    )
                    continue

                self._initialized = True
                self.store.extend_ttl(
                    self.ledger_key, self.retention_threshold, self.retention_extend_to
                )
                return

        raise StoreError(
            f"Ledger '{self.ledger_key}' append failed after {self.max_retries} version conflicts"
        )

    def read_all(self) -> List[TransferRecord]:
        """
        Return every record in insertion order

        A store failure before this instance has seen any ledger data is
        treated as an empty ledger. Afterwards it raises StoreError.
        """
        try:
            current = self.store.get(self.ledger_key)
        except StoreError:
            if self._initialized:
                raise
            self.logger.warning(
                f"Ledger '{self.ledger_key}' unreadable before first use, treating as empty",
                exc_info=True
            )
            return []

        if current is None:
            if self._initialized:
                raise StoreError(f"Ledger '{self.ledger_key}' disappeared from the store")
            return []

        try:
            records = [TransferRecord.from_dict(entry) for entry in current.value]
        except (KeyError, TypeError, ValueError) as e:
            raise StoreError(f"Ledger '{self.ledger_key}' holds a corrupt record: {e}") from e

        self._initialized = True
        return records

    def __len__(self) -> int:
        return len(self.read_all())
