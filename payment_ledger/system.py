"""
Component wiring for a deployed payment ledger instance
"""

from typing import Optional

from .clock import Clock, SystemClock
from .config import PaymentLedgerConfig, get_config
from .ledger import LedgerStore
from .recorder import TransferRecorder
from .storage import PersistentStore, InMemoryStore, SQLiteStore
from .transfers import TransferService, InMemoryTransferService, HttpTransferService


class PaymentSystem:
    """Payment ledger with all components initialized"""

    def __init__(
        self,
        config: Optional[PaymentLedgerConfig] = None,
        store: Optional[PersistentStore] = None,
        transfer_service: Optional[TransferService] = None,
        clock: Optional[Clock] = None
    ):
        self.config = config or get_config()
        self.clock = clock or SystemClock()
        self.store = store or self._create_store()
        self.transfer_service = transfer_service or self._create_transfer_service()

        self.ledger_store = LedgerStore(
            self.store,
            ledger_key=self.config.ledger_key,
            retention_threshold=self.config.retention_threshold_seconds,
            retention_extend_to=self.config.retention_extend_to_seconds,
            max_retries=self.config.append_max_retries
        )
        self.recorder = TransferRecorder(self.ledger_store, self.transfer_service, self.clock)

    def _create_store(self) -> PersistentStore:
        backend = self.config.storage_backend
        if backend == "memory":
            return InMemoryStore(clock=self.clock, default_ttl=self.config.storage_default_ttl_seconds)
        if backend == "sqlite":
            return SQLiteStore(
                self.config.database_path,
                clock=self.clock,
                default_ttl=self.config.storage_default_ttl_seconds
            )
        raise ValueError(f"Unknown storage backend: {backend}")

    def _create_transfer_service(self) -> TransferService:
        backend = self.config.transfer_backend
        if backend == "memory":
            return InMemoryTransferService()
        if backend == "http":
            return HttpTransferService(
                base_url=self.config.transfer_service_url,
                asset_contract_id=self.config.asset_contract_id,
                timeout=self.config.transfer_timeout,
                api_key=self.config.transfer_api_key
            )
        raise ValueError(f"Unknown transfer backend: {backend}")

    def close(self) -> None:
        if isinstance(self.transfer_service, HttpTransferService):
            self.transfer_service.close()
        self.store.close()
