"""
Tests for configuration, wiring and logging setup
"""

import json
import logging
import tempfile
from pathlib import Path

import pytest

from payment_ledger.config import PaymentLedgerConfig
from payment_ledger.clock import ManualClock
from payment_ledger.logging_config import (
    JSONFormatter, KeyValueFormatter, setup_logging, setup_logging_from_config, log_action
)
from payment_ledger.storage import InMemoryStore, SQLiteStore
from payment_ledger.system import PaymentSystem
from payment_ledger.transfers import InMemoryTransferService, HttpTransferService


class TestPaymentLedgerConfig:
    """Test environment-based configuration"""

    def test_defaults(self):
        """Test default retention matches the ledger refresh window"""
        config = PaymentLedgerConfig()

        assert config.ledger_key == "payments"
        assert config.retention_threshold_seconds == 100_000
        assert config.retention_extend_to_seconds == 100_000
        assert config.append_max_retries == 5

    def test_environment_overrides(self, monkeypatch):
        """Test PAYLEDGER_ variables override defaults"""
        monkeypatch.setenv("PAYLEDGER_STORAGE_BACKEND", "memory")
        monkeypatch.setenv("PAYLEDGER_LEDGER_KEY", "instance-2")
        monkeypatch.setenv("PAYLEDGER_APPEND_MAX_RETRIES", "9")

        config = PaymentLedgerConfig()

        assert config.storage_backend == "memory"
        assert config.ledger_key == "instance-2"
        assert config.append_max_retries == 9


class TestPaymentSystem:
    """Test component wiring from configuration"""

    def test_memory_backends(self):
        """Test in-memory store and transfer service"""
        system = PaymentSystem(config=PaymentLedgerConfig(
            storage_backend="memory", transfer_backend="memory", ledger_key="k"
        ))

        assert isinstance(system.store, InMemoryStore)
        assert isinstance(system.transfer_service, InMemoryTransferService)
        assert system.ledger_store.ledger_key == "k"
        system.close()

    def test_sqlite_and_http_backends(self):
        """Test SQLite store and HTTP transfer service"""
        with tempfile.TemporaryDirectory() as temp_dir:
            system = PaymentSystem(config=PaymentLedgerConfig(
                storage_backend="sqlite",
                database_path=str(Path(temp_dir) / "ledger.db"),
                transfer_backend="http",
                transfer_service_url="http://transfers.local"
            ))

            assert isinstance(system.store, SQLiteStore)
            assert isinstance(system.transfer_service, HttpTransferService)
            assert system.transfer_service.base_url == "http://transfers.local"
            system.close()

    @pytest.mark.parametrize("backend", ["memory", "sqlite"])
    def test_ledger_slot_has_retention(self, backend):
        """Test a configured system gives the ledger slot a lifetime and refreshes it"""
        with tempfile.TemporaryDirectory() as temp_dir:
            clock = ManualClock(start=1_000)
            system = PaymentSystem(
                config=PaymentLedgerConfig(
                    storage_backend=backend,
                    database_path=str(Path(temp_dir) / "ledger.db"),
                    transfer_backend="memory",
                    storage_default_ttl_seconds=50,
                    retention_threshold_seconds=100,
                    retention_extend_to_seconds=500
                ),
                clock=clock
            )
            system.transfer_service.deposit("alice", 10)

            system.recorder.record("alice", "bob", 5)

            assert system.store.ttl("payments") == 500
            system.close()

    @pytest.mark.parametrize("backend", ["memory", "sqlite"])
    def test_default_retention_is_positive(self, backend):
        """Test default configuration never leaves the ledger slot without expiry"""
        with tempfile.TemporaryDirectory() as temp_dir:
            system = PaymentSystem(config=PaymentLedgerConfig(
                storage_backend=backend,
                database_path=str(Path(temp_dir) / "ledger.db"),
                transfer_backend="memory"
            ))
            system.transfer_service.deposit("alice", 10)

            system.recorder.record("alice", "bob", 5)

            assert system.store.ttl("payments") > 0
            system.close()

    def test_unknown_backend(self):
        """Test unknown backends are rejected"""
        with pytest.raises(ValueError, match="Unknown storage backend"):
            PaymentSystem(config=PaymentLedgerConfig(storage_backend="redis"))


class TestLogging:
    """Test structured logging output"""

    def test_json_formatter(self):
        """Test structured fields appear and None values are dropped"""
        logger = logging.getLogger("payment_ledger_test.formatter")
        record = logger.makeRecord(logger.name, logging.INFO, __name__, 0, "Transfer recorded", (), None)
        record.participant = "alice"
        record.action = "transfer_recorded"

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "Transfer recorded"
        assert entry["participant"] == "alice"
        assert entry["action"] == "transfer_recorded"
        assert "correlation_id" not in entry

    def test_log_action_respects_level(self):
        """Test log_action routes through handlers and honours the level"""
        logger = setup_logging("WARNING", "json", logger_name="payment_ledger_test.actions")
        handler = logging.Handler()
        handler.emit = lambda r: captured.append(r)
        captured = []
        logger.addHandler(handler)

        log_action(logger, "info", "ignored")
        log_action(logger, "warning", "kept", participant="bob", extra={"amount": "5"})

        assert [r.getMessage() for r in captured] == ["kept"]
        assert captured[0].participant == "bob"
        assert captured[0].extra == {"amount": "5"}
        assert captured[0].funcName == "test_log_action_respects_level"

    def test_static_fields_on_every_line(self):
        """Test static fields are stamped on JSON and text output"""
        logger = logging.getLogger("payment_ledger_test.static")
        record = logger.makeRecord(logger.name, logging.INFO, __name__, 0, "Transfer recorded", (), None)
        record.participant = "alice"
        static = {"service": "payment_ledger", "ledger_key": "payments"}

        entry = json.loads(JSONFormatter(static).format(record))
        line = KeyValueFormatter(static).format(record)

        assert entry["service"] == "payment_ledger"
        assert entry["ledger_key"] == "payments"
        assert line.endswith("| service=payment_ledger ledger_key=payments participant=alice")

    def test_text_line_without_fields(self):
        """Test plain lines carry no key=value suffix"""
        logger = logging.getLogger("payment_ledger_test.plain")
        record = logger.makeRecord(logger.name, logging.INFO, __name__, 0, "started", (), None)

        line = KeyValueFormatter().format(record)

        assert line.endswith("[payment_ledger_test.plain] started")

    def test_setup_from_config(self):
        """Test config selects the formatter and stamps the ledger key"""
        config = PaymentLedgerConfig(log_level="DEBUG", log_format="text", ledger_key="instance-3")
        logger = setup_logging_from_config(config)
        try:
            assert logger.level == logging.DEBUG
            formatter = logger.handlers[0].formatter
            assert isinstance(formatter, KeyValueFormatter)
            assert formatter.static_fields["ledger_key"] == "instance-3"
        finally:
            # Restore propagation so other suites can capture ledger logs
            for handler in logger.handlers[:]:
                logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)
            logger.propagate = True

    def test_unknown_log_format(self):
        """Test unsupported formats are rejected"""
        with pytest.raises(ValueError, match="Unknown log format"):
            setup_logging("INFO", "xml", logger_name="payment_ledger_test.bad")
