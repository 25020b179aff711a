"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class PaymentLedgerConfig(BaseSettings):
    """Payment ledger configuration"""

    # Persistent store configuration
    storage_backend: str = "sqlite"  # memory or sqlite
    database_path: str = "payment_ledger.db"
    ledger_key: str = "payments"

    # Lifetime a newly created slot gets before it must be refreshed
    storage_default_ttl_seconds: Optional[int] = 100_000

    # Retention window of the ledger slot, refreshed on every append
    retention_threshold_seconds: int = 100_000
    retention_extend_to_seconds: int = 100_000

    # Compare-and-swap attempts per append before giving up
    append_max_retries: int = 5

    # Transfer service configuration
    transfer_backend: str = "memory"  # memory or http
    transfer_service_url: str = "http://localhost:8000"
    transfer_timeout: float = 5.0
    transfer_api_key: Optional[str] = None
    asset_contract_id: str = "CAS3J7GYLGXMF6TDJBBYYSE3HQ6BBSMLNUQ34T6TZMYMW2EVH3V6RHB4"  # Testnet native asset

    # API configuration
    api_host: str = "0.0.0.0"
    api_port: int = 8090

    # Logging configuration
    log_level: str = "INFO"
    log_format: str = "json"  # json or text

    class Config:
        env_prefix = "PAYLEDGER_"
        env_file = ".env"
        case_sensitive = False


# Global configuration instance
config = PaymentLedgerConfig()


def get_config() -> PaymentLedgerConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> PaymentLedgerConfig:
    """Reload configuration from environment"""
    global config
    config = PaymentLedgerConfig()
    return config
