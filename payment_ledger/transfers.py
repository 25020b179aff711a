"""
Transfer Service Module

The collaborator that actually moves value between two accounts. A transfer
either fully completes or has no effect; the ledger relies on that and has
no compensation logic of its own.
"""

from abc import ABC, abstractmethod
from typing import Dict, Optional
import logging
import threading

import httpx

from .errors import TransferError

logger = logging.getLogger("payment_ledger.transfers")


class TransferService(ABC):
    """Abstract interface for value movement"""

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """
        Move amount from sender to recipient

        Raises:
            TransferError: If the movement did not happen
        """
        pass


class InMemoryTransferService(TransferService):
    """Balance book kept in memory, for development and testing"""

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self._balances: Dict[str, int] = dict(balances or {})
        self._lock = threading.RLock()

    def deposit(self, account: str, amount: int) -> int:
        """Credit an account from outside the ledger and return its new balance"""
        if amount <= 0:
            raise ValueError("Deposit amount must be positive")
        with self._lock:
            self._balances[account] = self._balances.get(account, 0) + amount
            return self._balances[account]

    def balance(self, account: str) -> int:
        with self._lock:
            return self._balances.get(account, 0)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        with self._lock:
            available = self._balances.get(sender, 0)
            if available < amount:
                raise TransferError(
                    f"Insufficient funds in {sender}: balance {available}, requested {amount}"
                )
            self._balances[sender] = available - amount
            self._balances[recipient] = self._balances.get(recipient, 0) + amount


class HttpTransferService(TransferService):
    """REST client for an external asset transfer endpoint"""

    def __init__(
        self,
        base_url: str,
        asset_contract_id: str,
        timeout: float = 5.0,
        api_key: Optional[str] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.asset_contract_id = asset_contract_id
        self.timeout = timeout
        self.api_key = api_key
        self._client = httpx.Client(timeout=timeout)

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        headers = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "asset": self.asset_contract_id,
            "from": sender,
            "to": recipient,
            "amount": str(amount),  # 128-bit amounts do not fit JSON numbers
        }

        try:
            response = self._client.post(
                f"{self.base_url}/transfers",
                json=payload,
                headers=headers
            )
        except httpx.HTTPError as e:
            logger.error(f"Transfer endpoint unreachable: {e}")
            raise TransferError(f"Transfer service unreachable: {e}") from e

        if not 200 <= response.status_code < 300:
            logger.warning(f"Transfer endpoint returned {response.status_code}: {response.text}")
            raise TransferError(
                f"Transfer rejected with status {response.status_code}: {response.text}"
            )

    def health_check(self) -> bool:
        """Check if the transfer endpoint is healthy"""
        try:
            r = self._client.get(f"{self.base_url}/health")
            return r.status_code == 200
        except httpx.HTTPError:
            return False

    def close(self):
        """Close the HTTP client"""
        self._client.close()
