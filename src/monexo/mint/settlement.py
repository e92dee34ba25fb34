"""
Settlement oracles: the payment rail behind mint and melt quotes.

The mint only needs three things from a rail:
- a fresh reference a payer can attach to an incoming payment
- whether a payment for (reference, amount) has been confirmed
- to execute a payout and return its transaction id

InMemorySettlementOracle serves development and tests; HttpSettlementOracle
talks to a payment service over HTTP.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx

from monexo.core.errors import SettlementError

logger = logging.getLogger("monexo.settlement")


class SettlementOracle(Protocol):
    def new_reference(self) -> str: ...

    def confirm_incoming_payment(self, reference: str, amount: int) -> bool: ...

    def execute_payout(self, address: str, amount: int, reference: str) -> str: ...


@dataclass
class InMemorySettlementOracle:
    """
    Settlement rail held in memory.

    Args:
        auto_confirm:   Treat every incoming payment as confirmed
        fail_payouts:   Make execute_payout raise SettlementError
    """
    auto_confirm: bool = False
    fail_payouts: bool = False
    payouts: list[dict[str, Any]] = field(default_factory=list)
    _paid: dict[str, int] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def new_reference(self) -> str:
        return uuid.uuid4().hex

    def mark_paid(self, reference: str, amount: int) -> None:
        """Record an incoming payment of ``amount`` for ``reference``."""
        with self._lock:
            self._paid[reference] = self._paid.get(reference, 0) + amount

    def confirm_incoming_payment(self, reference: str, amount: int) -> bool:
        if self.auto_confirm:
            return True
        with self._lock:
            return self._paid.get(reference, 0) >= amount

    def execute_payout(self, address: str, amount: int, reference: str) -> str:
        if self.fail_payouts:
            raise SettlementError(f"Payout to {address} rejected")
        txid = uuid.uuid4().hex
        with self._lock:
            self.payouts.append(
                {"address": address, "amount": amount, "reference": reference, "txid": txid}
            )
        logger.info(f"Payout {txid}: {amount} to {address}")
        return txid


class HttpSettlementOracle:
    """
    Synchronous client for a payment-rail service.

    Usage:
        oracle = HttpSettlementOracle("http://127.0.0.1:8080", api_key="secret")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        min_confirmations: int = 1,
        timeout: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.min_confirmations = min_confirmations
        headers: dict[str, str] = {"Content-Type": "application/json"}
        if api_key:
            headers["api_key"] = api_key
        self._client = client or httpx.Client(headers=headers, timeout=timeout)

    def new_reference(self) -> str:
        data = self._request("POST", "/references")
        return str(data["reference"])

    def confirm_incoming_payment(self, reference: str, amount: int) -> bool:
        data = self._request(
            "GET",
            f"/payments/{reference}",
            params={"amount": amount, "min_confirmations": self.min_confirmations},
        )
        return bool(data.get("confirmed", False))

    def execute_payout(self, address: str, amount: int, reference: str) -> str:
        data = self._request(
            "POST", "/payouts", json={"address": address, "amount": amount, "reference": reference}
        )
        return str(data["txid"])

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise SettlementError(f"Settlement service unreachable: {e}") from e
        if resp.status_code != 200:
            raise SettlementError(f"Settlement service error {resp.status_code}: {resp.text[:200]}")
        try:
            return resp.json()
        except ValueError as e:
            raise SettlementError(f"Settlement service returned invalid JSON: {e}") from e

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpSettlementOracle":
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()
