"""
Unit tests for monexo.mint.settlement: in-memory and HTTP settlement oracles.
"""

from unittest.mock import MagicMock

import httpx
import pytest

from monexo.core.errors import SettlementError
from monexo.mint.settlement import HttpSettlementOracle, InMemorySettlementOracle


class TestInMemoryOracle:

    def test_references_unique(self):
        oracle = InMemorySettlementOracle()
        assert oracle.new_reference() != oracle.new_reference()

    def test_payments_accumulate(self):
        oracle = InMemorySettlementOracle()
        ref = oracle.new_reference()
        assert not oracle.confirm_incoming_payment(ref, 10)
        oracle.mark_paid(ref, 6)
        assert not oracle.confirm_incoming_payment(ref, 10)
        oracle.mark_paid(ref, 4)
        assert oracle.confirm_incoming_payment(ref, 10)

    def test_auto_confirm(self):
        assert InMemorySettlementOracle(auto_confirm=True).confirm_incoming_payment("x", 1)

    def test_payout_recorded(self):
        oracle = InMemorySettlementOracle()
        txid = oracle.execute_payout("addr", 5, "ref")
        assert oracle.payouts == [{"address": "addr", "amount": 5, "reference": "ref", "txid": txid}]

    def test_failing_payout(self):
        oracle = InMemorySettlementOracle(fail_payouts=True)
        with pytest.raises(SettlementError):
            oracle.execute_payout("addr", 5, "ref")
        assert oracle.payouts == []


@pytest.fixture
def http_client():
    return MagicMock(spec=httpx.Client)


@pytest.fixture
def http_oracle(http_client):
    return HttpSettlementOracle("http://rail.local/", min_confirmations=3, client=http_client)


class TestHttpOracle:

    def test_new_reference(self, http_oracle, http_client):
        http_client.request.return_value = httpx.Response(200, json={"reference": "ref-1"})
        assert http_oracle.new_reference() == "ref-1"
        http_client.request.assert_called_once_with("POST", "http://rail.local/references")

    def test_confirm_passes_amount_and_confirmations(self, http_oracle, http_client):
        http_client.request.return_value = httpx.Response(200, json={"confirmed": True})
        assert http_oracle.confirm_incoming_payment("ref-1", 505)
        http_client.request.assert_called_once_with(
            "GET",
            "http://rail.local/payments/ref-1",
            params={"amount": 505, "min_confirmations": 3},
        )

    def test_unconfirmed(self, http_oracle, http_client):
        http_client.request.return_value = httpx.Response(200, json={})
        assert not http_oracle.confirm_incoming_payment("ref-1", 1)

    def test_payout(self, http_oracle, http_client):
        http_client.request.return_value = httpx.Response(200, json={"txid": "abc"})
        assert http_oracle.execute_payout("addr", 99, "ref") == "abc"
        _, kwargs = http_client.request.call_args
        assert kwargs["json"] == {"address": "addr", "amount": 99, "reference": "ref"}

    def test_error_status(self, http_oracle, http_client):
        http_client.request.return_value = httpx.Response(503, text="down")
        with pytest.raises(SettlementError, match="503"):
            http_oracle.execute_payout("addr", 1, "ref")

    def test_unreachable(self, http_oracle, http_client):
        http_client.request.side_effect = httpx.ConnectError("connection refused")
        with pytest.raises(SettlementError, match="unreachable"):
            http_oracle.new_reference()

    def test_invalid_json(self, http_oracle, http_client):
        http_client.request.return_value = httpx.Response(200, text="not json")
        with pytest.raises(SettlementError, match="invalid JSON"):
            http_oracle.new_reference()

    def test_api_key_header(self):
        oracle = HttpSettlementOracle("http://rail.local", api_key="secret")
        assert oracle._client.headers["api_key"] == "secret"
        oracle.close()
