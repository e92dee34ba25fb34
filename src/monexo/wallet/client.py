"""
HttpMintClient: wallet-side REST client for a monexo mint.
"""

from __future__ import annotations

from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from monexo.core.errors import MintClientError, error_from_code
from monexo.core.models import BlindedMessage, BlindedSignature, Proof
from monexo.core.primitives import (
    KeysetsResponse,
    KeysResponse,
    MintInfoResponse,
    PostCheckStateResponse,
    PostMeltOnchainResponse,
    PostMeltQuoteOnchainResponse,
    PostMintQuoteOnchainResponse,
    PostRestoreResponse,
    PostSwapResponse,
    ProofStateEntry,
)


def _dump(items: list[BaseModel]) -> list[dict[str, Any]]:
    return [i.model_dump(mode="json", exclude_none=True) for i in items]


class HttpMintClient:
    """
    Synchronous client for one mint.

    Usage:
        client = HttpMintClient("http://127.0.0.1:3338")
        keys = client.get_keys()

    An existing ``httpx.Client`` (including FastAPI's TestClient) can be
    passed in; it is then used as-is and ``timeout`` is ignored.
    """

    def __init__(
        self,
        mint_url: str,
        timeout: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        self.mint_url = mint_url.rstrip("/")
        self._client = client or httpx.Client(
            headers={"Content-Type": "application/json"}, timeout=timeout
        )

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def get_info(self) -> MintInfoResponse:
        return self._parse(MintInfoResponse, self._get("/v1/info"))

    def get_keys(self) -> KeysResponse:
        return self._parse(KeysResponse, self._get("/v1/keys"))

    def get_keys_by_id(self, keyset_id: str) -> KeysResponse:
        return self._parse(KeysResponse, self._get(f"/v1/keys/{keyset_id}"))

    def get_keysets(self) -> KeysetsResponse:
        return self._parse(KeysetsResponse, self._get("/v1/keysets"))

    # ------------------------------------------------------------------
    # Swap / exchange / state / restore
    # ------------------------------------------------------------------

    def post_swap(self, inputs: list[Proof], outputs: list[BlindedMessage]) -> list[BlindedSignature]:
        data = self._post("/v1/swap", {"inputs": _dump(inputs), "outputs": _dump(outputs)})
        return self._parse(PostSwapResponse, data).signatures

    def post_exchange(
        self, amount: int, inputs: list[Proof], outputs: list[BlindedMessage]
    ) -> list[BlindedSignature]:
        data = self._post(
            "/v1/exchange", {"amount": amount, "inputs": _dump(inputs), "outputs": _dump(outputs)}
        )
        return self._parse(PostSwapResponse, data).signatures

    def post_checkstate(self, ys: list[str]) -> list[ProofStateEntry]:
        data = self._post("/v1/checkstate", {"Ys": ys})
        return self._parse(PostCheckStateResponse, data).states

    def post_restore(self, outputs: list[BlindedMessage]) -> PostRestoreResponse:
        return self._parse(PostRestoreResponse, self._post("/v1/restore", {"outputs": _dump(outputs)}))

    # ------------------------------------------------------------------
    # Mint / melt (on-chain)
    # ------------------------------------------------------------------

    def post_mint_quote_onchain(self, amount: int) -> PostMintQuoteOnchainResponse:
        data = self._post("/v1/mint/quote/onchain", {"amount": amount})
        return self._parse(PostMintQuoteOnchainResponse, data)

    def get_mint_quote_onchain(self, quote_id: str) -> PostMintQuoteOnchainResponse:
        return self._parse(PostMintQuoteOnchainResponse, self._get(f"/v1/mint/quote/onchain/{quote_id}"))

    def post_mint_onchain(self, quote_id: str, outputs: list[BlindedMessage]) -> list[BlindedSignature]:
        data = self._post("/v1/mint/onchain", {"quote": quote_id, "outputs": _dump(outputs)})
        return self._parse(PostSwapResponse, data).signatures

    def post_melt_quote_onchain(self, amount: int, address: str) -> list[PostMeltQuoteOnchainResponse]:
        data = self._post("/v1/melt/quote/onchain", {"amount": amount, "address": address})
        if not isinstance(data, list):
            raise MintClientError("Expected a list of melt quotes")
        return [self._parse(PostMeltQuoteOnchainResponse, item) for item in data]

    def get_melt_quote_onchain(self, quote_id: str) -> PostMeltQuoteOnchainResponse:
        return self._parse(PostMeltQuoteOnchainResponse, self._get(f"/v1/melt/quote/onchain/{quote_id}"))

    def post_melt_onchain(self, quote_id: str, inputs: list[Proof]) -> PostMeltOnchainResponse:
        data = self._post("/v1/melt/onchain", {"quote": quote_id, "inputs": _dump(inputs)})
        return self._parse(PostMeltOnchainResponse, data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _get(self, path: str) -> Any:
        return self._request("GET", path)

    def _post(self, path: str, body: dict[str, Any]) -> Any:
        return self._request("POST", path, json=body)

    def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        url = f"{self.mint_url}{path}"
        try:
            resp = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise MintClientError(f"Request to {url} failed: {e}") from e

        if resp.status_code == 200:
            try:
                return resp.json()
            except ValueError as e:
                raise MintClientError(f"Invalid JSON from {url}: {e}") from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and "code" in body and "detail" in body:
            raise error_from_code(int(body["code"]), str(body["detail"]))
        raise MintClientError(f"Mint error {resp.status_code}: {resp.text[:200]}")

    @staticmethod
    def _parse(model: type[BaseModel], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise MintClientError(f"Unexpected response shape for {model.__name__}: {e}") from e

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "HttpMintClient":
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()
