"""
Token serialization (``cashuA`` / V3 format).

    token := "cashuA" || base64url(json)
    json  := {"token": [{"mint": url, "proofs": [...]}], "unit": "usd", "memo": "..."}

Padding is stripped on encode and restored on decode.
"""

from __future__ import annotations

import base64
import json

from pydantic import BaseModel, Field

from monexo.core.errors import TokenDecodeError
from monexo.core.models import CurrencyUnit, Proof, Proofs

TOKEN_PREFIX = "cashuA"


class TokenV3Entry(BaseModel):
    mint: str | None = None
    proofs: list[Proof] = Field(default_factory=list)


class TokenV3(BaseModel):
    """A bearer token: proofs from one or more mints plus optional memo."""
    token: list[TokenV3Entry] = Field(default_factory=list)
    unit: CurrencyUnit | None = None
    memo: str | None = None

    @classmethod
    def from_proofs(
        cls,
        mint_url: str | None,
        proofs: Proofs | list[Proof],
        unit: CurrencyUnit | None = CurrencyUnit.USD,
        memo: str | None = None,
    ) -> "TokenV3":
        return cls(token=[TokenV3Entry(mint=mint_url, proofs=list(proofs))], unit=unit, memo=memo)

    @property
    def proofs(self) -> Proofs:
        return Proofs(p for entry in self.token for p in entry.proofs)

    @property
    def mint(self) -> str | None:
        return self.token[0].mint if self.token else None

    def total_amount(self) -> int:
        return self.proofs.total_amount()

    def serialize(self) -> str:
        payload = json.dumps(self.model_dump(mode="json", exclude_none=True), separators=(",", ":"))
        encoded = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")
        return TOKEN_PREFIX + encoded.rstrip("=")

    @classmethod
    def deserialize(cls, data: str) -> "TokenV3":
        """
        Parse a ``cashuA`` string.

        Raises:
            TokenDecodeError: On a wrong prefix, bad base64, bad JSON or bad fields.
        """
        if not isinstance(data, str):
            raise TokenDecodeError("Token must be a string")
        data = data.strip()
        if not data.startswith(TOKEN_PREFIX):
            raise TokenDecodeError(f"Token must start with {TOKEN_PREFIX!r}")
        body = data[len(TOKEN_PREFIX):]
        body += "=" * (-len(body) % 4)
        try:
            raw = base64.urlsafe_b64decode(body.encode("ascii"))
            obj = json.loads(raw.decode("utf-8"))
            return cls.model_validate(obj)
        except ValueError as e:
            raise TokenDecodeError(f"Malformed token: {e}") from e

    def __str__(self) -> str:
        return self.serialize()
