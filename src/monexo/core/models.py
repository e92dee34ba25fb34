"""
Core e-cash data models.

All amounts are unsigned integers in the smallest unit of their currency.
Field names follow the wire format (``B_``, ``C_``, ``C``) so models
serialize directly into request and response bodies.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Iterator

from pydantic import BaseModel, Field, field_validator

from monexo.core.amount import MAX_AMOUNT, checked_sum
from monexo.core.errors import NotEnoughTokens
from monexo.crypto.secp import encode_point, hash_to_curve


class CurrencyUnit(str, Enum):
    USD = "usd"
    MUSD = "musd"
    UGX = "ugx"
    SAT = "sat"


class ProofState(str, Enum):
    UNSPENT = "UNSPENT"
    PENDING = "PENDING"
    SPENT = "SPENT"


class MintQuoteState(str, Enum):
    UNPAID = "UNPAID"
    PENDING = "PENDING"
    PAID = "PAID"
    ISSUED = "ISSUED"


class MeltQuoteState(str, Enum):
    UNPAID = "UNPAID"
    PENDING = "PENDING"
    PAID = "PAID"


class DleqWire(BaseModel):
    """DLEQ proof as hex scalars."""
    e: str
    s: str


class BlindedMessage(BaseModel):
    """An output the wallet asks the mint to sign."""
    amount: int = Field(ge=0, le=MAX_AMOUNT)
    id: str
    B_: str


class BlindedSignature(BaseModel):
    """The mint's signature on a BlindedMessage."""
    amount: int = Field(ge=0, le=MAX_AMOUNT)
    id: str
    C_: str
    dleq: DleqWire | None = None


class Proof(BaseModel):
    """
    A spendable token: an unblinded signature C on a secret.

    Two proofs are the same token iff their secrets match.
    """
    amount: int = Field(ge=0, le=MAX_AMOUNT)
    id: str
    secret: str
    C: str
    script: str | None = None

    @field_validator("secret")
    @classmethod
    def _secret_is_utf8(cls, value: str) -> str:
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValueError("secret must be valid UTF-8") from e
        return value

    @property
    def y(self) -> str:
        """Y = hash_to_curve(secret), compressed hex."""
        return encode_point(hash_to_curve(self.secret.encode("utf-8")))

    def to_wire(self) -> dict:
        return self.model_dump(exclude_none=True)


class Proofs:
    """Ordered collection of proofs."""

    def __init__(self, proofs: Iterable[Proof] = ()) -> None:
        self._proofs: list[Proof] = list(proofs)

    def __iter__(self) -> Iterator[Proof]:
        return iter(self._proofs)

    def __len__(self) -> int:
        return len(self._proofs)

    def __getitem__(self, index: int) -> Proof:
        return self._proofs[index]

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Proofs):
            return self._proofs == other._proofs
        return NotImplemented

    def __repr__(self) -> str:
        return f"Proofs(total={self.total_amount()}, count={len(self._proofs)})"

    def as_list(self) -> list[Proof]:
        return list(self._proofs)

    def total_amount(self) -> int:
        return checked_sum(p.amount for p in self._proofs)

    def proofs_by_keyset(self, keyset_id: str) -> Proofs:
        return Proofs(p for p in self._proofs if p.id == keyset_id)

    def proofs_for_amount(self, amount: int) -> Proofs:
        """
        Select proofs covering at least ``amount``, largest first.

        Raises:
            NotEnoughTokens: If the collection holds less than ``amount``.
        """
        if self.total_amount() < amount:
            raise NotEnoughTokens(f"Need {amount}, have {self.total_amount()}")
        selected: list[Proof] = []
        total = 0
        for proof in sorted(self._proofs, key=lambda p: p.amount, reverse=True):
            if total >= amount:
                break
            selected.append(proof)
            total += proof.amount
        return Proofs(selected)

    def ys(self) -> list[str]:
        return [p.y for p in self._proofs]

    def secrets(self) -> list[str]:
        return [p.secret for p in self._proofs]


class MintQuote(BaseModel):
    """Request to mint tokens against an incoming payment."""
    quote_id: str
    reference: str
    amount: int
    fee: int
    expiry: int  # unix seconds
    state: MintQuoteState = MintQuoteState.UNPAID


class MeltQuote(BaseModel):
    """Request to redeem tokens for an outgoing payout."""
    quote_id: str
    amount: int
    fee: int
    address: str
    reference: str
    expiry: int
    state: MeltQuoteState = MeltQuoteState.UNPAID
    description: str | None = None
    txid: str | None = None
