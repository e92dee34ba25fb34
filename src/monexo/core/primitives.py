"""
Request and response bodies of the mint HTTP API.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from monexo.core.models import (
    BlindedMessage,
    BlindedSignature,
    CurrencyUnit,
    MeltQuote,
    MeltQuoteState,
    MintQuote,
    MintQuoteState,
    Proof,
    ProofState,
)

# ------------------------------------------------------------------
# Keys
# ------------------------------------------------------------------


class KeysetKeys(BaseModel):
    id: str
    unit: CurrencyUnit
    keys: dict[str, str] = Field(..., description="amount -> compressed public key")


class KeysResponse(BaseModel):
    keysets: list[KeysetKeys]


class KeysetInfo(BaseModel):
    id: str
    unit: CurrencyUnit
    active: bool


class KeysetsResponse(BaseModel):
    keysets: list[KeysetInfo]


# ------------------------------------------------------------------
# Swap / exchange / state / restore
# ------------------------------------------------------------------


class PostSwapRequest(BaseModel):
    inputs: list[Proof]
    outputs: list[BlindedMessage]


class PostSwapResponse(BaseModel):
    signatures: list[BlindedSignature]


class PostExchangeRequest(BaseModel):
    amount: int = Field(..., ge=0, description="Value of the inputs being exchanged")
    inputs: list[Proof]
    outputs: list[BlindedMessage]


class PostExchangeResponse(BaseModel):
    signatures: list[BlindedSignature]


class PostCheckStateRequest(BaseModel):
    Ys: list[str]


class ProofStateEntry(BaseModel):
    Y: str
    state: ProofState
    witness: str | None = None


class PostCheckStateResponse(BaseModel):
    states: list[ProofStateEntry]


class PostRestoreRequest(BaseModel):
    outputs: list[BlindedMessage]


class PostRestoreResponse(BaseModel):
    outputs: list[BlindedMessage]
    signatures: list[BlindedSignature]


# ------------------------------------------------------------------
# Mint (on-chain)
# ------------------------------------------------------------------


class PostMintQuoteOnchainRequest(BaseModel):
    amount: int = Field(..., ge=0)


class PostMintQuoteOnchainResponse(BaseModel):
    quote: str
    reference: str
    amount: int
    fee: int
    state: MintQuoteState
    expiry: int

    @classmethod
    def from_quote(cls, quote: MintQuote) -> "PostMintQuoteOnchainResponse":
        return cls(
            quote=quote.quote_id,
            reference=quote.reference,
            amount=quote.amount,
            fee=quote.fee,
            state=quote.state,
            expiry=quote.expiry,
        )


class PostMintOnchainRequest(BaseModel):
    quote: str
    outputs: list[BlindedMessage]


class PostMintOnchainResponse(BaseModel):
    signatures: list[BlindedSignature]


# ------------------------------------------------------------------
# Melt (on-chain)
# ------------------------------------------------------------------


class PostMeltQuoteOnchainRequest(BaseModel):
    amount: int = Field(..., ge=0)
    address: str = Field(..., min_length=1, description="Payout destination")


class PostMeltQuoteOnchainResponse(BaseModel):
    quote: str
    amount: int
    fee: int
    state: MeltQuoteState
    expiry: int
    description: str | None = None

    @classmethod
    def from_quote(cls, quote: MeltQuote) -> "PostMeltQuoteOnchainResponse":
        return cls(
            quote=quote.quote_id,
            amount=quote.amount,
            fee=quote.fee,
            state=quote.state,
            expiry=quote.expiry,
            description=quote.description,
        )


class PostMeltOnchainRequest(BaseModel):
    quote: str
    inputs: list[Proof]


class PostMeltOnchainResponse(BaseModel):
    state: MeltQuoteState
    txid: str | None = None


# ------------------------------------------------------------------
# Info
# ------------------------------------------------------------------


class MintInfoResponse(BaseModel):
    name: str | None = None
    version: str | None = None
    description: str | None = None
    description_long: str | None = None
    contact: list[list[str]] = Field(default_factory=list)
    motd: str | None = None
    nuts: dict[str, dict] = Field(default_factory=dict)
