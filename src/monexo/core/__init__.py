"""core module init"""
from monexo.core.amount import MAX_AMOUNT, Amount, split
from monexo.core.errors import (
    DleqVerificationError,
    InvalidAmount,
    InvalidProof,
    InvalidQuote,
    InvalidUuid,
    KeysetInactive,
    KeysetNotFound,
    MintClientError,
    MonexoError,
    NotEnoughTokens,
    OutputsAlreadySigned,
    PrivateKeyNotFound,
    ProofAlreadyUsed,
    ProtocolViolation,
    SettlementError,
    SwapAmountMismatch,
    SwapHasDuplicatePromises,
    TokenDecodeError,
)
from monexo.core.models import (
    BlindedMessage,
    BlindedSignature,
    CurrencyUnit,
    MeltQuote,
    MeltQuoteState,
    MintQuote,
    MintQuoteState,
    Proof,
    Proofs,
    ProofState,
)
from monexo.core.token import TokenV3

__all__ = [
    "MAX_AMOUNT",
    "Amount",
    "split",
    "BlindedMessage",
    "BlindedSignature",
    "CurrencyUnit",
    "MeltQuote",
    "MeltQuoteState",
    "MintQuote",
    "MintQuoteState",
    "Proof",
    "Proofs",
    "ProofState",
    "TokenV3",
    "MonexoError",
    "InvalidAmount",
    "InvalidProof",
    "InvalidQuote",
    "InvalidUuid",
    "KeysetInactive",
    "KeysetNotFound",
    "MintClientError",
    "NotEnoughTokens",
    "OutputsAlreadySigned",
    "PrivateKeyNotFound",
    "ProofAlreadyUsed",
    "ProtocolViolation",
    "SettlementError",
    "SwapAmountMismatch",
    "SwapHasDuplicatePromises",
    "TokenDecodeError",
    "DleqVerificationError",
]
