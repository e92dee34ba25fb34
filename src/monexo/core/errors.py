"""
Error taxonomy shared by the mint, the wallet and the HTTP layer.

Every error carries a stable integer ``code`` and a human-readable ``detail``.
The API maps them to HTTP 400 with ``{"code": ..., "detail": ...}`` and the
wallet's HTTP client maps such bodies back to the same classes.
"""

from __future__ import annotations


class MonexoError(Exception):
    """Base class for protocol errors."""
    code: int = 10000
    default_detail: str = "monexo error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.detail}


class InvalidAmount(MonexoError):
    code = 10001
    default_detail = "Invalid amount"


class InvalidProof(MonexoError):
    code = 10003
    default_detail = "Proof signature is invalid"


class ProofAlreadyUsed(MonexoError):
    code = 11001
    default_detail = "Proof already used"


class OutputsAlreadySigned(MonexoError):
    code = 11002
    default_detail = "Blinded message already signed"


class SwapAmountMismatch(MonexoError):
    code = 11005
    default_detail = "Swap amount mismatch"


class SwapHasDuplicatePromises(MonexoError):
    code = 11007
    default_detail = "Swap has duplicate promises"


class NotEnoughTokens(MonexoError):
    code = 11008
    default_detail = "Not enough tokens"


class UnitMismatch(MonexoError):
    code = 11010
    default_detail = "Inputs and outputs use different units"


class KeysetNotFound(MonexoError):
    code = 12001
    default_detail = "Keyset not found"


class KeysetInactive(MonexoError):
    code = 12002
    default_detail = "Keyset is inactive"


class PrivateKeyNotFound(MonexoError):
    code = 12003
    default_detail = "Private key not found"


class InvalidQuote(MonexoError):
    code = 20001
    default_detail = "Invalid quote"


class SettlementError(MonexoError):
    """Raised when the settlement oracle fails or rejects a payment."""
    code = 30001
    default_detail = "Settlement failed"


class TokenDecodeError(MonexoError, ValueError):
    code = 40001
    default_detail = "Invalid token"


class InvalidUuid(MonexoError):
    code = 40002
    default_detail = "Invalid uuid"


class ProtocolViolation(MonexoError):
    """Raised by the wallet when a mint response breaks the protocol."""
    code = 50001
    default_detail = "Mint response violates the protocol"


class DleqVerificationError(MonexoError):
    code = 50002
    default_detail = "DLEQ proof verification failed"


class MintClientError(MonexoError):
    """Transport-level failure talking to a mint."""
    code = 50003
    default_detail = "Mint request failed"


_BY_CODE: dict[int, type[MonexoError]] = {
    cls.code: cls
    for cls in (
        InvalidAmount,
        InvalidProof,
        ProofAlreadyUsed,
        OutputsAlreadySigned,
        SwapAmountMismatch,
        SwapHasDuplicatePromises,
        NotEnoughTokens,
        UnitMismatch,
        KeysetNotFound,
        KeysetInactive,
        PrivateKeyNotFound,
        InvalidQuote,
        SettlementError,
        TokenDecodeError,
        InvalidUuid,
        ProtocolViolation,
        DleqVerificationError,
        MintClientError,
    )
}


def error_from_code(code: int, detail: str) -> MonexoError:
    """Rebuild an error from its wire form; unknown codes become MintClientError."""
    cls = _BY_CODE.get(code, MintClientError)
    return cls(detail)
