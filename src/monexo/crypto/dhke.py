"""
Blind Diffie-Hellman Key Exchange (BDHKE) over secp256k1.

Protocol between a wallet (Alice) and a mint (Bob) holding key pair (k, K = k·G):

    Alice:  Y  = hash_to_curve(x)          x: the proof secret
            B_ = Y + r·G                    r: random blinding factor
    Bob:    C_ = k·B_                       signs without learning x
    Alice:  C  = C_ - r·K  ( = k·Y )        unblinded signature
    Bob:    verify(k, C, x)  <=>  C == k·hash_to_curve(x)

The mint additionally attaches a DLEQ proof (e, s) showing that the same k
links (G, K) and (B_, C_), so a wallet can check that the signature was made
with the advertised public key:

    r' random
    R1 = r'·G,  R2 = r'·B_
    e  = hash_e(R1, R2, K, C_)
    s  = r' + e·k   (mod N)

    verify:  R1 = s·G - e·K,  R2 = s·B_ - e·C_,  e == hash_e(R1, R2, K, C_)

References:
    [Chaum83] D. Chaum, "Blind signatures for untraceable payments".
    [NUT-00]  Cashu NUT-00, BDHKE.
    [NUT-12]  Cashu NUT-12, DLEQ proofs.
"""

from __future__ import annotations

from dataclasses import dataclass

import ecdsa.ellipticcurve as ec

from monexo.crypto.secp import (
    G,
    SECP256K1_N,
    hash_e,
    hash_to_curve,
    points_equal,
    random_scalar,
)


@dataclass(frozen=True)
class DleqProof:
    """
    Non-interactive proof of equality of discrete logs.

    Attributes:
        e: Fiat-Shamir challenge as a 32-byte integer.
        s: Response scalar.
    """
    e: int
    s: int

    def to_hex(self) -> tuple[str, str]:
        return self.e.to_bytes(32, "big").hex(), self.s.to_bytes(32, "big").hex()

    @classmethod
    def from_hex(cls, e: str, s: str) -> "DleqProof":
        return cls(e=int(e, 16), s=int(s, 16))


def _check_scalar(value: int, name: str) -> None:
    if value <= 0 or value >= SECP256K1_N:
        raise ValueError(f"{name} must be in [1, N-1]")


# ==============================================================================
# Blind signature steps
# ==============================================================================


def step1_blind(secret: bytes, r: int) -> ec.PointJacobi:
    """
    Blind a secret: B_ = hash_to_curve(secret) + r·G.

    Args:
        secret: Proof secret bytes.
        r: Blinding factor in [1, N-1].

    Returns:
        The blinded message point B_.
    """
    _check_scalar(r, "blinding factor")
    return hash_to_curve(secret) + r * G


def step2_sign(blinded: ec.AbstractPoint, k: int) -> ec.PointJacobi:
    """Mint-side signature on a blinded message: C_ = k·B_."""
    _check_scalar(k, "signing key")
    return k * blinded


def step3_unblind(blinded_sig: ec.AbstractPoint, r: int, mint_pubkey: ec.AbstractPoint) -> ec.PointJacobi:
    """Remove the blinding: C = C_ - r·K."""
    return blinded_sig + (-(r * mint_pubkey))


def verify(k: int, C: ec.AbstractPoint, secret: bytes) -> bool:
    """True iff C == k·hash_to_curve(secret)."""
    return points_equal(C, k * hash_to_curve(secret))


# ==============================================================================
# DLEQ
# ==============================================================================


def generate_dleq(blinded: ec.AbstractPoint, blinded_sig: ec.AbstractPoint, k: int,
                  nonce: int | None = None) -> DleqProof:
    """
    Prove that log_G(K) == log_B_(C_) for K = k·G.

    Args:
        blinded: B_
        blinded_sig: C_ = k·B_
        k: Mint private key for the denomination.
        nonce: Optional fixed nonce (tests only); fresh random otherwise.

    Returns:
        DleqProof(e, s).
    """
    _check_scalar(k, "signing key")
    p = nonce if nonce is not None else random_scalar()
    R1 = p * G
    R2 = p * blinded
    A = k * G
    e = int.from_bytes(hash_e(R1, R2, A, blinded_sig), "big")
    s = (p + e * k) % SECP256K1_N
    return DleqProof(e=e, s=s)


def verify_dleq(proof: DleqProof, blinded: ec.AbstractPoint, blinded_sig: ec.AbstractPoint,
                mint_pubkey: ec.AbstractPoint) -> bool:
    """
    Check a DLEQ proof against (B_, C_, K).

    Returns False for any proof that does not reproduce the challenge,
    including degenerate inputs that collapse to the point at infinity.
    """
    e, s = proof.e % SECP256K1_N, proof.s % SECP256K1_N
    R1 = s * G + (-(e * mint_pubkey))
    R2 = s * blinded + (-(e * blinded_sig))
    if R1 == ec.INFINITY or R2 == ec.INFINITY:
        return False
    return int.from_bytes(hash_e(R1, R2, mint_pubkey, blinded_sig), "big") == proof.e
