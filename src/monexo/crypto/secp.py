"""
secp256k1 group primitives for blind signatures.

Provides:
- decode_point / encode_point: compressed (33-byte) point codec
- encode_point_uncompressed: 65-byte encoding used by the DLEQ transcript
- hash_to_curve: deterministic map from arbitrary bytes to a curve point
- hash_e: Fiat-Shamir challenge over a list of points
- random_scalar / scalar_from_hex: private-scalar helpers

Mathematical foundation:
    Y = hash_to_curve(x) is a point whose discrete log w.r.t. G is unknown.
    All blind-signature arithmetic (B_ = Y + r·G, C_ = k·B_, C = C_ - r·K)
    happens in the prime-order group generated by G.

References:
    [NUT-00] Cashu NUT-00, "Notation, Utilization, and Terminology",
             hash_to_curve with domain separator and counter.
    [NUT-12] Cashu NUT-12, "Offline ecash signature validation" (DLEQ).
"""

from __future__ import annotations

import hashlib
import secrets

import ecdsa
import ecdsa.ellipticcurve as ec

# ==============================================================================
# secp256k1 curve constants
# ==============================================================================

# Field prime
SECP256K1_P = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F

# Group order
SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

_CURVE = ecdsa.SECP256k1.curve
G = ecdsa.SECP256k1.generator

DOMAIN_SEPARATOR = b"Secp256k1_HashToCurve_Cashu_"

# hash_to_curve gives up after this many counters
_MAX_HASH_TO_CURVE_ITERATIONS = 2**16


# ==============================================================================
# Point codec
# ==============================================================================


def decode_point(hex_str: str) -> ec.PointJacobi:
    """
    Decode a 33-byte compressed secp256k1 point.

    Args:
        hex_str: 66-character hex string (02/03 prefix + 32-byte X coordinate).

    Returns:
        ecdsa elliptic curve Point.

    Raises:
        ValueError: If the hex string is malformed or not on the curve.
    """
    try:
        raw = bytes.fromhex(hex_str)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid point hex: {e}") from e
    return decode_point_bytes(raw)


def decode_point_bytes(raw: bytes) -> ec.PointJacobi:
    """Same as decode_point, for raw bytes."""
    if len(raw) != 33:
        raise ValueError(f"Expected 33 bytes, got {len(raw)}")
    prefix = raw[0]
    if prefix not in (0x02, 0x03):
        raise ValueError(f"Invalid prefix byte: 0x{prefix:02x}")

    x = int.from_bytes(raw[1:], "big")
    if x >= SECP256K1_P:
        raise ValueError("X coordinate is not a field element")
    y_sq = (pow(x, 3, SECP256K1_P) + 7) % SECP256K1_P
    y = pow(y_sq, (SECP256K1_P + 1) // 4, SECP256K1_P)

    if (y * y) % SECP256K1_P != y_sq:
        raise ValueError(f"X coordinate 0x{x:064x} does not correspond to a curve point")

    if (y % 2 == 0) != (prefix == 0x02):
        y = SECP256K1_P - y

    return ec.PointJacobi(_CURVE, x, y, 1)


def encode_point(pt: ec.AbstractPoint) -> str:
    """
    Encode a point as a 33-byte compressed hex string.

    Raises:
        ValueError: If the point is the identity (point at infinity).
    """
    if pt == ec.INFINITY:
        raise ValueError("Cannot encode the point at infinity")
    prefix = b"\x02" if pt.y() % 2 == 0 else b"\x03"
    return (prefix + pt.x().to_bytes(32, "big")).hex()


def encode_point_uncompressed(pt: ec.AbstractPoint) -> str:
    """Encode a point as a 65-byte uncompressed hex string (04 || X || Y)."""
    if pt == ec.INFINITY:
        raise ValueError("Cannot encode the point at infinity")
    return (b"\x04" + pt.x().to_bytes(32, "big") + pt.y().to_bytes(32, "big")).hex()


def points_equal(a: ec.AbstractPoint, b: ec.AbstractPoint) -> bool:
    if a == ec.INFINITY or b == ec.INFINITY:
        return a == b
    return a.x() == b.x() and a.y() == b.y()


# ==============================================================================
# Scalars
# ==============================================================================


def random_scalar() -> int:
    """Uniform scalar in [1, N-1]."""
    return secrets.randbelow(SECP256K1_N - 1) + 1


def scalar_from_hex(hex_str: str) -> int:
    """
    Parse a 32-byte hex private scalar.

    Raises:
        ValueError: If the value is malformed or outside [1, N-1].
    """
    try:
        raw = bytes.fromhex(hex_str)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid scalar hex: {e}") from e
    if len(raw) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(raw)}")
    value = int.from_bytes(raw, "big")
    if value <= 0 or value >= SECP256K1_N:
        raise ValueError("Scalar must be in [1, N-1]")
    return value


def scalar_to_hex(value: int) -> str:
    return (value % SECP256K1_N).to_bytes(32, "big").hex()


def public_key(k: int) -> ec.PointJacobi:
    """K = k·G"""
    return k * G


# ==============================================================================
# hash_to_curve / hash_e
# ==============================================================================


def hash_to_curve(message: bytes) -> ec.PointJacobi:
    """
    Map arbitrary bytes to a secp256k1 point with unknown discrete log.

    Algorithm [NUT-00]:
        1. msg_hash = SHA256(DOMAIN_SEPARATOR || message)
        2. For counter = 0, 1, ...:
               candidate = 0x02 || SHA256(msg_hash || counter as 4-byte LE)
               return the first candidate that decodes to a curve point

    Args:
        message: Raw bytes (a proof secret is hashed as its UTF-8 encoding).

    Returns:
        The curve point Y.

    Raises:
        ValueError: If no point is found within 2^16 iterations.
    """
    msg_hash = hashlib.sha256(DOMAIN_SEPARATOR + message).digest()
    for counter in range(_MAX_HASH_TO_CURVE_ITERATIONS):
        digest = hashlib.sha256(msg_hash + counter.to_bytes(4, "little")).digest()
        try:
            return decode_point_bytes(b"\x02" + digest)
        except ValueError:
            continue
    raise ValueError("No valid point found")


def hash_e(*points: ec.AbstractPoint) -> bytes:
    """
    Fiat-Shamir challenge: SHA256 over the concatenated uncompressed hex
    encodings of the points, as UTF-8 text [NUT-12].
    """
    transcript = "".join(encode_point_uncompressed(p) for p in points)
    return hashlib.sha256(transcript.encode("utf-8")).digest()
