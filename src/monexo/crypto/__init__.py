"""
monexo.crypto: Cryptographic primitives for blind-signature e-cash.

Provides:
- secp256k1 point encode/decode utilities and hash_to_curve
- BDHKE blind / sign / unblind / verify
- DLEQ proofs binding a signature to the mint's public key
- Mint keyset derivation and keyset ids
- Deterministic wallet secrets from a mnemonic
"""

from monexo.crypto.dhke import (
    DleqProof,
    generate_dleq,
    step1_blind,
    step2_sign,
    step3_unblind,
    verify,
    verify_dleq,
)
from monexo.crypto.keyset import (
    MintKeyset,
    derive_keys,
    derive_keyset_id,
    derive_pubkeys,
    keyset_id_as_int,
)
from monexo.crypto.secp import (
    G,
    SECP256K1_N,
    decode_point,
    encode_point,
    hash_e,
    hash_to_curve,
    random_scalar,
)
from monexo.crypto.secret import DeterministicSecret

__all__ = [
    # secp256k1
    "G",
    "SECP256K1_N",
    "decode_point",
    "encode_point",
    "hash_e",
    "hash_to_curve",
    "random_scalar",
    # BDHKE
    "DleqProof",
    "step1_blind",
    "step2_sign",
    "step3_unblind",
    "verify",
    "generate_dleq",
    "verify_dleq",
    # Keysets
    "MintKeyset",
    "derive_keys",
    "derive_pubkeys",
    "derive_keyset_id",
    "keyset_id_as_int",
    # Wallet secrets
    "DeterministicSecret",
]
