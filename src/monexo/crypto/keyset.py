"""
Mint keyset derivation.

A keyset is one private key per power-of-two denomination, derived as a pure
function of the mint's master key and a derivation path:

    k_i = SHA256(f"{master_key}{derivation_path}{i}")   for amount 2^i

The keyset id commits to the public keys:

    id = "00" || hex(SHA256(K_1 || K_2 || K_4 || ...)[:7])

with the compressed public keys concatenated in ascending amount order.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from datetime import datetime

from monexo.crypto.secp import SECP256K1_N, encode_point, public_key

DEFAULT_MAX_ORDER = 64
KEYSET_ID_VERSION = "00"


def derive_keys(master_key: str, derivation_path: str, max_order: int = DEFAULT_MAX_ORDER) -> dict[int, int]:
    """
    Derive the private key for each denomination 2^0 .. 2^(max_order-1).

    Returns:
        Mapping amount -> private scalar.
    """
    keys: dict[int, int] = {}
    for i in range(max_order):
        digest = hashlib.sha256(f"{master_key}{derivation_path}{i}".encode("utf-8")).digest()
        k = int.from_bytes(digest, "big")
        if k == 0 or k >= SECP256K1_N:
            raise ValueError(f"Derived key for amount {2**i} is not a valid scalar")
        keys[2**i] = k
    return keys


def derive_pubkeys(keys: dict[int, int]) -> dict[int, str]:
    """Mapping amount -> compressed public key hex."""
    return {amount: encode_point(public_key(k)) for amount, k in keys.items()}


def derive_keyset_id(pubkeys: dict[int, str]) -> str:
    """16-character keyset id from the public keys."""
    concatenated = b"".join(bytes.fromhex(pubkeys[amount]) for amount in sorted(pubkeys))
    return KEYSET_ID_VERSION + hashlib.sha256(concatenated).hexdigest()[:14]


def keyset_id_as_int(keyset_id: str) -> int:
    """
    Integer form of a keyset id used in wallet derivation paths.

    First 8 bytes big-endian, reduced mod 2^31 - 1.

    Raises:
        ValueError: If the id is not at least 8 bytes of hex.
    """
    try:
        raw = bytes.fromhex(keyset_id)
    except ValueError as e:
        raise ValueError(f"Invalid keyset id {keyset_id!r}") from e
    if len(raw) < 8:
        raise ValueError(f"Keyset id too short: {keyset_id!r}")
    return int.from_bytes(raw[:8], "big") % (2**31 - 1)


@dataclass
class MintKeyset:
    """
    A mint keyset for one unit.

    Attributes:
        id: Keyset id derived from the public keys.
        unit: Currency unit (e.g. "usd").
        derivation_path: Path mixed into the key derivation.
        max_order: Number of denominations.
        active: Whether new signatures may be issued with this keyset.
        valid_from / valid_to: Optional validity window.
        private_keys: amount -> scalar. Never serialized.
        public_keys: amount -> compressed hex.
    """
    id: str
    unit: str
    derivation_path: str
    max_order: int
    active: bool = True
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    private_keys: dict[int, int] = field(default_factory=dict, repr=False)
    public_keys: dict[int, str] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        master_key: str,
        derivation_path: str,
        unit: str,
        max_order: int = DEFAULT_MAX_ORDER,
        active: bool = True,
        valid_from: datetime | None = None,
        valid_to: datetime | None = None,
    ) -> "MintKeyset":
        """Derive a full keyset from the master key."""
        private_keys = derive_keys(master_key, derivation_path, max_order)
        public_keys = derive_pubkeys(private_keys)
        return cls(
            id=derive_keyset_id(public_keys),
            unit=unit,
            derivation_path=derivation_path,
            max_order=max_order,
            active=active,
            valid_from=valid_from,
            valid_to=valid_to,
            private_keys=private_keys,
            public_keys=public_keys,
        )

    def private_key_for(self, amount: int) -> int | None:
        return self.private_keys.get(amount)

    def public_keys_hex(self) -> dict[str, str]:
        """Wire form: amount as a decimal string key."""
        return {str(amount): pk for amount, pk in sorted(self.public_keys.items())}
