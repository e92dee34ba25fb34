"""
Deterministic wallet secrets (NUT-13).

Secrets and blinding factors are derived from a BIP-39 mnemonic so a wallet
can be recovered from its seed phrase alone:

    m/129372'/0'/{keyset_id_int}'/{counter}'/0   -> secret (hex of the private key)
    m/129372'/0'/{keyset_id_int}'/{counter}'/1   -> blinding factor r
"""

from __future__ import annotations

from bip32 import BIP32
from mnemonic import Mnemonic

from monexo.crypto.keyset import keyset_id_as_int

_SECRET = 0
_BLINDING = 1

_mnemonic = Mnemonic("english")


class DeterministicSecret:
    """
    BIP-32 secret derivation rooted in a mnemonic seed.

    Usage:
        ds = DeterministicSecret.from_seed_words("half depart obvious ...")
        pairs = ds.derive_range("009a1f293253e41e", start=1, length=3)
    """

    def __init__(self, seed: bytes) -> None:
        self._bip32 = BIP32.from_seed(seed)

    @classmethod
    def from_seed_words(cls, seed_words: str) -> "DeterministicSecret":
        """
        Raises:
            ValueError: If the phrase is not a valid BIP-39 mnemonic.
        """
        words = " ".join(seed_words.split())
        if not _mnemonic.check(words):
            raise ValueError("Invalid mnemonic")
        return cls(Mnemonic.to_seed(words, passphrase=""))

    @staticmethod
    def generate_random_seed_words() -> str:
        """Fresh 12-word mnemonic (128 bits of entropy)."""
        return _mnemonic.generate(strength=128)

    def _derive_private_key(self, keyset_id: int, counter: int, kind: int) -> bytes:
        path = f"m/129372'/0'/{keyset_id}'/{counter}'/{kind}"
        return self._bip32.get_privkey_from_path(path)

    def derive_secret(self, keyset_id: int, counter: int) -> str:
        return self._derive_private_key(keyset_id, counter, _SECRET).hex()

    def derive_blinding_factor(self, keyset_id: int, counter: int) -> int:
        return int.from_bytes(self._derive_private_key(keyset_id, counter, _BLINDING), "big")

    def derive_range(self, keyset_id: str, start: int, length: int) -> list[tuple[str, int]]:
        """(secret, blinding factor) for counters start .. start+length-1."""
        keyset_int = keyset_id_as_int(keyset_id)
        return [
            (self.derive_secret(keyset_int, i), self.derive_blinding_factor(keyset_int, i))
            for i in range(start, start + length)
        ]
