"""
Unit tests for monexo.crypto.keyset and monexo.crypto.secret.
"""

import hashlib

import pytest

from monexo.crypto.keyset import (
    MintKeyset,
    derive_keys,
    derive_keyset_id,
    derive_pubkeys,
    keyset_id_as_int,
)
from monexo.crypto.secp import G, encode_point
from monexo.crypto.secret import DeterministicSecret

SEED_WORDS = "half depart obvious quality work element tank gorilla view sugar picture humble"
KEYSET_ID = "009a1f293253e41e"


class TestMintKeys:

    def test_key_derivation_formula(self):
        keys = derive_keys("master", "0/0/0/0", max_order=4)
        assert sorted(keys) == [1, 2, 4, 8]
        expected = int.from_bytes(hashlib.sha256(b"master0/0/0/02").digest(), "big")
        assert keys[4] == expected

    def test_deterministic(self):
        assert derive_keys("master", "0/0/0/0", 8) == derive_keys("master", "0/0/0/0", 8)

    def test_path_changes_keys(self):
        assert derive_keys("master", "0/0/0/0", 4) != derive_keys("master", "0/0/0/1", 4)

    def test_default_max_order(self):
        keys = derive_keys("master", "0/0/0/0")
        assert len(keys) == 64
        assert max(keys) == 2**63

    def test_pubkeys_match_private_keys(self):
        keys = derive_keys("master", "p", 3)
        pubs = derive_pubkeys(keys)
        for amount, k in keys.items():
            assert pubs[amount] == encode_point(k * G)


class TestKeysetId:

    def test_format(self):
        pubs = derive_pubkeys(derive_keys("master", "0/0/0/0", 8))
        keyset_id = derive_keyset_id(pubs)
        assert len(keyset_id) == 16
        assert keyset_id.startswith("00")
        int(keyset_id, 16)

    def test_sorted_by_amount(self):
        pubs = derive_pubkeys(derive_keys("master", "0/0/0/0", 8))
        reordered = dict(sorted(pubs.items(), reverse=True))
        assert derive_keyset_id(pubs) == derive_keyset_id(reordered)

    def test_matches_sha256_of_concatenation(self):
        pubs = derive_pubkeys(derive_keys("m", "x", 3))
        concat = b"".join(bytes.fromhex(pubs[a]) for a in (1, 2, 4))
        assert derive_keyset_id(pubs) == "00" + hashlib.sha256(concat).hexdigest()[:14]

    def test_as_int_vector(self):
        assert keyset_id_as_int(KEYSET_ID) == 864559728

    def test_as_int_rejects_short_id(self):
        with pytest.raises(ValueError, match="too short"):
            keyset_id_as_int("00ab")

    def test_mint_keyset_new(self):
        keyset = MintKeyset.new("master", "0/0/0/0", unit="usd", max_order=8)
        assert keyset.id == derive_keyset_id(keyset.public_keys)
        assert keyset.public_keys_hex()["1"] == keyset.public_keys[1]
        assert "private_keys" not in repr(keyset)


# ==============================================================================
# Deterministic wallet secrets
# ==============================================================================


class TestDeterministicSecret:

    @pytest.fixture(scope="class")
    def ds(self):
        return DeterministicSecret.from_seed_words(SEED_WORDS)

    def test_secret_vectors(self, ds):
        expected = [
            "485875df74771877439ac06339e284c3acfcd9be7abf3bc20b516faeadfe77ae",
            "8f2b39e8e594a4056eb1e6dbb4b0c38ef13b1b2c751f64f810ec04ee35b77270",
            "bc628c79accd2364fd31511216a0fab62afd4a18ff77a20deded7b858c9860c8",
            "59284fd1650ea9fa17db2b3acf59ecd0f2d52ec3261dd4152785813ff27a33bf",
            "576c23393a8b31cc8da6688d9c9a96394ec74b40fdaf1f693a6bb84284334ea0",
        ]
        assert [s for s, _ in ds.derive_range(KEYSET_ID, 0, 5)] == expected

    def test_blinding_factor_vectors(self, ds):
        expected = [
            "ad00d431add9c673e843d4c2bf9a778a5f402b985b8da2d5550bf39cda41d679",
            "967d5232515e10b81ff226ecf5a9e2e2aff92d66ebc3edf0987eb56357fd6248",
            "b20f47bb6ae083659f3aa986bfa0435c55c6d93f687d51a01f26862d9b9a4899",
            "fb5fca398eb0b1deb955a2988b5ac77d32956155f1c002a373535211a2dfdc29",
            "5f09bfbfe27c439a597719321e061e2e40aad4a36768bb2bcc3de547c9644bf9",
        ]
        got = [r.to_bytes(32, "big").hex() for _, r in ds.derive_range(KEYSET_ID, 0, 5)]
        assert got == expected

    def test_range_is_gap_free(self, ds):
        whole = ds.derive_range(KEYSET_ID, 0, 4)
        assert ds.derive_range(KEYSET_ID, 0, 2) + ds.derive_range(KEYSET_ID, 2, 2) == whole

    def test_single_derivation_matches_range(self, ds):
        keyset_int = keyset_id_as_int(KEYSET_ID)
        secret, r = ds.derive_range(KEYSET_ID, 3, 1)[0]
        assert ds.derive_secret(keyset_int, 3) == secret
        assert ds.derive_blinding_factor(keyset_int, 3) == r

    def test_invalid_mnemonic(self):
        with pytest.raises(ValueError, match="Invalid mnemonic"):
            DeterministicSecret.from_seed_words("not a valid mnemonic phrase at all")

    def test_generate_twelve_words(self):
        words = DeterministicSecret.generate_random_seed_words()
        assert len(words.split()) == 12
        DeterministicSecret.from_seed_words(words)
