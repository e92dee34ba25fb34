"""
Unit tests for monexo.crypto.dhke: blind signatures and DLEQ proofs.
"""

import pytest

from monexo.crypto.dhke import (
    DleqProof,
    generate_dleq,
    step1_blind,
    step2_sign,
    step3_unblind,
    verify,
    verify_dleq,
)
from monexo.crypto.secp import G, SECP256K1_N, encode_point, hash_to_curve, random_scalar


@pytest.fixture
def keypair():
    k = random_scalar()
    return k, k * G


# ==============================================================================
# BDHKE round trip
# ==============================================================================


class TestBlindSignature:

    def test_step1_with_r_one_is_y_plus_g(self):
        B_ = step1_blind(b"test_message", 1)
        assert encode_point(B_) == encode_point(hash_to_curve(b"test_message") + G)

    def test_roundtrip_recovers_k_times_y(self, keypair):
        k, K = keypair
        secret = b"roundtrip secret"
        r = random_scalar()
        C = step3_unblind(step2_sign(step1_blind(secret, r), k), r, K)
        assert encode_point(C) == encode_point(k * hash_to_curve(secret))
        assert verify(k, C, secret)

    def test_many_roundtrips(self, keypair):
        k, K = keypair
        for i in range(5):
            secret = f"secret-{i}".encode()
            r = random_scalar()
            C = step3_unblind(step2_sign(step1_blind(secret, r), k), r, K)
            assert verify(k, C, secret)

    def test_tampered_secret_fails(self, keypair):
        k, K = keypair
        r = random_scalar()
        C = step3_unblind(step2_sign(step1_blind(b"original", r), k), r, K)
        assert not verify(k, C, b"tampered")

    def test_wrong_blinding_factor_fails(self, keypair):
        k, K = keypair
        r = random_scalar()
        C = step3_unblind(step2_sign(step1_blind(b"secret", r), k), (r + 1) % SECP256K1_N, K)
        assert not verify(k, C, b"secret")

    def test_wrong_key_fails(self, keypair):
        k, K = keypair
        r = random_scalar()
        C = step3_unblind(step2_sign(step1_blind(b"secret", r), k), r, K)
        assert not verify((k + 1) % SECP256K1_N, C, b"secret")

    def test_signed_by_other_key_fails(self, keypair):
        k, K = keypair
        other = random_scalar()
        r = random_scalar()
        C = step3_unblind(step2_sign(step1_blind(b"secret", r), other), r, K)
        assert not verify(k, C, b"secret")

    def test_blinding_hides_y(self):
        secret = b"hidden"
        B1 = step1_blind(secret, random_scalar())
        B2 = step1_blind(secret, random_scalar())
        assert encode_point(B1) != encode_point(B2)

    def test_invalid_blinding_factor(self):
        with pytest.raises(ValueError, match="blinding factor"):
            step1_blind(b"x", 0)

    def test_invalid_signing_key(self):
        with pytest.raises(ValueError, match="signing key"):
            step2_sign(G, SECP256K1_N)


# ==============================================================================
# DLEQ
# ==============================================================================


class TestDleq:

    def test_valid_proof_verifies(self, keypair):
        k, K = keypair
        B_ = step1_blind(b"dleq", random_scalar())
        C_ = step2_sign(B_, k)
        proof = generate_dleq(B_, C_, k)
        assert verify_dleq(proof, B_, C_, K)

    def test_fixed_nonce_is_deterministic(self, keypair):
        k, _ = keypair
        B_ = step1_blind(b"dleq", 7)
        C_ = step2_sign(B_, k)
        assert generate_dleq(B_, C_, k, nonce=42) == generate_dleq(B_, C_, k, nonce=42)

    def test_other_key_fails(self, keypair):
        k, _ = keypair
        other = random_scalar()
        B_ = step1_blind(b"dleq", random_scalar())
        C_ = step2_sign(B_, k)
        proof = generate_dleq(B_, C_, k)
        assert not verify_dleq(proof, B_, C_, other * G)

    def test_proof_under_other_key_fails(self, keypair):
        k, K = keypair
        other = random_scalar()
        B_ = step1_blind(b"dleq", random_scalar())
        C_ = step2_sign(B_, other)
        proof = generate_dleq(B_, C_, other)
        assert not verify_dleq(proof, B_, C_, K)

    def test_tampered_s_fails(self, keypair):
        k, K = keypair
        B_ = step1_blind(b"dleq", random_scalar())
        C_ = step2_sign(B_, k)
        proof = generate_dleq(B_, C_, k)
        bad = DleqProof(e=proof.e, s=(proof.s + 1) % SECP256K1_N)
        assert not verify_dleq(bad, B_, C_, K)

    def test_swapped_signature_fails(self, keypair):
        k, K = keypair
        B1 = step1_blind(b"one", random_scalar())
        B2 = step1_blind(b"two", random_scalar())
        proof = generate_dleq(B1, step2_sign(B1, k), k)
        assert not verify_dleq(proof, B2, step2_sign(B2, k), K)

    def test_hex_roundtrip(self, keypair):
        k, K = keypair
        B_ = step1_blind(b"hex", random_scalar())
        C_ = step2_sign(B_, k)
        e, s = generate_dleq(B_, C_, k).to_hex()
        assert len(e) == 64 and len(s) == 64
        assert verify_dleq(DleqProof.from_hex(e, s), B_, C_, K)
