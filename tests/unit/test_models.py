"""
Unit tests for monexo.core.models and monexo.core.token.
"""

import base64
import json

import pytest

from monexo.core.errors import NotEnoughTokens, TokenDecodeError
from monexo.core.models import CurrencyUnit, Proof, Proofs
from monexo.core.token import TOKEN_PREFIX, TokenV3
from monexo.crypto.secp import encode_point, hash_to_curve

C_HEX = "0279be667ef9dcbbac55a06295ce870b07029bfcdb2dce28d959f2815b16f81798"


def _proof(amount, secret=None, keyset_id="00aabbccddeeff00"):
    return Proof(amount=amount, id=keyset_id, secret=secret or f"secret-{amount}", C=C_HEX)


@pytest.fixture
def proofs():
    return Proofs([_proof(4), _proof(16), _proof(8), _proof(32, keyset_id="00ffffffffffffff")])


# ==============================================================================
# Proof / Proofs
# ==============================================================================


class TestProof:

    def test_y_is_hash_to_curve_of_secret(self):
        p = _proof(1, secret="abc")
        assert p.y == encode_point(hash_to_curve(b"abc"))

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            Proof(amount=-1, id="00aa", secret="s", C=C_HEX)

    def test_secret_must_be_utf8(self):
        with pytest.raises(ValueError):
            Proof(amount=1, id="00aa", secret="\ud800", C=C_HEX)

    def test_to_wire_drops_empty_script(self):
        wire = _proof(2).to_wire()
        assert "script" not in wire
        assert wire["amount"] == 2


class TestProofs:

    def test_total_amount(self, proofs):
        assert proofs.total_amount() == 60
        assert Proofs().total_amount() == 0

    def test_len_iter_getitem(self, proofs):
        assert len(proofs) == 4
        assert [p.amount for p in proofs] == [4, 16, 8, 32]
        assert proofs[1].amount == 16

    def test_by_keyset(self, proofs):
        assert proofs.proofs_by_keyset("00aabbccddeeff00").total_amount() == 28
        assert len(proofs.proofs_by_keyset("00ffffffffffffff")) == 1

    def test_for_amount_largest_first(self, proofs):
        selected = proofs.proofs_for_amount(20)
        assert [p.amount for p in selected] == [32]

    def test_for_amount_accumulates(self, proofs):
        selected = proofs.proofs_for_amount(50)
        assert [p.amount for p in selected] == [32, 16, 8]

    def test_for_amount_insufficient(self, proofs):
        with pytest.raises(NotEnoughTokens):
            proofs.proofs_for_amount(61)

    def test_equality(self):
        assert Proofs([_proof(1)]) == Proofs([_proof(1)])
        assert Proofs([_proof(1)]) != Proofs([_proof(2)])

    def test_secrets_and_ys(self, proofs):
        assert proofs.secrets() == ["secret-4", "secret-16", "secret-8", "secret-32"]
        assert proofs.ys()[0] == proofs[0].y


# ==============================================================================
# Token serialization
# ==============================================================================


class TestToken:

    def test_serialize_prefix_and_no_padding(self, proofs):
        token = TokenV3.from_proofs("http://mint.local", proofs, memo="thanks")
        encoded = token.serialize()
        assert encoded.startswith(TOKEN_PREFIX)
        assert "=" not in encoded
        assert str(token) == encoded

    def test_roundtrip_preserves_fields(self, proofs):
        token = TokenV3.from_proofs("http://mint.local", proofs, unit=CurrencyUnit.USD, memo="m")
        decoded = TokenV3.deserialize(token.serialize())
        assert decoded.mint == "http://mint.local"
        assert decoded.unit == CurrencyUnit.USD
        assert decoded.memo == "m"
        assert decoded.proofs == proofs
        assert decoded.total_amount() == 60

    def test_json_layout(self, proofs):
        encoded = TokenV3.from_proofs("http://m", proofs).serialize()
        body = encoded[len(TOKEN_PREFIX):]
        obj = json.loads(base64.urlsafe_b64decode(body + "=" * (-len(body) % 4)))
        assert obj["unit"] == "usd"
        assert obj["token"][0]["mint"] == "http://m"
        assert obj["token"][0]["proofs"][0] == {
            "amount": 4, "id": "00aabbccddeeff00", "secret": "secret-4", "C": C_HEX,
        }

    def test_decode_accepts_padding(self, proofs):
        encoded = TokenV3.from_proofs(None, proofs).serialize()
        body = encoded[len(TOKEN_PREFIX):]
        padded = TOKEN_PREFIX + body + "=" * (-len(body) % 4)
        assert TokenV3.deserialize(padded).proofs == proofs

    def test_wrong_prefix(self):
        with pytest.raises(TokenDecodeError, match="start with"):
            TokenV3.deserialize("cashuB" + "e30")

    def test_bad_base64(self):
        with pytest.raises(TokenDecodeError):
            TokenV3.deserialize(TOKEN_PREFIX + "a")

    def test_bad_json(self):
        body = base64.urlsafe_b64encode(b"not json").decode().rstrip("=")
        with pytest.raises(TokenDecodeError):
            TokenV3.deserialize(TOKEN_PREFIX + body)

    def test_bad_fields(self):
        body = base64.urlsafe_b64encode(b'{"token": "nope"}').decode().rstrip("=")
        with pytest.raises(TokenDecodeError):
            TokenV3.deserialize(TOKEN_PREFIX + body)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            TokenV3.deserialize("garbage")
