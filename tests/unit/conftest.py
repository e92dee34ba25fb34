"""
Shared fixtures: an in-memory mint, its HTTP API in-process, and wallets
talking to it through FastAPI's TestClient.
"""

import secrets

import pytest
from fastapi.testclient import TestClient

from monexo.api.server import create_app
from monexo.core.models import BlindedMessage, Proof
from monexo.crypto.dhke import step1_blind, step3_unblind
from monexo.crypto.secp import decode_point, encode_point, random_scalar
from monexo.mint.config import MintConfig, OnchainConfig
from monexo.mint.mint import Mint
from monexo.mint.settlement import InMemorySettlementOracle
from monexo.wallet.client import HttpMintClient
from monexo.wallet.localstore import SqliteLocalStore
from monexo.wallet.wallet import Wallet

TEST_MASTER_KEY = "monexo-unit-test-master-key"


@pytest.fixture
def oracle():
    return InMemorySettlementOracle()


@pytest.fixture
def config():
    return MintConfig(
        private_key=TEST_MASTER_KEY,
        onchain=OnchainConfig(min_amount=1, max_amount=1_000_000),
    )


@pytest.fixture
def mint(config, oracle):
    return Mint(config, oracle=oracle)


@pytest.fixture
def keyset_id(mint):
    return mint.active_keyset().id


@pytest.fixture
def test_client(mint):
    with TestClient(create_app(mint)) as c:
        yield c


@pytest.fixture
def mint_client(test_client):
    return HttpMintClient("http://testserver", client=test_client)


@pytest.fixture
def wallet(mint_client):
    w = Wallet.create(mint_client, SqliteLocalStore(":memory:"))
    w.add_mint_keysets()
    return w


# ------------------------------------------------------------------
# Mint-side helpers (no wallet involved)
# ------------------------------------------------------------------


def make_outputs(keyset_id, amounts):
    """Blinded outputs with fresh random secrets. Returns (outputs, secrets, rs)."""
    secrets_ = [secrets.token_hex(32) for _ in amounts]
    rs = [random_scalar() for _ in amounts]
    outputs = [
        BlindedMessage(amount=a, id=keyset_id, B_=encode_point(step1_blind(s.encode("utf-8"), r)))
        for a, s, r in zip(amounts, secrets_, rs)
    ]
    return outputs, secrets_, rs


def unblind(mint, signatures, secrets_, rs):
    proofs = []
    for sig, secret, r in zip(signatures, secrets_, rs):
        K = decode_point(mint.get_keyset(sig.id).public_keys[sig.amount])
        C = step3_unblind(decode_point(sig.C_), r, K)
        proofs.append(Proof(amount=sig.amount, id=sig.id, secret=secret, C=encode_point(C)))
    return proofs


@pytest.fixture
def issue(mint, oracle, keyset_id):
    """issue([4, 8, 16, 32]) -> list[Proof] minted through a paid quote."""

    def _issue(amounts):
        quote = mint.create_mint_quote(sum(amounts))
        oracle.mark_paid(quote.reference, quote.amount + quote.fee)
        outputs, secrets_, rs = make_outputs(keyset_id, amounts)
        signatures = mint.mint_tokens(quote.quote_id, outputs)
        return unblind(mint, signatures, secrets_, rs)

    return _issue


@pytest.fixture
def fund(oracle):
    """fund(wallet, amount): mint ``amount`` into a wallet through the API."""

    def _fund(w, amount):
        quote = w.create_mint_quote(amount)
        oracle.mark_paid(quote.reference, quote.amount + quote.fee)
        assert w.is_quote_paid(quote.quote)
        return w.mint_tokens(amount, quote.quote)

    return _fund


@pytest.fixture
def blind():
    return make_outputs


@pytest.fixture
def unblind_with(mint):
    def _unblind(signatures, secrets_, rs):
        return unblind(mint, signatures, secrets_, rs)

    return _unblind


@pytest.fixture
def master_key():
    return TEST_MASTER_KEY


@pytest.fixture
def unblind_for():
    """unblind_for(mint, signatures, secrets, rs) for mints other than the default one."""
    return unblind
