"""
monexo: Chaumian e-cash mint and wallet over secp256k1 blind signatures.

Usage:
    from monexo import Mint, MintConfig, Wallet, HttpMintClient, SqliteLocalStore
"""

from monexo.core.models import BlindedMessage, BlindedSignature, Proof, Proofs
from monexo.core.token import TokenV3
from monexo.mint.config import MintConfig
from monexo.mint.mint import Mint
from monexo.wallet.client import HttpMintClient
from monexo.wallet.localstore import SqliteLocalStore
from monexo.wallet.wallet import Wallet

__version__ = "0.1.0"
__all__ = [
    "Mint",
    "MintConfig",
    "Wallet",
    "HttpMintClient",
    "SqliteLocalStore",
    "TokenV3",
    "Proof",
    "Proofs",
    "BlindedMessage",
    "BlindedSignature",
]
