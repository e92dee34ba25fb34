"""
monexo.wallet: wallet-side protocol, local store and mint client.
"""

from monexo.wallet.client import HttpMintClient
from monexo.wallet.localstore import SqliteLocalStore, WalletKeyset
from monexo.wallet.wallet import Wallet

__all__ = [
    "Wallet",
    "WalletKeyset",
    "SqliteLocalStore",
    "HttpMintClient",
]
