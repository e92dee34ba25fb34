"""
monexo.mint: mint-side protocol, persistence and settlement.
"""

from monexo.mint.config import ConfigError, KeysetConfig, MintConfig, MintInfoConfig, OnchainConfig
from monexo.mint.database import DatabaseError, SqliteDatabase
from monexo.mint.mint import Mint
from monexo.mint.settlement import HttpSettlementOracle, InMemorySettlementOracle, SettlementOracle

__all__ = [
    "Mint",
    "MintConfig",
    "KeysetConfig",
    "OnchainConfig",
    "MintInfoConfig",
    "ConfigError",
    "SqliteDatabase",
    "DatabaseError",
    "SettlementOracle",
    "InMemorySettlementOracle",
    "HttpSettlementOracle",
]
