"""
Unit tests for monexo.mint.config.
"""

import pytest

from monexo.core.models import CurrencyUnit
from monexo.mint.config import ConfigError, KeysetConfig, MintConfig, OnchainConfig


class TestMintConfig:

    def test_defaults(self):
        config = MintConfig(private_key="k")
        assert len(config.keysets) == 1
        assert config.keysets[0].unit == CurrencyUnit.USD
        assert config.keysets[0].max_order == 64
        assert config.db_path == ":memory:"

    def test_empty_private_key(self):
        with pytest.raises(ConfigError, match="private key"):
            MintConfig(private_key="")

    def test_duplicate_paths(self):
        with pytest.raises(ConfigError, match="Duplicate derivation paths"):
            MintConfig(
                private_key="k",
                keysets=[
                    KeysetConfig(unit=CurrencyUnit.USD),
                    KeysetConfig(unit=CurrencyUnit.UGX),
                ],
            )

    def test_two_active_keysets_for_one_unit(self):
        with pytest.raises(ConfigError, match="exactly one active"):
            MintConfig(
                private_key="k",
                keysets=[KeysetConfig(derivation_path="a"), KeysetConfig(derivation_path="b")],
            )

    def test_no_active_keyset_for_unit(self):
        with pytest.raises(ConfigError, match="exactly one active"):
            MintConfig(private_key="k", keysets=[KeysetConfig(active=False)])

    def test_repr_hides_private_key(self):
        assert "super-secret" not in repr(MintConfig(private_key="super-secret"))


class TestOnchainConfig:

    def test_fee(self):
        assert OnchainConfig(fee_rate=0.01).fee_for(10_000) == 100
        assert OnchainConfig(fee_rate=0).fee_for(10_000) == 0

    def test_invalid_limits(self):
        with pytest.raises(ConfigError):
            OnchainConfig(min_amount=10, max_amount=5)

    def test_invalid_fee_rate(self):
        with pytest.raises(ConfigError, match="fee_rate"):
            OnchainConfig(fee_rate=1.5)

    def test_invalid_expiry(self):
        with pytest.raises(ConfigError):
            OnchainConfig(quote_expiry_seconds=0)


class TestFromEnv:

    def test_requires_private_key(self, monkeypatch):
        monkeypatch.delenv("MINT_PRIVATE_KEY", raising=False)
        with pytest.raises(ConfigError, match="MINT_PRIVATE_KEY"):
            MintConfig.from_env()

    def test_reads_variables(self, monkeypatch):
        monkeypatch.setenv("MINT_PRIVATE_KEY", "env-key")
        monkeypatch.setenv("MINT_DERIVATION_PATH", "1/2/3/4")
        monkeypatch.setenv("MINT_UGX_DERIVATION_PATH", "9/9/9/9")
        monkeypatch.setenv("MINT_ONCHAIN_MIN_AMOUNT", "5")
        monkeypatch.setenv("MINT_ONCHAIN_FEE_RATE", "0.02")
        monkeypatch.setenv("MINT_INFO_NAME", "test mint")
        monkeypatch.setenv("MINT_DB_PATH", "/tmp/mint.db")

        config = MintConfig.from_env()
        assert config.private_key == "env-key"
        assert [(k.unit, k.derivation_path) for k in config.keysets] == [
            (CurrencyUnit.USD, "1/2/3/4"),
            (CurrencyUnit.UGX, "9/9/9/9"),
        ]
        assert config.onchain.min_amount == 5
        assert config.onchain.fee_rate == 0.02
        assert config.info.name == "test mint"
        assert config.db_path == "/tmp/mint.db"

    def test_invalid_number(self, monkeypatch):
        monkeypatch.setenv("MINT_PRIVATE_KEY", "env-key")
        monkeypatch.setenv("MINT_ONCHAIN_MAX_AMOUNT", "lots")
        with pytest.raises(ConfigError, match="on-chain"):
            MintConfig.from_env()
