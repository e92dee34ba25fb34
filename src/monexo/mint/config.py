"""
Mint configuration.

Configuration is plain dataclasses with defaults, validated on construction,
and loadable from ``MINT_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime

from monexo.core.models import CurrencyUnit
from monexo.crypto.keyset import DEFAULT_MAX_ORDER


class ConfigError(ValueError):
    """Raised when the mint configuration is inconsistent."""
    pass


@dataclass
class KeysetConfig:
    """
    One keyset the mint serves.

    Args:
        unit:             Currency unit of the keyset
        derivation_path:  Path mixed into key derivation; must be unique per mint
        active:           Only active keysets sign new outputs
        max_order:        Number of power-of-two denominations
        valid_from:       Optional start of the validity window
        valid_to:         Optional end of the validity window
    """
    unit: CurrencyUnit = CurrencyUnit.USD
    derivation_path: str = "0/0/0/0"
    active: bool = True
    max_order: int = DEFAULT_MAX_ORDER
    valid_from: datetime | None = None
    valid_to: datetime | None = None


@dataclass
class OnchainConfig:
    """
    Limits and fees for on-chain mint and melt quotes.

    Args:
        min_amount:            Smallest quote amount accepted
        max_amount:            Largest quote amount accepted
        fee_rate:              Fee = floor(amount * fee_rate)
        quote_expiry_seconds:  Lifetime of a fresh quote
        min_confirmations:     Passed to the settlement oracle
    """
    min_amount: int = 10_000
    max_amount: int = 1_000_000
    fee_rate: float = 0.01
    quote_expiry_seconds: int = 30 * 60
    min_confirmations: int = 1

    def __post_init__(self) -> None:
        if self.min_amount < 0 or self.max_amount < self.min_amount:
            raise ConfigError(
                f"Invalid on-chain limits: min={self.min_amount} max={self.max_amount}"
            )
        if not 0 <= self.fee_rate < 1:
            raise ConfigError(f"fee_rate must be in [0, 1), got {self.fee_rate}")
        if self.quote_expiry_seconds <= 0:
            raise ConfigError("quote_expiry_seconds must be positive")

    def fee_for(self, amount: int) -> int:
        return int(amount * self.fee_rate)


@dataclass
class MintInfoConfig:
    name: str | None = "monexo-mint"
    description: str | None = None
    description_long: str | None = None
    contact_email: str | None = None
    motd: str | None = None
    version: bool = True


@dataclass
class MintConfig:
    """
    Top-level mint configuration.

    Args:
        private_key:  Master key all keysets derive from. Never logged.
        keysets:      Keysets to serve; exactly one active keyset per unit
        onchain:      Quote limits and fees
        info:         Data for /v1/info
        db_path:      SQLite database file (":memory:" for an ephemeral mint)
    """
    private_key: str
    keysets: list[KeysetConfig] = field(default_factory=lambda: [KeysetConfig()])
    onchain: OnchainConfig = field(default_factory=OnchainConfig)
    info: MintInfoConfig = field(default_factory=MintInfoConfig)
    db_path: str = ":memory:"

    def __post_init__(self) -> None:
        if not self.private_key:
            raise ConfigError("Mint private key must not be empty")
        if not self.keysets:
            raise ConfigError("At least one keyset must be configured")

        paths = [k.derivation_path for k in self.keysets]
        if len(set(paths)) != len(paths):
            raise ConfigError(f"Duplicate derivation paths: {paths}")

        for unit in {k.unit for k in self.keysets}:
            active = [k for k in self.keysets if k.unit == unit and k.active]
            if len(active) != 1:
                raise ConfigError(
                    f"Unit {unit.value} needs exactly one active keyset, found {len(active)}"
                )

    def __repr__(self) -> str:
        return (
            f"MintConfig(private_key=<hidden>, keysets={self.keysets!r}, "
            f"onchain={self.onchain!r}, db_path={self.db_path!r})"
        )

    @classmethod
    def from_env(cls) -> "MintConfig":
        """
        Build the configuration from environment variables.

        Raises:
            ConfigError: If MINT_PRIVATE_KEY is missing or a value is invalid.
        """
        private_key = os.getenv("MINT_PRIVATE_KEY")
        if not private_key:
            raise ConfigError("MINT_PRIVATE_KEY is not set")

        keysets = [
            KeysetConfig(
                unit=CurrencyUnit.USD,
                derivation_path=os.getenv("MINT_DERIVATION_PATH", "0/0/0/0"),
            )
        ]
        ugx_path = os.getenv("MINT_UGX_DERIVATION_PATH")
        if ugx_path:
            keysets.append(KeysetConfig(unit=CurrencyUnit.UGX, derivation_path=ugx_path))

        try:
            onchain = OnchainConfig(
                min_amount=int(os.getenv("MINT_ONCHAIN_MIN_AMOUNT", "10000")),
                max_amount=int(os.getenv("MINT_ONCHAIN_MAX_AMOUNT", "1000000")),
                fee_rate=float(os.getenv("MINT_ONCHAIN_FEE_RATE", "0.01")),
                quote_expiry_seconds=int(os.getenv("MINT_QUOTE_EXPIRY_SECONDS", "1800")),
                min_confirmations=int(os.getenv("MINT_ONCHAIN_MIN_CONFIRMATIONS", "1")),
            )
        except ValueError as e:
            raise ConfigError(f"Invalid on-chain configuration: {e}") from e

        info = MintInfoConfig(
            name=os.getenv("MINT_INFO_NAME", "monexo-mint"),
            description=os.getenv("MINT_INFO_DESCRIPTION"),
            description_long=os.getenv("MINT_INFO_DESCRIPTION_LONG"),
            contact_email=os.getenv("MINT_INFO_CONTACT_EMAIL"),
            motd=os.getenv("MINT_INFO_MOTD"),
        )

        return cls(
            private_key=private_key,
            keysets=keysets,
            onchain=onchain,
            info=info,
            db_path=os.getenv("MINT_DB_PATH", ":memory:"),
        )
