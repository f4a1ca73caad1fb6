"""
Runtime Configuration

Central configuration for the airdrop engine: ledger encoding, program
identity, account deposit parameters and logging.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from dotenv import load_dotenv

from core.ledger.base import MAX_CLAIMS, LedgerKind
from core.ledger.residue import DEFAULT_MODULI, validate_moduli

load_dotenv()


DEFAULT_PROGRAM_ID = "0x" + "2f" * 32


@dataclass
class LedgerConfig:
    """Configuration for the claimed-set ledger."""
    kind: str = "residue"
    moduli: tuple[int, ...] = DEFAULT_MODULI
    max_claims: int = MAX_CLAIMS

    def __post_init__(self):
        self.moduli = tuple(int(m) for m in self.moduli)
        if self.max_claims <= 0 or self.max_claims > MAX_CLAIMS:
            raise ValueError(f"max_claims must be in [1, {MAX_CLAIMS}], got {self.max_claims}")
        if self.ledger_kind is LedgerKind.RESIDUE:
            validate_moduli(self.moduli, self.max_claims)

    @property
    def ledger_kind(self) -> LedgerKind:
        return LedgerKind.from_name(self.kind)


@dataclass
class RentConfig:
    """Deposit charged for account storage."""
    lamports_per_byte: int = 3480
    exemption_multiplier: int = 2
    account_overhead: int = 128

    def minimum_balance(self, data_len: int) -> int:
        return (self.account_overhead + data_len) * self.lamports_per_byte * self.exemption_multiplier


@dataclass
class ProgramConfig:
    """Identity of the airdrop program; derived addresses depend on it."""
    program_id: str = DEFAULT_PROGRAM_ID


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class EngineConfig:
    """
    Complete configuration for the airdrop engine.

    Can be loaded from:
    - Environment variables
    - YAML file
    - Programmatic construction
    """
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    rent: RentConfig = field(default_factory=RentConfig)
    program: ProgramConfig = field(default_factory=ProgramConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides() -> dict[str, Any]:
        """
        Get configuration overrides from environment variables.

        This is the SINGLE source of truth for all env var reading.

        Supported variables:
        - AIRDROP_LEDGER_KIND: residue or bitset
        - AIRDROP_MAX_CLAIMS: upper bound on total_claims
        - AIRDROP_PROGRAM_ID: 0x-hex program identity
        - AIRDROP_LAMPORTS_PER_BYTE: deposit rate per stored byte
        - AIRDROP_LOG_LEVEL: log level
        """
        overrides: dict[str, Any] = {}

        if os.getenv("AIRDROP_LEDGER_KIND"):
            overrides.setdefault("ledger", {})["kind"] = os.getenv("AIRDROP_LEDGER_KIND")
        if os.getenv("AIRDROP_MAX_CLAIMS"):
            overrides.setdefault("ledger", {})["max_claims"] = int(os.getenv("AIRDROP_MAX_CLAIMS", "0"))

        if os.getenv("AIRDROP_PROGRAM_ID"):
            overrides.setdefault("program", {})["program_id"] = os.getenv("AIRDROP_PROGRAM_ID")

        if os.getenv("AIRDROP_LAMPORTS_PER_BYTE"):
            overrides.setdefault("rent", {})["lamports_per_byte"] = int(
                os.getenv("AIRDROP_LAMPORTS_PER_BYTE", "0")
            )

        if os.getenv("AIRDROP_LOG_LEVEL"):
            overrides.setdefault("logging", {})["level"] = os.getenv("AIRDROP_LOG_LEVEL")

        return overrides

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Load configuration purely from environment variables."""
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "EngineConfig":
        """Load configuration from a YAML file; env vars override file values."""
        import yaml
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        for section, values in cls._get_env_overrides().items():
            if isinstance(values, dict):
                data.setdefault(section, {}).update(values)
            else:
                data[section] = values

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EngineConfig":
        """Load configuration from a dictionary (supports partial data)."""
        ledger_data = data.get("ledger", {}) or {}
        rent_data = data.get("rent", {}) or {}
        program_data = data.get("program", {}) or {}
        logging_data = data.get("logging", {}) or {}

        known = {"ledger", "rent", "program", "logging"}
        return cls(
            ledger=LedgerConfig(**ledger_data),
            rent=RentConfig(**rent_data),
            program=ProgramConfig(**program_data),
            logging=LoggingConfig(**logging_data),
            extra={k: v for k, v in data.items() if k not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "ledger": {
                "kind": self.ledger.kind,
                "moduli": list(self.ledger.moduli),
                "max_claims": self.ledger.max_claims,
            },
            "rent": {
                "lamports_per_byte": self.rent.lamports_per_byte,
                "exemption_multiplier": self.rent.exemption_multiplier,
                "account_overhead": self.rent.account_overhead,
            },
            "program": {"program_id": self.program.program_id},
            "logging": {"level": self.logging.level, "log_file": self.logging.log_file},
        }

    def configure_logging(self) -> None:
        """Apply the `logging` section to the root logger."""
        setup_logging(self.logging.level, self.logging.log_file)


def setup_logging(level: str = "INFO", log_file: str | None = None) -> None:
    """Configure root logging for tooling that embeds the engine."""
    log_level = getattr(logging, level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=handlers,
        force=True,
    )
