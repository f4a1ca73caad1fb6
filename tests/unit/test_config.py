"""
Configuration Unit Tests
Tests for core/config/runtime.py

Tests:
- Defaults
- from_dict with partial data
- from_env via AIRDROP_* variables
- from_yaml with env overrides
- Validation of ledger settings
"""
import logging

import pytest

from core.config import EngineConfig, setup_logging
from core.ledger import DEFAULT_MODULI, MAX_CLAIMS, LedgerKind


class TestDefaults:
    def test_defaults(self):
        config = EngineConfig()
        assert config.ledger.ledger_kind is LedgerKind.RESIDUE
        assert config.ledger.moduli == DEFAULT_MODULI
        assert config.ledger.max_claims == MAX_CLAIMS
        assert config.rent.minimum_balance(0) == 128 * 3480 * 2
        assert config.program.program_id == "0x" + "2f" * 32

    def test_to_dict_round_trip(self):
        config = EngineConfig.from_dict({"ledger": {"kind": "bitset"}, "custom": 1})
        again = EngineConfig.from_dict(config.to_dict())
        assert again.to_dict() == config.to_dict()
        assert config.extra == {"custom": 1}


class TestFromDict:
    def test_partial(self):
        config = EngineConfig.from_dict({"rent": {"lamports_per_byte": 10}})
        assert config.rent.lamports_per_byte == 10
        assert config.rent.exemption_multiplier == 2

    def test_unknown_ledger_kind(self):
        with pytest.raises(ValueError, match="Unknown ledger kind"):
            EngineConfig.from_dict({"ledger": {"kind": "bloom"}})

    def test_invalid_moduli(self):
        with pytest.raises(ValueError, match="coprime"):
            EngineConfig.from_dict({"ledger": {"moduli": [970, 310, 601]}})

    def test_max_claims_bounds(self):
        with pytest.raises(ValueError, match="max_claims"):
            EngineConfig.from_dict({"ledger": {"max_claims": MAX_CLAIMS + 1}})


class TestFromEnv:
    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("AIRDROP_LEDGER_KIND", "bitset")
        monkeypatch.setenv("AIRDROP_MAX_CLAIMS", "5000")
        monkeypatch.setenv("AIRDROP_PROGRAM_ID", "0x" + "ab" * 32)
        monkeypatch.setenv("AIRDROP_LAMPORTS_PER_BYTE", "7")
        monkeypatch.setenv("AIRDROP_LOG_LEVEL", "DEBUG")

        config = EngineConfig.from_env()

        assert config.ledger.ledger_kind is LedgerKind.BITSET
        assert config.ledger.max_claims == 5000
        assert config.program.program_id == "0x" + "ab" * 32
        assert config.rent.lamports_per_byte == 7
        assert config.logging.level == "DEBUG"

    def test_empty_env_gives_defaults(self):
        assert EngineConfig.from_env().to_dict() == EngineConfig().to_dict()


class TestFromYaml:
    def test_yaml(self, tmp_path):
        path = tmp_path / "engine.yaml"
        path.write_text(
            "ledger:\n"
            "  kind: bitset\n"
            "  max_claims: 2000\n"
            "rent:\n"
            "  lamports_per_byte: 1\n"
        )
        config = EngineConfig.from_yaml(path)
        assert config.ledger.ledger_kind is LedgerKind.BITSET
        assert config.ledger.max_claims == 2000
        assert config.rent.lamports_per_byte == 1

    def test_env_wins_over_yaml(self, tmp_path, monkeypatch):
        path = tmp_path / "engine.yaml"
        path.write_text("ledger:\n  kind: bitset\n")
        monkeypatch.setenv("AIRDROP_LEDGER_KIND", "residue")
        assert EngineConfig.from_yaml(path).ledger.ledger_kind is LedgerKind.RESIDUE

    def test_empty_yaml(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert EngineConfig.from_yaml(path).to_dict() == EngineConfig().to_dict()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            EngineConfig.from_yaml(tmp_path / "missing.yaml")


class TestSetupLogging:
    def test_level_applied(self):
        setup_logging("WARNING")
        assert logging.getLogger().level == logging.WARNING
        setup_logging("INFO")
        assert logging.getLogger().level == logging.INFO

    def test_configure_logging_from_config(self, tmp_path):
        log_file = tmp_path / "engine.log"
        config = EngineConfig.from_dict(
            {"logging": {"level": "debug", "log_file": str(log_file)}}
        )
        config.configure_logging()
        try:
            root = logging.getLogger()
            assert root.level == logging.DEBUG
            assert any(
                isinstance(h, logging.FileHandler) and h.baseFilename == str(log_file)
                for h in root.handlers
            )
        finally:
            setup_logging("INFO")
