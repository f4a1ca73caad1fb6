"""
Runtime Configuration Module

Provides configuration loading and management for the airdrop engine.
"""

from .runtime import (
    EngineConfig,
    LedgerConfig,
    LoggingConfig,
    ProgramConfig,
    RentConfig,
    setup_logging,
)

__all__ = [
    "EngineConfig",
    "LedgerConfig",
    "LoggingConfig",
    "ProgramConfig",
    "RentConfig",
    "setup_logging",
]
