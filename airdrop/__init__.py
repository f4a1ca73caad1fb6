"""
Merkle Airdrop Program

Usage:
    from airdrop import AirdropProgram, Runtime, FixedClock

    runtime = Runtime(clock=FixedClock(1_700_000_000))
    program = AirdropProgram(runtime)
"""

from .addressing import (
    associated_token_address,
    derive_program_address,
    state_address,
    vault_authority_address,
)
from .program import AirdropProgram, ClaimReceipt
from .runtime import (
    SYSTEM_PROGRAM_ID,
    Account,
    Clock,
    FixedClock,
    Runtime,
    SystemClock,
    program_id_from_config,
)
from .state import HEADER_SIZE, STATE_DISCRIMINATOR, AirdropState, Phase, WindowStatus
from .token import TOKEN_PROGRAM_ID, Mint, TokenAccount, TokenLedger, VaultCustody

__all__ = [
    # Addressing
    "derive_program_address",
    "state_address",
    "vault_authority_address",
    "associated_token_address",
    # Program
    "AirdropProgram",
    "ClaimReceipt",
    # Runtime
    "SYSTEM_PROGRAM_ID",
    "Account",
    "Clock",
    "FixedClock",
    "Runtime",
    "SystemClock",
    "program_id_from_config",
    # State
    "HEADER_SIZE",
    "STATE_DISCRIMINATOR",
    "AirdropState",
    "Phase",
    "WindowStatus",
    # Custody
    "TOKEN_PROGRAM_ID",
    "Mint",
    "TokenAccount",
    "TokenLedger",
    "VaultCustody",
]
