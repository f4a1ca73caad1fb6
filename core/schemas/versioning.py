"""
Module 01 - Schemas & Canonicalization
File: versioning.py

Purpose: Centralize persisted-layout and event schema version constants.
This file must remain tiny and have no imports from other schema files
to avoid circular dependencies.
"""

from typing import Literal

# Current event schema version
SCHEMA_VERSION: str = "v1"

# Version byte written into every persisted airdrop state
LAYOUT_VERSION: int = 1

SchemaVersion = Literal["v1"]

SUPPORTED_LAYOUT_VERSIONS: frozenset[int] = frozenset({1})


class UnsupportedLayoutVersionError(ValueError):
    """Raised when persisted state carries a layout version this code cannot read."""

    def __init__(self, version: int, supported: frozenset[int] | None = None) -> None:
        self.version = version
        self.supported = supported or SUPPORTED_LAYOUT_VERSIONS
        super().__init__(
            f"Unsupported layout version: {version}. "
            f"Supported versions: {sorted(self.supported)}"
        )


def assert_supported_layout_version(version: int) -> None:
    """
    Validate that the given layout version is supported.

    Raises:
        UnsupportedLayoutVersionError: If the version is not supported.
    """
    if version not in SUPPORTED_LAYOUT_VERSIONS:
        raise UnsupportedLayoutVersionError(version)
