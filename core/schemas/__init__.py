"""
Module 01 - Schemas & Canonicalization
File: __init__.py

Purpose: Export the error taxonomy, canonical serialization and version
constants. Request models live in core.schemas.requests and are imported
from there directly (they depend on core.crypto, which depends on this
package).
"""

from .versioning import (
    LAYOUT_VERSION,
    SCHEMA_VERSION,
    SUPPORTED_LAYOUT_VERSIONS,
    SchemaVersion,
    UnsupportedLayoutVersionError,
    assert_supported_layout_version,
)

from .canonical import (
    CANONICAL_JSON_SEPARATORS,
    canonical_equals,
    canonicalize_value,
    dumps_canonical,
)

from .errors import (
    AirdropError,
    AirdropException,
    AlreadyClaimedException,
    AlreadyInitializedException,
    CanonicalizationException,
    ClaimClosedException,
    ClaimWindowClosedException,
    ClaimWindowNotStartedException,
    CustodyException,
    ErrorCodes,
    IndexOutOfRangeException,
    InsufficientFundsException,
    InvalidDurationException,
    InvalidProofException,
    InvalidTotalClaimsException,
    NotInitializedException,
    SchemaValidationException,
    StateLayoutException,
    StateRetiredException,
    UnauthorizedException,
)

__all__ = [
    # Versioning
    "LAYOUT_VERSION",
    "SCHEMA_VERSION",
    "SUPPORTED_LAYOUT_VERSIONS",
    "SchemaVersion",
    "UnsupportedLayoutVersionError",
    "assert_supported_layout_version",
    # Canonical
    "CANONICAL_JSON_SEPARATORS",
    "canonical_equals",
    "canonicalize_value",
    "dumps_canonical",
    # Errors
    "AirdropError",
    "AirdropException",
    "AlreadyClaimedException",
    "AlreadyInitializedException",
    "CanonicalizationException",
    "ClaimClosedException",
    "ClaimWindowClosedException",
    "ClaimWindowNotStartedException",
    "CustodyException",
    "ErrorCodes",
    "IndexOutOfRangeException",
    "InsufficientFundsException",
    "InvalidDurationException",
    "InvalidProofException",
    "InvalidTotalClaimsException",
    "NotInitializedException",
    "SchemaValidationException",
    "StateLayoutException",
    "StateRetiredException",
    "UnauthorizedException",
]
