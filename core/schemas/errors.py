"""
Module 01 - Schemas & Canonicalization
File: errors.py

Purpose: Standard error taxonomy for the airdrop engine.
Defines both Pydantic models for structured error communication
and Python exceptions for control flow.

Every rejected operation surfaces exactly one of these conditions; none
of them is retried by the engine.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Error Codes (Machine-Readable Constants)
# =============================================================================

class ErrorCodes:
    """Stable machine-readable error codes. Each condition has its own code."""

    # Schema & Serialization Errors
    SCHEMA_VALIDATION_ERROR = "SCHEMA_VALIDATION_ERROR"
    CANONICALIZATION_ERROR = "CANONICALIZATION_ERROR"
    STATE_LAYOUT_INVALID = "STATE_LAYOUT_INVALID"

    # Authority
    UNAUTHORIZED = "UNAUTHORIZED"

    # Claim Errors
    INVALID_PROOF = "INVALID_PROOF"
    ALREADY_CLAIMED = "ALREADY_CLAIMED"
    INDEX_OUT_OF_RANGE = "INDEX_OUT_OF_RANGE"

    # Time & Window Errors
    CLAIM_WINDOW_NOT_STARTED = "CLAIM_WINDOW_NOT_STARTED"
    CLAIM_WINDOW_CLOSED = "CLAIM_WINDOW_CLOSED"
    CLAIM_CLOSED = "CLAIM_CLOSED"
    INVALID_DURATION = "INVALID_DURATION"

    # Lifecycle Errors
    ALREADY_INITIALIZED = "ALREADY_INITIALIZED"
    NOT_INITIALIZED = "NOT_INITIALIZED"
    STATE_RETIRED = "STATE_RETIRED"
    INVALID_TOTAL_CLAIMS = "INVALID_TOTAL_CLAIMS"

    # Runtime & Custody Errors
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    CUSTODY_TRANSFER_FAILED = "CUSTODY_TRANSFER_FAILED"


# =============================================================================
# Pydantic Error Models (Structured Communication)
# =============================================================================

class AirdropError(BaseModel):
    """
    Base error model for structured error communication.

    Used when an error has to cross a boundary as data (logs, reports)
    rather than as a raised exception.
    """

    model_config = ConfigDict(
        extra="forbid",
        frozen=False,
        validate_assignment=True,
    )

    code: str = Field(
        ...,
        description="Stable machine-readable error code",
        examples=[ErrorCodes.ALREADY_CLAIMED],
    )
    message: str = Field(
        ...,
        description="Human-readable error message",
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional structured details about the error",
    )
    retryable: bool = Field(
        default=False,
        description="Whether the operation can be retried",
    )

    def to_exception(self) -> "AirdropException":
        """Convert this error model to the matching exception."""
        exc_type = EXCEPTIONS_BY_CODE.get(self.code)
        if exc_type is None:
            return AirdropException(
                message=self.message,
                code=self.code,
                details=self.details,
                retryable=self.retryable,
            )
        return exc_type(message=self.message, details=dict(self.details))


# =============================================================================
# Python Exceptions (Control Flow)
# =============================================================================

class AirdropException(Exception):
    """
    Base exception for all airdrop engine errors.

    This exception carries structured error information and can be
    converted to/from AirdropError models.
    """

    code_default: str = "AIRDROP_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.code = code or self.code_default
        self.message = message
        self.details = details or {}
        self.retryable = retryable

    def to_error_model(self) -> AirdropError:
        """Convert this exception to an AirdropError model."""
        return AirdropError(
            code=self.code,
            message=self.message,
            details=self.details,
            retryable=self.retryable,
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


class CanonicalizationException(AirdropException):
    """Exception raised when canonical serialization fails."""
    code_default = ErrorCodes.CANONICALIZATION_ERROR


class SchemaValidationException(AirdropException):
    """Exception raised when request validation fails."""

    code_default = ErrorCodes.SCHEMA_VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        field_path: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if field_path:
            full_details["field_path"] = field_path
        super().__init__(message=message, details=full_details)


class StateLayoutException(AirdropException):
    """Persisted account bytes do not decode as an airdrop state."""
    code_default = ErrorCodes.STATE_LAYOUT_INVALID


class UnauthorizedException(AirdropException):
    """Caller is not the recorded authority."""

    code_default = ErrorCodes.UNAUTHORIZED

    def __init__(
        self,
        message: str = "Unauthorized.",
        caller: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if caller:
            full_details["caller"] = caller
        super().__init__(message=message, details=full_details)


class _IndexedClaimException(AirdropException):
    def __init__(
        self,
        message: str,
        index: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if index is not None:
            full_details["index"] = index
        super().__init__(message=message, details=full_details)


class InvalidProofException(_IndexedClaimException):
    """Reconstructed root does not match the stored root."""
    code_default = ErrorCodes.INVALID_PROOF


class AlreadyClaimedException(_IndexedClaimException):
    """Index has already claimed."""
    code_default = ErrorCodes.ALREADY_CLAIMED


class IndexOutOfRangeException(_IndexedClaimException):
    """Index is not below the declared claim count."""
    code_default = ErrorCodes.INDEX_OUT_OF_RANGE


class _WindowException(AirdropException):
    def __init__(
        self,
        message: str,
        now: int | None = None,
        start: int | None = None,
        end: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        full_details = details or {}
        if now is not None:
            full_details["now"] = now
        if start is not None:
            full_details["start"] = start
        if end is not None:
            full_details["end"] = end
        super().__init__(message=message, details=full_details)


class ClaimWindowNotStartedException(_WindowException):
    """Current time is before the claim window start."""
    code_default = ErrorCodes.CLAIM_WINDOW_NOT_STARTED


class ClaimWindowClosedException(_WindowException):
    """Current time is at or after the claim window end."""
    code_default = ErrorCodes.CLAIM_WINDOW_CLOSED


class ClaimClosedException(AirdropException):
    """The airdrop has been permanently closed."""
    code_default = ErrorCodes.CLAIM_CLOSED


class InvalidDurationException(AirdropException):
    """Claim window duration must be positive."""
    code_default = ErrorCodes.INVALID_DURATION


class InvalidTotalClaimsException(AirdropException):
    """Declared claim count exceeds what the ledger supports."""
    code_default = ErrorCodes.INVALID_TOTAL_CLAIMS


class AlreadyInitializedException(AirdropException):
    """State already exists at this address."""
    code_default = ErrorCodes.ALREADY_INITIALIZED


class NotInitializedException(AirdropException):
    """No state exists at this address."""
    code_default = ErrorCodes.NOT_INITIALIZED


class StateRetiredException(AirdropException):
    """The address belonged to a state that has been closed and cannot be reused."""
    code_default = ErrorCodes.STATE_RETIRED


class InsufficientFundsException(AirdropException):
    """Payer cannot cover a deposit or a token balance is too low."""
    code_default = ErrorCodes.INSUFFICIENT_FUNDS


class CustodyException(AirdropException):
    """The vault transfer could not be executed."""
    code_default = ErrorCodes.CUSTODY_TRANSFER_FAILED


EXCEPTIONS_BY_CODE: dict[str, type[AirdropException]] = {
    cls.code_default: cls
    for cls in (
        CanonicalizationException,
        SchemaValidationException,
        StateLayoutException,
        UnauthorizedException,
        InvalidProofException,
        AlreadyClaimedException,
        IndexOutOfRangeException,
        ClaimWindowNotStartedException,
        ClaimWindowClosedException,
        ClaimClosedException,
        InvalidDurationException,
        InvalidTotalClaimsException,
        AlreadyInitializedException,
        NotInitializedException,
        StateRetiredException,
        InsufficientFundsException,
        CustodyException,
    )
}
