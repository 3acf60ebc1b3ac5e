"""Custom exceptions for centralized error handling."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass
class AppError(Exception):
    """Base application error."""

    code: str
    message: str
    status_code: int
    details: Any | None = None

    def __str__(self) -> str:
        return self.message


class NotFoundError(AppError):
    """Resource not found."""

    def __init__(self, message: str = "Not found", details: Any | None = None) -> None:
        super().__init__(code="not_found", message=message, status_code=404, details=details)


class ValidationError(AppError):
    """Input validation error."""

    def __init__(self, message: str = "Validation error", details: Any | None = None) -> None:
        super().__init__(code="validation_error", message=message, status_code=400, details=details)


class ConflictError(AppError):
    """Conflict (e.g., unique constraint)."""

    def __init__(self, message: str = "Conflict", details: Any | None = None) -> None:
        super().__init__(code="conflict", message=message, status_code=409, details=details)


# Lottery protocol failures. Each aborts the operation with no state change.


class InvalidPaymentError(AppError):
    def __init__(self, message: str = "Invalid payment", details: Any | None = None) -> None:
        super().__init__(code="invalid_payment", message=message, status_code=400, details=details)


class TicketAlreadyActiveError(AppError):
    def __init__(self, message: str = "Active ticket in progress", details: Any | None = None) -> None:
        super().__init__(code="ticket_already_active", message=message, status_code=409, details=details)


class NoActiveTicketError(AppError):
    def __init__(self, message: str = "No active ticket", details: Any | None = None) -> None:
        super().__init__(code="no_active_ticket", message=message, status_code=409, details=details)


class ProofInvalidError(AppError):
    def __init__(self, message: str = "Invalid input proof", details: Any | None = None) -> None:
        super().__init__(code="proof_invalid", message=message, status_code=400, details=details)


class NotOwnerError(AppError):
    def __init__(self, message: str = "Only owner", details: Any | None = None) -> None:
        super().__init__(code="not_owner", message=message, status_code=403, details=details)


class InvalidRecipientError(AppError):
    def __init__(self, message: str = "Invalid recipient", details: Any | None = None) -> None:
        super().__init__(code="invalid_recipient", message=message, status_code=400, details=details)


class InsufficientBalanceError(AppError):
    def __init__(self, message: str = "Insufficient balance", details: Any | None = None) -> None:
        super().__init__(code="insufficient_balance", message=message, status_code=409, details=details)


class TransferFailedError(AppError):
    def __init__(self, message: str = "Transfer failed", details: Any | None = None) -> None:
        super().__init__(code="transfer_failed", message=message, status_code=502, details=details)


# Ciphertext backend and relayer failures.


class CiphertextAccessDenied(AppError):
    """The contract used or granted a handle it holds no capability on."""

    def __init__(self, message: str = "Ciphertext access denied", details: Any | None = None) -> None:
        super().__init__(code="acl_denied", message=message, status_code=403, details=details)


class DecryptionRejectedError(AppError):
    """User decryption request refused by the relayer."""

    def __init__(self, message: str = "Decryption request rejected", details: Any | None = None) -> None:
        super().__init__(code="decryption_rejected", message=message, status_code=403, details=details)


# Request authentication and commit failures.


class AuthenticationError(AppError):
    """Missing, invalid, stale or replayed request signature."""

    def __init__(self, message: str = "Request signature required", details: Any | None = None) -> None:
        super().__init__(code="unauthenticated", message=message, status_code=401, details=details)


class CallerMismatchError(AppError):
    def __init__(self, message: str = "Caller address does not match signing key", details: Any | None = None) -> None:
        super().__init__(code="caller_mismatch", message=message, status_code=403, details=details)


class CommitFailedError(AppError):
    def __init__(self, message: str = "Transaction could not be committed", details: Any | None = None) -> None:
        super().__init__(code="commit_failed", message=message, status_code=503, details=details)
