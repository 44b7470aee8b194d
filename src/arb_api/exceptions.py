"""Exception hierarchy for the Arbitrum transfer client."""

from typing import Any


class ArbProtocolError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def stage(self) -> str | None:
        """Pipeline stage that raised the error, when known."""
        return self.details.get("stage")


class ValidationError(ArbProtocolError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: Any | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.field = field
        self.value = value


class InvalidAddressError(ValidationError):
    """Raised when an account address cannot be parsed."""


class InvalidAmountError(ValidationError):
    """Raised when a transfer amount is not a positive base-unit integer."""


class SigningError(ArbProtocolError):
    """Raised when a credential or request cannot be signed. Never retried."""


class NetworkError(ArbProtocolError):
    """Raised when network/connection issues occur."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class InvalidResponseError(ArbProtocolError):
    """Raised when the node answers with a malformed or error value."""

    def __init__(
        self,
        message: str,
        endpoint: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.endpoint = endpoint


class RejectedByNodeError(ArbProtocolError):
    """Raised when the node explicitly refuses a signed payload."""

    def __init__(
        self,
        message: str,
        reason: str | None = None,
        tx_hash: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.reason = reason
        self.tx_hash = tx_hash


class NotConfirmedError(ArbProtocolError):
    """Raised when no receipt was observed in time.

    This is not a failure of the transfer: the transaction was broadcast and
    may still be included later. Check ``tx_hash`` out of band.
    """

    def __init__(
        self,
        message: str,
        tx_hash: str,
        timeout: float | None = None,
        cancelled: bool = False,
        details: dict | None = None,
    ):
        super().__init__(message, details)
        self.tx_hash = tx_hash
        self.timeout = timeout
        self.cancelled = cancelled
