"""Exception types for BouncerLink."""


class BouncerLinkError(Exception):
    """Base class for all BouncerLink errors."""


class InvalidLinkError(BouncerLinkError, ValueError):
    """Raised when link input fails validation."""


class CodeConflictError(BouncerLinkError, ValueError):
    """Raised when a short code is already taken."""

    def __init__(self, short_code: str):
        super().__init__(f"Short code '{short_code}' already exists")
        self.short_code = short_code


class StoreUnavailableError(BouncerLinkError):
    """Raised when the backing store cannot be reached.

    This is a transient failure and callers may retry. It must never be
    reported to clients as a missing link.
    """
