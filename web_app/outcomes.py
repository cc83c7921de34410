"""HTTP mapping for resolution outcomes."""

from typing import Any, Dict, Tuple

from fastapi import status

from bouncerlink.resolver import Outcome, OutcomeStatus
from bouncerlink.service import describe_denial


def outcome_error(outcome: Outcome) -> Tuple[int, Dict[str, Any]]:
    """Status code and error body for a non-resolved outcome.

    Each outcome keeps its own ``error`` value so clients can tell a missing
    link from an expired, exhausted, locked or refused one.

    Args:
        outcome: A resolution outcome other than RESOLVED

    Returns:
        Tuple of (status_code, body)
    """
    if outcome.status is OutcomeStatus.NOT_FOUND:
        return status.HTTP_404_NOT_FOUND, {
            "error": outcome.status.value,
            "detail": "Link not found",
        }
    if outcome.status is OutcomeStatus.EXPIRED:
        return status.HTTP_410_GONE, {
            "error": outcome.status.value,
            "detail": "This link has expired",
        }
    if outcome.status is OutcomeStatus.QUOTA_EXCEEDED:
        return status.HTTP_410_GONE, {
            "error": outcome.status.value,
            "detail": "This link has reached its click limit",
        }
    if outcome.status is OutcomeStatus.ACCESS_CHALLENGE_REQUIRED:
        return status.HTTP_401_UNAUTHORIZED, {
            "error": outcome.status.value,
            "detail": "Credentials are required to access this link",
            "requires_access_code": outcome.requires_access_code,
            "requires_email": outcome.requires_email,
        }
    if outcome.status is OutcomeStatus.DENIED:
        return status.HTTP_403_FORBIDDEN, {
            "error": outcome.status.value,
            "reason": outcome.reason.value,
            "detail": describe_denial(outcome.reason),
        }
    raise ValueError(f"No error mapping for outcome {outcome.status}")
