"""
Caller Identity

Credentials are handled upstream. The gateway that fronts this service
resolves the session and forwards the acting identity in a header:

- X-Applicant-Id: the student acting on their own applications
- X-Validator-Id: the staff reviewer acting on submissions and decisions

These dependencies only parse and validate those headers.
"""

import logging
from dataclasses import dataclass
from typing import Annotated

from fastapi import Header

from iskolar.core.exceptions import UnauthenticatedError, service_error_to_http

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallerIdentity:
    """
    An already-authenticated caller.

    Attributes:
        id: Applicant or validator identifier
        role: "applicant" or "validator"
    """

    id: int
    role: str

    def __str__(self) -> str:
        return f"{self.role}:{self.id}"


def _parse_identity(raw: str | None, header_name: str) -> int:
    if raw is None or not raw.strip():
        raise UnauthenticatedError(f"Missing {header_name} header")
    try:
        value = int(raw.strip())
    except ValueError:
        raise UnauthenticatedError(f"Malformed {header_name} header") from None
    if value <= 0:
        raise UnauthenticatedError(f"Malformed {header_name} header")
    return value


async def get_current_applicant(
    x_applicant_id: Annotated[str | None, Header()] = None,
) -> CallerIdentity:
    """
    FastAPI dependency resolving the acting applicant.

    Raises:
        HTTPException 401: If the header is missing or not a positive integer
    """
    try:
        return CallerIdentity(id=_parse_identity(x_applicant_id, "X-Applicant-Id"), role="applicant")
    except UnauthenticatedError as e:
        logger.warning(f"Rejected applicant request: {e.message}")
        raise service_error_to_http(e) from e


async def get_current_validator(
    x_validator_id: Annotated[str | None, Header()] = None,
) -> CallerIdentity:
    """
    FastAPI dependency resolving the acting staff validator.

    Raises:
        HTTPException 401: If the header is missing or not a positive integer
    """
    try:
        return CallerIdentity(id=_parse_identity(x_validator_id, "X-Validator-Id"), role="validator")
    except UnauthenticatedError as e:
        logger.warning(f"Rejected staff request: {e.message}")
        raise service_error_to_http(e) from e
