from fastapi import HTTPException
from pydantic import BaseModel
from typing import Optional

from .scoring.errors import ScoringError, UndoUnavailable


class ProblemDetail(BaseModel):
    """RFC 7807 compliant error response."""

    type: str = "about:blank"
    title: str
    detail: Optional[str] = None
    status: int
    instance: Optional[str] = None
    code: str


class DomainException(Exception):
    """Base class for domain-specific exceptions."""

    def __init__(
        self,
        status_code: int,
        title: str,
        *,
        code: str,
        detail: str | None = None,
        type_: str = "about:blank",
    ) -> None:
        self.status_code = status_code
        self.title = title
        self.detail = detail
        self.type = type_
        self.code = code


class ScoringRejected(DomainException):
    """A scoring engine refused the transition; the match is unchanged."""

    def __init__(self, error: ScoringError) -> None:
        # Undo conflicts with the current history; everything else is a bad request.
        status_code = 409 if isinstance(error, UndoUnavailable) else 422
        super().__init__(
            status_code=status_code,
            title="Scoring event rejected",
            detail=error.detail,
            code=error.code,
        )


class MatchStoreUnavailable(DomainException):
    def __init__(self, detail: str) -> None:
        super().__init__(
            status_code=503,
            title="Match store unavailable",
            detail=detail,
            code="match_store_unavailable",
        )


def http_problem(
    status_code: int,
    detail: str,
    code: str,
    *,
    headers: Optional[dict[str, str]] = None,
) -> HTTPException:
    """Create an HTTPException with an attached problem code."""

    exc = HTTPException(status_code=status_code, detail=detail, headers=headers)
    setattr(exc, "code", code)
    return exc
