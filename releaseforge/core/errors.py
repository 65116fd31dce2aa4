"""Promotion error taxonomy.

Request errors are detected before anything is written and never trigger a
rollback.  Every other kind means the artifact store may already hold release
artifacts from this attempt, so the orchestrator compensates before reporting.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

HTTP_OK = 200
HTTP_BAD_REQUEST = 400
HTTP_CONFLICT = 409
HTTP_INTERNAL_ERROR = 500


class ErrorKind(str, Enum):
    """Closed set of promotion failure categories."""

    REQUEST = "request"
    PATH_MAPPING = "path_mapping"
    METADATA_REWRITE = "metadata_rewrite"
    STORAGE = "storage"
    PARITY = "parity"


class PromotionError(BaseModel):
    """A terminal promotion failure carried inside an ``Err``.

    ``cause`` holds the underlying exception, if any, so the caller sees
    the original failure after the rollback sweep.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    kind: ErrorKind
    message: str
    status_code: int = HTTP_INTERNAL_ERROR
    cause: BaseException | None = None

    @property
    def requires_rollback(self) -> bool:
        """Whether this failure can leave release artifacts behind."""
        return self.kind != ErrorKind.REQUEST

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message} ({type(self.cause).__name__}: {self.cause})"
        return self.message


class PromotionRequestError(ValueError):
    """Raised while parsing request parameters (missing mandatory value)."""


def request_error(message: str, status_code: int = HTTP_BAD_REQUEST) -> PromotionError:
    return PromotionError(kind=ErrorKind.REQUEST, message=message, status_code=status_code)


def path_mapping_error(message: str) -> PromotionError:
    return PromotionError(kind=ErrorKind.PATH_MAPPING, message=message)


def metadata_rewrite_error(message: str, cause: BaseException | None = None) -> PromotionError:
    return PromotionError(kind=ErrorKind.METADATA_REWRITE, message=message, cause=cause)


def storage_error(message: str, cause: BaseException | None = None) -> PromotionError:
    return PromotionError(kind=ErrorKind.STORAGE, message=message, cause=cause)


def parity_error(message: str) -> PromotionError:
    return PromotionError(kind=ErrorKind.PARITY, message=message)
