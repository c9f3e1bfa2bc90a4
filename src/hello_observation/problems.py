"""Problem details: translate caught errors into client-facing payloads."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from .exceptions import ValidationError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

logger = logging.getLogger("hello_observation.problems")

PROBLEM_JSON_MEDIA_TYPE = "application/problem+json"

GENERIC_TITLE = "Internal Server Error"
GENERIC_DETAIL = "An unexpected error occurred."


class ProblemDetail(BaseModel):
    """Wire payload for a failed request: ``{status, title, detail, attributes}``."""

    model_config = ConfigDict(frozen=True)

    status: int
    title: str
    detail: str
    attributes: dict[str, str] = Field(default_factory=dict)


@dataclass(frozen=True)
class ErrorMapping:
    """How one error kind is presented to clients.

    Attributes:
        status: HTTP-style status code.
        title: Fixed title for this error kind.
        detail: Builds the client-visible detail from the error; the error's
            message when omitted.
    """

    status: int
    title: str
    detail: Callable[[BaseException], str] | None = None

    def render_detail(self, error: BaseException) -> str:
        if self.detail is not None:
            return self.detail(error)
        if isinstance(error, ValidationError):
            return error.message
        return str(error)


class ErrorTranslator:
    """Maps caught errors to :class:`ProblemDetail` payloads.

    Mappings are looked up along the error's MRO, so a subclass uses its
    nearest mapped base. Unmapped errors become a 500 with a generic title
    and detail; the original error is logged with its traceback and never
    echoed to the client.
    """

    def __init__(
        self,
        mappings: Mapping[type[BaseException], ErrorMapping] | None = None,
        *,
        generic_title: str = GENERIC_TITLE,
        generic_detail: str = GENERIC_DETAIL,
    ) -> None:
        self._mappings: dict[type[BaseException], ErrorMapping] = dict(mappings or {})
        self.generic_title = generic_title
        self.generic_detail = generic_detail

    def register(
        self,
        error_type: type[BaseException],
        status: int,
        title: str,
        *,
        detail: Callable[[BaseException], str] | None = None,
    ) -> None:
        self._mappings[error_type] = ErrorMapping(status, title, detail)

    def lookup(self, error: BaseException) -> ErrorMapping | None:
        for klass in type(error).__mro__:
            mapping = self._mappings.get(klass)
            if mapping is not None:
                return mapping
        return None

    def translate(
        self,
        error: BaseException,
        request_attributes: Mapping[str, Any] | None = None,
    ) -> ProblemDetail:
        attributes = {
            str(key): str(value) for key, value in (request_attributes or {}).items()
        }
        mapping = self.lookup(error)
        if mapping is None:
            logger.error(
                "Unhandled %s with attributes %s",
                type(error).__name__,
                attributes,
                exc_info=error,
            )
            return ProblemDetail(
                status=500,
                title=self.generic_title,
                detail=self.generic_detail,
                attributes=attributes,
            )
        logger.info(
            "Rejected request with %s (%s): %s",
            mapping.status,
            type(error).__name__,
            error,
        )
        return ProblemDetail(
            status=mapping.status,
            title=mapping.title,
            detail=mapping.render_detail(error),
            attributes=attributes,
        )


def default_translator() -> ErrorTranslator:
    """Translator with the package's client-error mappings."""
    return ErrorTranslator({ValidationError: ErrorMapping(400, "Invalid request")})


def translate(
    error: BaseException,
    request_attributes: Mapping[str, Any] | None = None,
) -> ProblemDetail:
    """Translate with :func:`default_translator`."""
    return _DEFAULT.translate(error, request_attributes)


_DEFAULT = default_translator()
