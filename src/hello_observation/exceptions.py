"""Exception hierarchy for hello-observation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .observation import ObservationContext
    from .problems import ProblemDetail


class HelloObservationError(Exception):
    """Root exception for the entire hello-observation package."""


class ValidationError(HelloObservationError):
    """Raised when caller-supplied input is rejected.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """All messages joined into one human-readable line."""
        return "; ".join(
            message for messages in self.errors.values() for message in messages
        )


class InvalidStateError(HelloObservationError):
    """Raised when an observation is used outside its lifecycle rules.

    Usage: tagging a context after it started, or starting/stopping it twice.
    """


class ObservationHandlerError(HelloObservationError):
    """An observation handler failed while being notified.

    Never raised to the caller of the observed work: the registry logs it
    and carries on with the remaining handlers.
    """

    def __init__(
        self,
        handler: object,
        phase: str,
        context: ObservationContext,
        cause: Exception,
    ) -> None:
        self.handler = handler
        self.phase = phase
        self.context = context
        self.cause = cause
        super().__init__(
            f"{type(handler).__name__} failed on {phase} of "
            f"observation {context.name!r}: {cause!r}"
        )


class ConfigurationError(HelloObservationError):
    """Raised when configuration values cannot be parsed."""


class GreetingClientError(HelloObservationError):
    """A remote greeting call returned an error response."""

    def __init__(self, status: int, problem: ProblemDetail | None = None) -> None:
        self.status = status
        self.problem = problem
        detail = problem.detail if problem is not None else "no problem detail"
        super().__init__(f"Greeting call failed with status {status}: {detail}")
