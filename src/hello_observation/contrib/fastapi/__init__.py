"""FastAPI integration: observation middleware, problem details, demo app."""

from __future__ import annotations

from .app import create_app
from .middleware import (
    ObservationMiddleware,
    install_problem_details,
    problem_response,
    request_attributes,
)

__all__ = [
    "ObservationMiddleware",
    "create_app",
    "install_problem_details",
    "problem_response",
    "request_attributes",
]
