"""GreetingClient: httpx client for a remote greeting service."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..correlation import propagation_headers
from ..exceptions import GreetingClientError
from ..problems import ProblemDetail
from .service import Greeting

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)


class GreetingClient:
    """Calls ``/hello/{name}`` and ``/names`` on a greeting service.

    Each request carries the ambient ``X-Correlation-ID`` and ``traceparent``
    headers. Error responses raise :class:`GreetingClientError` with the
    server's problem detail when it sent one.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8787",
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> GreetingClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def hello(self, name: str, lang: str | None = None) -> Greeting:
        params = {"lang": lang} if lang else None
        path = f"/hello/{quote(name, safe='')}"
        response = await self._get(path, params=params)
        return Greeting.model_validate(response.json())

    async def names(self) -> list[str]:
        response = await self._get("/names")
        return list(response.json())

    async def _get(self, path: str, **kwargs: Any) -> httpx.Response:
        response = await self._client.get(
            path,
            headers={"Accept": "application/json", **propagation_headers()},
            **kwargs,
        )
        if response.is_success:
            return response
        raise GreetingClientError(response.status_code, _parse_problem(response))


def _parse_problem(response: httpx.Response) -> ProblemDetail | None:
    try:
        return ProblemDetail.model_validate(response.json())
    except (ValueError, PydanticValidationError):
        logger.debug(
            "Error response %s carried no problem detail", response.status_code
        )
        return None
