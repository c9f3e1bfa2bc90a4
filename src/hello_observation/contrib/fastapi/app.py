"""Greeting web app: the demo service behind the observation middleware."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from ...config import ObservationConfig
from ...greeting.client import GreetingClient
from ...greeting.poller import GreetingPoller
from ...greeting.service import Greeting, GreetingService
from ...problems import default_translator
from .middleware import ObservationMiddleware, install_problem_details

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from ...problems import ErrorTranslator
    from ...registry import ObservationRegistry

logger = logging.getLogger(__name__)


def create_app(
    config: ObservationConfig | None = None,
    *,
    registry: ObservationRegistry | None = None,
    service: GreetingService | None = None,
    translator: ErrorTranslator | None = None,
) -> FastAPI:
    """Build the greeting app.

    With ``config.poller_enabled`` the lifespan also runs a
    :class:`GreetingPoller` against ``config.greeting_base_url``.
    """
    config = config or ObservationConfig.from_env()
    translator = translator or default_translator()
    service = service or GreetingService(
        registry, default_language=config.default_language
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if not config.poller_enabled:
            yield
            return
        client = GreetingClient(config.greeting_base_url)
        poller = GreetingPoller(
            client,
            name=config.poller_name,
            interval=config.poll_interval,
            initial_delay=config.poll_initial_delay,
            registry=registry,
        )
        app.state.poller = poller
        poller.start()
        logger.info("Greeting poller calling %s", config.greeting_base_url)
        try:
            yield
        finally:
            try:
                await poller.stop()
            finally:
                await client.aclose()

    app = FastAPI(title=config.service_name, lifespan=lifespan)
    app.state.greeting_service = service
    app.add_middleware(ObservationMiddleware, registry=registry, translator=translator)
    install_problem_details(app, translator)

    @app.get("/hello/{name}", response_model=Greeting)
    async def hello(name: str, lang: str | None = None) -> Greeting:
        logger.info("Received request for salutation")
        return Greeting(greeting=service.say_hello(name, lang))

    @app.get("/greetings/{name}", response_model=Greeting)
    async def greeting(name: str) -> Greeting:
        return await service.greet(name)

    @app.get("/names", response_model=list[str])
    async def names() -> list[str]:
        return service.names()

    return app
