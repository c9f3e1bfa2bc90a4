"""GreetingPoller: periodically calls a greeting service inside an observation."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

import httpx

from ..exceptions import HelloObservationError
from ..observation import create
from ..registry import ObservationRegistry, get_observation_registry

if TYPE_CHECKING:
    from .client import GreetingClient
    from .service import Greeting

logger = logging.getLogger(__name__)


class GreetingPoller:
    """Calls ``client.hello(name)`` every ``interval`` seconds.

    Each call is one ``hello.client`` observation. A failed call is logged
    and the loop keeps going; :meth:`stop` cancels the loop, and a call in
    flight at that moment stops its observation with a cancelled outcome.
    """

    def __init__(
        self,
        client: GreetingClient,
        *,
        name: str = "C3PO",
        interval: float = 2.0,
        initial_delay: float = 2.0,
        registry: ObservationRegistry | None = None,
    ) -> None:
        self.client = client
        self.name = name
        self.interval = interval
        self.initial_delay = initial_delay
        self._registry = registry
        self._task: asyncio.Task[None] | None = None
        self.calls = 0
        self.failures = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task[None]:
        if self.running:
            raise RuntimeError("Greeting poller already running")
        self._task = asyncio.get_running_loop().create_task(
            self.run(), name="greeting-poller"
        )
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:  # noqa: BLE001
            logger.exception("Greeting poller stopped after a failure")

    async def run(self) -> None:
        await asyncio.sleep(self.initial_delay)
        while True:
            await self.call_once()
            await asyncio.sleep(self.interval)

    async def call_once(self) -> Greeting | None:
        registry = self._registry or get_observation_registry()
        context = create(
            "hello.client", "call-host", tags=[("GreetingType", "Salutation")]
        )
        self.calls += 1
        try:
            logger.info("Sending a Salutation request for %s", self.name)
            greeting = await registry.observe_async(
                context, lambda: self.client.hello(self.name)
            )
        except (HelloObservationError, httpx.HTTPError, ValueError) as exc:
            self.failures += 1
            logger.warning("Salutation request failed: %s", exc)
            return None
        except Exception:  # noqa: BLE001
            self.failures += 1
            logger.exception("Unexpected error in salutation request")
            return None
        logger.info("Salutation: %s", greeting.greeting)
        return greeting
