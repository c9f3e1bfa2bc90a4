"""GreetingService: the observed unit of work behind the demo endpoints."""

from __future__ import annotations

import asyncio
import itertools
import logging
import math
import threading
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from ..exceptions import ValidationError
from ..observation import create
from ..registry import ObservationRegistry, get_observation_registry

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

GREETINGS: dict[str, str] = {
    "en": "Hello",
    "fr": "Bonjour",
    "de": "Guten tag",
    "it": "Salve",
    "cn": "nǐn hǎo",
    "ara": "asalaam alaikum",
    "jp": "konnichiwa",
}


class Greeting(BaseModel):
    model_config = ConfigDict(frozen=True)

    greeting: str


class LatencySupplier:
    """Sine-wave latency in milliseconds: ``base + |floor(sin(pi/200 * n) * 250)|``."""

    def __init__(self, base_ms: int = 200, amplitude_ms: int = 250) -> None:
        self.base_ms = base_ms
        self.amplitude_ms = amplitude_ms
        self._calls = itertools.count(1)
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            n = next(self._calls)
        wave = math.floor(math.sin(math.pi / 200 * n) * self.amplitude_ms)
        return self.base_ms + abs(wave)


def validate_name(name: str) -> None:
    if not name or not name.strip() or name[0].isdigit():
        raise ValidationError({"name": ["Invalid name format."]})


class GreetingService:
    """Maps a language code to a greeting word and greets a name.

    Every call runs inside an observation on ``registry`` (the process-wide
    registry when none is given).
    """

    def __init__(
        self,
        registry: ObservationRegistry | None = None,
        *,
        latency: Callable[[], int] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        default_language: str = "en",
    ) -> None:
        self._registry = registry
        self._latency = latency or LatencySupplier()
        self._sleep = sleep
        self.default_language = default_language
        self._names: set[str] = set()
        self._lock = threading.Lock()

    @property
    def registry(self) -> ObservationRegistry:
        return self._registry or get_observation_registry()

    def say_hello(self, name: str, lang: str | None = None) -> str:
        code = lang or self.default_language
        context = create("greeting", "say-hello", tags=[("greeting", "hello")])
        context.tag("lang", code if code in GREETINGS else "unknown")
        return self.registry.observe(context, lambda: self._say_hello(name, lang))

    def _say_hello(self, name: str, lang: str | None) -> str:
        validate_name(name)
        code = lang or self.default_language
        word = GREETINGS.get(code)
        if word is None:
            raise ValidationError({"lang": [f"Unsupported language: {code}"]})
        with self._lock:
            self._names.add(name)
        logger.info("Greeting %s in %s", name, code)
        return f"{word} {name}!"

    async def greet(self, name: str) -> Greeting:
        """Greet after a simulated, sine-wave shaped latency."""
        latency_ms = self._latency()
        context = create("greeting.call", "greet", tags={"latency": str(latency_ms)})

        async def work() -> Greeting:
            validate_name(name)
            await self._sleep(latency_ms / 1000)
            return Greeting(
                greeting=f"HELLO THERE, {name}, delayed for {latency_ms} ms."
            )

        return await self.registry.observe_async(context, work)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._names)
