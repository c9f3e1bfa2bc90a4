"""Greeting demo: the observed service, its HTTP client and a scheduled caller."""

from __future__ import annotations

from .service import GREETINGS, Greeting, GreetingService, LatencySupplier

__all__ = ["GREETINGS", "Greeting", "GreetingService", "LatencySupplier"]
