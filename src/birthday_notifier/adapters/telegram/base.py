from __future__ import annotations

from typing import Protocol

from ...errors import DeliveryError


class NotifierSink(Protocol):
    async def deliver(self, message: str) -> None:
        """Send one formatted message to the channel; raise DeliveryError on failure."""


__all__ = ["DeliveryError", "NotifierSink"]
