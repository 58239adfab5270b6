"""Abstract client connection."""

from abc import ABC, abstractmethod
from typing import Any

from cowrie.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One connected client.

    The session layer only ever sees this interface, so it can be driven
    by test doubles instead of real websockets. `connection_id` is the
    opaque handle that identifies a player for as long as it stays
    connected.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str: ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        return decode(await self.receive_bytes())
