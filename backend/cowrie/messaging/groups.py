"""Named broadcast groups of connections."""

from typing import Any

import structlog

from cowrie.messaging.protocol import ConnectionProtocol

logger = structlog.get_logger()


class BroadcastGroups:
    """Group connections under a name and send to a whole group at once.

    Delivery is best effort per member: a failed send to one connection
    is logged and skipped, and the rest of the group still receives the
    message.
    """

    def __init__(self) -> None:
        self._groups: dict[str, dict[str, ConnectionProtocol]] = {}

    def add(self, group: str, connection: ConnectionProtocol) -> None:
        self._groups.setdefault(group, {})[connection.connection_id] = connection

    def discard(self, group: str, connection_id: str) -> None:
        members = self._groups.get(group)
        if members is None:
            return
        members.pop(connection_id, None)
        if not members:
            del self._groups[group]

    def discard_connection(self, connection_id: str) -> None:
        """Remove a connection from every group it belongs to."""
        for group in [name for name, members in self._groups.items() if connection_id in members]:
            self.discard(group, connection_id)

    def drop_group(self, group: str) -> None:
        self._groups.pop(group, None)

    def members(self, group: str) -> list[str]:
        return list(self._groups.get(group, {}))

    async def broadcast(self, group: str, message: dict[str, Any]) -> None:
        # Snapshot members: a disconnect may mutate the group while we await a send.
        for connection in list(self._groups.get(group, {}).values()):
            await send_quietly(connection, message)


async def send_quietly(connection: ConnectionProtocol, message: dict[str, Any]) -> None:
    """Send to one connection, logging instead of raising if it is gone."""
    try:
        await connection.send_message(message)
    except (RuntimeError, OSError) as e:
        logger.debug("send failed", connection_id=connection.connection_id, error=str(e))
