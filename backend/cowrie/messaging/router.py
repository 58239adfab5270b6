from typing import Any

import structlog
from pydantic import ValidationError

from cowrie.messaging.groups import send_quietly
from cowrie.messaging.protocol import ConnectionProtocol
from cowrie.messaging.types import (
    ClientErrorMessage,
    CreateRoomMessage,
    ErrorMessage,
    JoinRoomMessage,
    MoveMadeMessage,
    RollRequestMessage,
    SessionErrorCode,
    StartGameMessage,
    TurnAdvanceMessage,
    parse_client_message,
)
from cowrie.session.manager import SessionManager

logger = structlog.get_logger()


class MessageRouter:
    """
    Route decoded client frames to the session manager.

    Contains no transport code, so it can be driven with mock
    connections in tests.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        self._session_manager = session_manager

    async def handle_message(
        self,
        connection: ConnectionProtocol,
        raw_message: dict[str, Any],
    ) -> None:
        try:
            message = parse_client_message(raw_message)
        except (ValidationError, KeyError, TypeError, ValueError) as e:
            logger.warning("invalid message", connection_id=connection.connection_id, error=str(e))
            await send_quietly(
                connection,
                ErrorMessage(code=SessionErrorCode.INVALID_MESSAGE, message=str(e)).to_wire(),
            )
            return

        try:
            await self._dispatch(connection, message)
        except Exception:
            # One bad event must not take the connection or other rooms down.
            logger.exception("failed to handle message", connection_id=connection.connection_id, client_event=message.type)
            await send_quietly(
                connection,
                ErrorMessage(code=SessionErrorCode.INTERNAL_ERROR, message="Internal server error").to_wire(),
            )

    async def _dispatch(self, connection: ConnectionProtocol, message: Any) -> None:  # noqa: ANN401
        manager = self._session_manager
        if isinstance(message, CreateRoomMessage):
            await manager.create_room(connection, message.name)
        elif isinstance(message, JoinRoomMessage):
            await manager.join_room(connection, message.room_id, message.name)
        elif isinstance(message, StartGameMessage):
            await manager.start_game(connection)
        elif isinstance(message, RollRequestMessage):
            await manager.request_roll(connection)
        elif isinstance(message, MoveMadeMessage):
            await manager.make_move(connection, message.move)
        elif isinstance(message, TurnAdvanceMessage):
            await manager.advance_turn(connection, message.next_index)
        elif isinstance(message, ClientErrorMessage):
            manager.report_client_error(connection, message.message, message.stack, message.context)

    async def handle_connect(self, connection: ConnectionProtocol) -> None:
        self._session_manager.register_connection(connection)

    async def handle_disconnect(self, connection: ConnectionProtocol) -> None:
        try:
            await self._session_manager.disconnect(connection)
        finally:
            self._session_manager.unregister_connection(connection)
